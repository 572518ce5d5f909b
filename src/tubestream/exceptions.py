"""Custom exception hierarchy for tubestream.

All exceptions that cross layer boundaries must inherit from
:class:`TubestreamError`.  Raw third-party exceptions (``OSError`` from
:mod:`subprocess`, :mod:`requests` errors) must NEVER propagate beyond
the infrastructure layer — they must be caught and re-raised as a typed
subclass defined here.

Hierarchy
---------
TubestreamError
├── ConfigurationError
├── EnvironmentError
│   └── PopenStreamError
├── TranscoderNotFoundError
├── ExtractorError
│   ├── PasswordRequiredError
│   └── WrongPasswordError
├── MetadataParseError
├── EmptyUrlError
├── InvalidTimeError
├── ConversionError
│   ├── PlaylistConversionError
│   ├── InvalidProtocolConversionError
│   └── RemuxError
│       ├── RemuxConflictError
│       └── RemuxMissingSecondUrlError
├── TranscoderError
└── UpstreamHttpError
"""

from __future__ import annotations


class TubestreamError(Exception):
    """Base exception for all tubestream errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Configuration ---------------------------------------------------------

class ConfigurationError(TubestreamError):
    """Raised when the downloader configuration is invalid."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(TubestreamError):
    """Raised when a required runtime dependency is not available."""


class PopenStreamError(EnvironmentError):
    """Raised when a subprocess pipe could not be established."""

    def __init__(
        self,
        message: str = "Could not open popen stream.",
        *,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)


class TranscoderNotFoundError(TubestreamError):
    """Raised when the transcoder binary is missing or not invocable."""

    def __init__(self, path: str, *, hint: str | None = None) -> None:
        super().__init__(f"Can't find avconv or ffmpeg at {path}.", hint=hint)
        self.path: str = path


# --- Extractor -------------------------------------------------------------

class ExtractorError(TubestreamError):
    """Raised when the extractor subprocess exits with an error."""

    def __init__(
        self,
        message: str,
        *,
        command_line: str = "",
        stderr: str = "",
        exit_status: int = 1,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.command_line: str = command_line
        self.stderr: str = stderr
        self.exit_status: int = exit_status


class PasswordRequiredError(ExtractorError):
    """Raised when the video is protected and no password was given."""


class WrongPasswordError(ExtractorError):
    """Raised when the extractor rejected the supplied password."""


class MetadataParseError(TubestreamError):
    """Raised when the extractor output is not a valid JSON document."""


class EmptyUrlError(TubestreamError):
    """Raised when the extractor resolved an empty media URL."""

    def __init__(self, message: str = "youtube-dl returned an empty URL.") -> None:
        super().__init__(message)


# --- Stream requests -------------------------------------------------------

class InvalidTimeError(TubestreamError):
    """Raised when a trim boundary is not a ``[[hh:]mm:]ss`` duration."""

    def __init__(self, time: str) -> None:
        super().__init__(
            f"Invalid time: {time}",
            hint="Use [[hours:]minutes:]seconds, e.g. 1:30 or 01:02:03.",
        )
        self.time: str = time


class ConversionError(TubestreamError):
    """Base class for stream requests the topology selector refuses."""


class PlaylistConversionError(ConversionError):
    """Raised when a conversion is requested on a playlist."""

    def __init__(self, message: str = "Conversion of playlists is not supported.") -> None:
        super().__init__(message)


class InvalidProtocolConversionError(ConversionError):
    """Raised when the media protocol cannot be re-encoded."""

    def __init__(self, protocol: str) -> None:
        super().__init__(f"{protocol} protocol is not supported in conversions.")
        self.protocol: str = protocol


class RemuxError(ConversionError):
    """Base class for dual-source remux failures."""


class RemuxConflictError(RemuxError):
    """Raised when a multi-URL video is requested as a single stream."""


class RemuxMissingSecondUrlError(RemuxError):
    """Raised when a remux is requested on a video without two URLs."""

    def __init__(self, message: str = "This video does not have two URLs.") -> None:
        super().__init__(message)


# --- Producers -------------------------------------------------------------

class TranscoderError(TubestreamError):
    """Raised when a transcoder stream ends with a non-zero exit status."""

    def __init__(self, command_line: str, stderr: str, exit_status: int) -> None:
        super().__init__(
            f"{command_line} failed with this error:\n{stderr.strip()}",
        )
        self.command_line: str = command_line
        self.stderr: str = stderr
        self.exit_status: int = exit_status


class UpstreamHttpError(TubestreamError):
    """Raised when the upstream media server cannot be streamed from."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code: int | None = status_code


def append_ytdlp_upgrade_suggestion(hint: str) -> str:
    """Append yt-dlp upgrade guidance to an existing hint text.

    The suggestion is appended only once and preserves the original
    hint content verbatim.
    """
    marker = "Also try updating yt-dlp:"
    if marker in hint:
        return hint
    return "\n".join(
        (
            hint,
            marker,
            "    pip install --upgrade yt-dlp",
        )
    )
