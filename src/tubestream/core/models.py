"""Domain models for tubestream.

Value objects are **frozen** dataclasses with no behaviour beyond data
access and validation.  :class:`MetadataDocument` is the one exception:
it wraps the extractor's JSON output as a read-only mapping and exposes
typed accessors for the handful of fields the engine consumes.
"""

from __future__ import annotations

import enum
import json
import shlex
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from tubestream.exceptions import ConfigurationError, MetadataParseError


# ---------------------------------------------------------------------------
# Downloader configuration
# ---------------------------------------------------------------------------

TRANSCODER_VERBOSITY_LEVELS: tuple[str, ...] = (
    "quiet",
    "panic",
    "fatal",
    "error",
    "warning",
    "info",
    "verbose",
    "debug",
)


@dataclass(frozen=True, slots=True)
class DownloaderConfig:
    """Read-only configuration shared by every :class:`Video` of a downloader.

    No field has a filesystem-dependent default: binary locations are
    always supplied by the caller (see :mod:`tubestream.infra.config_loader`).
    """

    extractor: str
    """Path to the extractor program (a yt-dlp script or package directory)."""

    transcoder: str
    """Path to the ffmpeg (or avconv) binary."""

    python: str | None = None
    """Interpreter used to run the extractor; ``None`` runs it directly."""

    extractor_params: tuple[str, ...] = ("--no-warnings",)
    """Extra arguments passed to every extractor invocation."""

    transcoder_verbosity: str = "error"
    """Value of the transcoder ``-v`` flag."""

    helper_dir: str | None = None
    """Directory prepended to ``PATH`` for the extractor's own helpers."""

    def __post_init__(self) -> None:
        if not self.extractor.strip():
            raise ConfigurationError("Extractor path must not be empty.")
        if not self.transcoder.strip():
            raise ConfigurationError("Transcoder path must not be empty.")
        if self.transcoder_verbosity not in TRANSCODER_VERBOSITY_LEVELS:
            raise ConfigurationError(
                f"Invalid transcoder verbosity: {self.transcoder_verbosity}",
                hint="Use one of: " + ", ".join(TRANSCODER_VERBOSITY_LEVELS),
            )

    def extractor_command(self) -> list[str]:
        """Return the argv prefix shared by every extractor invocation."""
        prefix = [self.python, self.extractor] if self.python else [self.extractor]
        return [*prefix, *self.extractor_params]


# ---------------------------------------------------------------------------
# Completed subprocess
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CompletedCommand:
    """Outcome of a subprocess that ran to completion."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        """Shell-quoted rendering of :attr:`command` for error messages."""
        return shlex.join(self.command)


# ---------------------------------------------------------------------------
# Extractor metadata document
# ---------------------------------------------------------------------------

class MetadataDocument(Mapping[str, Any]):
    """Immutable view over the JSON object emitted by the extractor.

    The document keeps the extractor's arbitrary shape; only the fields
    below get typed accessors.  Presence is tested with :meth:`has`
    (``in``), independently of the value, so a key holding ``0``,
    ``""`` or ``None`` still counts as present.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data: Mapping[str, Any] = MappingProxyType(dict(data))

    @classmethod
    def from_json(cls, text: str) -> MetadataDocument:
        """Decode extractor output into a document.

        Raises
        ------
        MetadataParseError
            When *text* is not JSON or does not decode to an object.
        """
        try:
            decoded: Any = json.loads(text)
        except ValueError as exc:
            raise MetadataParseError(
                f"Could not decode extractor output: {exc}",
            ) from exc
        if not isinstance(decoded, dict):
            raise MetadataParseError(
                "Extractor output is not a JSON object.",
            )
        return cls(decoded)

    # -- Mapping protocol ----------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MetadataDocument({dict(self._data)!r})"

    def has(self, key: str) -> bool:
        """Return ``True`` if *key* is present, whatever its value."""
        return key in self._data

    # -- Typed accessors -----------------------------------------------------

    def get_str(self, key: str) -> str | None:
        value = self._data.get(key)
        return None if value is None else str(value)

    @property
    def title(self) -> str | None:
        return self.get_str("title")

    @property
    def protocol(self) -> str | None:
        return self.get_str("protocol")

    @property
    def ext(self) -> str | None:
        return self.get_str("ext")

    @property
    def extractor_key(self) -> str | None:
        return self.get_str("extractor_key")

    @property
    def type(self) -> str | None:
        """The ``_type`` flag (``"playlist"`` for playlists, usually absent)."""
        return self.get_str("_type")

    @property
    def is_playlist(self) -> bool:
        return self.type == "playlist"

    @property
    def entries(self) -> tuple[MetadataDocument, ...]:
        raw: object = self._data.get("entries")
        if not isinstance(raw, list):
            return ()
        return tuple(MetadataDocument(entry) for entry in raw if isinstance(entry, dict))

    @property
    def rtmp_conn(self) -> tuple[str, ...]:
        raw: object = self._data.get("rtmp_conn")
        if raw is None:
            return ()
        if isinstance(raw, (list, tuple)):
            return tuple(str(conn) for conn in raw)
        return (str(raw),)

    @property
    def http_headers(self) -> dict[str, str]:
        raw: object = self._data.get("http_headers")
        if not isinstance(raw, dict):
            return {}
        return {str(name): str(value) for name, value in raw.items()}


# ---------------------------------------------------------------------------
# Stream requests and strategies
# ---------------------------------------------------------------------------

class StreamMode(enum.Enum):
    """What the caller asked for."""

    RAW = "raw"
    """The remote media as-is (HTTP passthrough, or a remux where required)."""

    AUDIO = "audio"
    """Audio extraction to a re-encoded container (mp3 by default)."""

    CONVERT = "convert"
    """Full re-encode to another container at a given audio bitrate."""

    REMUX = "remux"
    """Combine a separate video URL and audio URL into one stream."""

    @property
    def is_conversion(self) -> bool:
        return self in (StreamMode.AUDIO, StreamMode.CONVERT)


class Strategy(enum.Enum):
    """Stream topology chosen by :func:`~tubestream.core.topology.select_strategy`."""

    HTTP_PASSTHROUGH = "http"
    DUAL_REMUX = "remux"
    M3U_REMUX = "m3u"
    RTMP_PASSTHROUGH = "rtmp"
    GENERIC_TRANSCODE = "transcode"

    @property
    def uses_transcoder(self) -> bool:
        return self is not Strategy.HTTP_PASSTHROUGH


@dataclass(frozen=True, slots=True)
class StreamRequest:
    """Caller-facing description of the stream to open."""

    mode: StreamMode = StreamMode.RAW
    audio_bitrate: int = 128
    """Audio bitrate in kbit/s for conversions."""

    filetype: str = "mp3"
    """Output container for conversions."""

    start: str | None = None
    """Trim start, ``[[hh:]mm:]ss``."""

    end: str | None = None
    """Trim end, ``[[hh:]mm:]ss``."""

    headers: Mapping[str, str] | None = None
    """Header overrides for the HTTP passthrough."""

    def __post_init__(self) -> None:
        if self.audio_bitrate <= 0:
            raise ValueError("audio_bitrate must be positive")

    @classmethod
    def audio(
        cls,
        audio_bitrate: int = 128,
        *,
        start: str | None = None,
        end: str | None = None,
    ) -> StreamRequest:
        return cls(StreamMode.AUDIO, audio_bitrate, "mp3", start, end)

    @classmethod
    def convert(
        cls,
        filetype: str,
        audio_bitrate: int = 128,
        *,
        start: str | None = None,
        end: str | None = None,
    ) -> StreamRequest:
        return cls(StreamMode.CONVERT, audio_bitrate, filetype, start, end)
