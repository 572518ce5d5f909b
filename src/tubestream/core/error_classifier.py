"""Map a failed extractor run to a typed exception.

The rules are ordered; the first match wins.  Only extractor failures
go through here — transcoder failures surface as
:class:`~tubestream.exceptions.TranscoderError` instead.
"""

from __future__ import annotations

from tubestream.core.models import CompletedCommand
from tubestream.exceptions import (
    ExtractorError,
    PasswordRequiredError,
    WrongPasswordError,
    append_ytdlp_upgrade_suggestion,
)

PASSWORD_REQUIRED_MESSAGE = (
    "ERROR: This video is protected by a password, use the --video-password option"
)
WRONG_PASSWORD_PREFIX = "ERROR: Wrong password"


def classify_extractor_failure(
    exit_status: int,
    stderr: str,
    *,
    command_line: str = "",
) -> ExtractorError:
    """Return (not raise) the exception matching a failed extractor run."""
    error_output = stderr.strip()

    if error_output == PASSWORD_REQUIRED_MESSAGE:
        return PasswordRequiredError(
            error_output,
            command_line=command_line,
            stderr=error_output,
            exit_status=exit_status,
            hint="Provide the video password with --password.",
        )
    if error_output.startswith(WRONG_PASSWORD_PREFIX):
        return WrongPasswordError(
            error_output,
            command_line=command_line,
            stderr=error_output,
            exit_status=exit_status,
            hint="Check the video password and try again.",
        )
    return ExtractorError(
        f"{command_line} failed with this error:\n{error_output}",
        command_line=command_line,
        stderr=error_output,
        exit_status=exit_status,
        hint=append_ytdlp_upgrade_suggestion(
            "The site may be unsupported or the page may have changed.",
        ),
    )


def classify_completed(result: CompletedCommand) -> ExtractorError:
    """Convenience wrapper for a :class:`CompletedCommand`."""
    return classify_extractor_failure(
        result.returncode,
        result.stderr,
        command_line=result.command_line,
    )
