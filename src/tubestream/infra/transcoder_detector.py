"""Infrastructure: transcoder (ffmpeg/avconv) detection and platform guidance.

Used by the ``doctor`` command and the configuration loader to locate
the transcoder and suggest how to install it.  The engine's own
pre-flight check (a ``-version`` run) lives in
:meth:`~tubestream.core.downloader.Downloader.check_command`.

Rules
-----
* Detection via :func:`shutil.which` only — no subprocess.
* No permanent PATH modification.
* No ``print()`` — callers handle user-facing output.
"""

from __future__ import annotations

import platform
import shutil
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TRANSCODERS: tuple[str, ...] = ("ffmpeg", "avconv")


@dataclass(frozen=True, slots=True)
class TranscoderStatus:
    """Result of a transcoder detection probe.

    Attributes
    ----------
    found : bool
        Whether the transcoder was located.
    path : Path | None
        Absolute path to the binary, or ``None``.
    version_hint : str
        Human-readable status string (e.g. ``"found at …"`` or ``"not found"``).
    install_commands : tuple[str, ...]
        Suggested shell commands for installing ffmpeg on the current
        platform.  Empty when the transcoder is already present.
    """

    found: bool
    path: Path | None
    version_hint: str
    install_commands: tuple[str, ...]


def detect_transcoder(candidates: tuple[str, ...] = DEFAULT_TRANSCODERS) -> TranscoderStatus:
    """Probe for the first of *candidates* (names or paths) that resolves.

    Returns a :class:`TranscoderStatus` regardless of the outcome — the
    caller decides whether to abort or merely warn.
    """
    for candidate in candidates:
        result = shutil.which(candidate)
        if result is not None:
            resolved = Path(result).resolve()
            return TranscoderStatus(
                found=True,
                path=resolved,
                version_hint=f"found at {resolved}",
                install_commands=(),
            )

    return TranscoderStatus(
        found=False,
        path=None,
        version_hint="not found",
        install_commands=_platform_install_commands(),
    )


def install_hint(status: TranscoderStatus) -> str | None:
    """Render *status*'s install commands as a hint, or ``None``."""
    if not status.install_commands:
        return None
    lines = ["Install ffmpeg using one of:"]
    lines.extend(f"  {cmd}" for cmd in status.install_commands)
    return "\n".join(lines)


def _platform_install_commands() -> tuple[str, ...]:
    """Return install commands appropriate for the current OS."""
    system = platform.system().lower()
    if system == "windows":
        return (
            "winget install Gyan.FFmpeg",
            "choco install ffmpeg",
        )
    if system == "linux":
        return (
            "sudo apt install ffmpeg",
            "sudo dnf install ffmpeg",
            "sudo pacman -S ffmpeg",
        )
    if system == "darwin":
        return ("brew install ffmpeg",)
    return ("Please install ffmpeg from https://ffmpeg.org/download.html",)
