"""``tubestream doctor`` — environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether the runtime environment can resolve and stream media: the
configured extractor and transcoder must both be runnable.

This module lives in the CLI layer — it may import from ``infra``
and ``core``, and it renders via Rich.  No business logic resides
here; it purely collects and displays diagnostic data.
"""

from __future__ import annotations

import platform
import sys
from pathlib import Path

from tubestream.cli import exit_codes
from tubestream.cli.console import console
from tubestream.core.models import DownloaderConfig
from tubestream.exceptions import TubestreamError
from tubestream.infra.transcoder_detector import detect_transcoder, install_hint
from tubestream.version import __version__


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 11)
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.11 required)[/red]"
    return "Python", version, status


def _ytdlp_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the yt-dlp version row."""
    try:
        from yt_dlp.version import __version__ as ydl_ver

        return "yt-dlp", ydl_ver, "[green]OK[/green]"
    except ImportError:
        pass

    # Fallback: yt-dlp installed but version submodule unavailable.
    try:
        import yt_dlp  # noqa: F401

        return "yt-dlp", "unknown", "[green]OK[/green]"
    except ImportError:
        return "yt-dlp", "NOT INSTALLED", "[yellow]WARN[/yellow]"


def _config_checks(config_path: Path | None) -> list[tuple[str, str, str]]:
    """Return rows for the resolved extractor and transcoder.

    Both are probed with the same runner the engine uses, so a FAIL here
    means streams would fail too.
    """
    from tubestream.infra.config_loader import load_config
    from tubestream.infra.factory import create_downloader

    try:
        config: DownloaderConfig = load_config(config_path)
    except TubestreamError as exc:
        return [("Config", str(exc), "[red]FAIL[/red]")]

    downloader = create_downloader(config)
    extractor_cmd = [*config.extractor_command(), "--version"]
    extractor_ok = downloader.check_command(extractor_cmd)
    transcoder_ok = downloader.check_command([config.transcoder, "-version"])
    return [
        (
            "Extractor",
            " ".join(config.extractor_command()[:2]),
            "[green]OK[/green]" if extractor_ok else "[red]FAIL[/red]",
        ),
        (
            "Transcoder",
            config.transcoder,
            "[green]OK[/green]" if transcoder_ok else "[red]FAIL[/red]",
        ),
    ]


def _os_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the OS row."""
    system_raw = platform.system()
    system_display = {
        "Windows": "Windows",
        "Linux": "Linux",
        "Darwin": "macOS",
    }.get(system_raw, system_raw)
    release = platform.release()
    machine = platform.machine()
    value = f"{system_display} {release} ({machine})"
    return "OS", value, "[green]OK[/green]"


def _tubestream_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the tubestream version row."""
    return "tubestream", __version__, "[green]OK[/green]"


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    if "FAIL" in status:
        return "FAIL"
    if "WARN" in status:
        return "WARN"
    if "OK" in status:
        return "OK"
    return status


def _print_plain_doctor_table(checks: list[tuple[str, str, str]]) -> None:
    """Render doctor output without Rich."""
    print("\ntubestream doctor", file=sys.stderr)
    print("=" * 56, file=sys.stderr)
    print(f"{'Component':<12} {'Value':<32} {'Status':<8}", file=sys.stderr)
    print("-" * 56, file=sys.stderr)
    for label, value, status in checks:
        plain_status = _status_plain(status)
        print(f"{label:<12} {value:<32} {plain_status:<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(config_path: Path | None = None) -> int:
    """Execute all diagnostic checks and render a Rich summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    checks = [
        _tubestream_version_check(),
        _python_version_check(),
        _ytdlp_version_check(),
        *_config_checks(config_path),
        _os_check(),
    ]

    has_failure = any("FAIL" in status for _, _, status in checks)

    rich_available = True
    try:
        from rich.table import Table
    except ModuleNotFoundError:
        rich_available = False

    if rich_available:
        table = Table(
            title="tubestream doctor",
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
        )
        table.add_column("Component", style="bold", min_width=12)
        table.add_column("Value", min_width=20)
        table.add_column("Status", justify="center", min_width=8)

        for label, value, status in checks:
            table.add_row(label, value, status)

        console.print()
        console.print(table)
        console.print()
    else:
        _print_plain_doctor_table(checks)

    # Show ffmpeg install guidance when it is nowhere on PATH.
    guidance = install_hint(detect_transcoder())
    if guidance is not None:
        console.print("ffmpeg is not installed.")
        console.print(guidance)
        console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR

    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
