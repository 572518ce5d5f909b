"""CLI application entry point and command routing for tubestream.

This module is the **sole error boundary** for the entire application.
It catches :class:`~tubestream.exceptions.TubestreamError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to the core and
  infrastructure layers.
* Diagnostics go to stderr through the Rich console; stdout carries
  only stream bytes and plain listings.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import IO, TYPE_CHECKING

from tubestream.cli import exit_codes
from tubestream.cli.console import configure_logging, console
from tubestream.exceptions import PasswordRequiredError, TubestreamError, WrongPasswordError
from tubestream.version import __version__

if TYPE_CHECKING:
    from tubestream.core.downloader import Downloader
    from tubestream.core.models import StreamRequest
    from tubestream.core.protocols import StreamHandle


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _add_video_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="URL of the page containing the video.")
    parser.add_argument(
        "-f",
        "--format",
        default="best/bestvideo",
        help="Format selector passed to yt-dlp (default: %(default)s).",
    )
    parser.add_argument("--password", default=None, help="Video password.")


def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="tubestream",
        description="Resolve a web page into a live media stream.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every extractor and transcoder command line.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="TOML file with a [tubestream] table.",
    )
    sub = parser.add_subparsers(dest="command")

    info = sub.add_parser("info", help="Show metadata and direct URLs.")
    _add_video_arguments(info)

    stream = sub.add_parser("stream", help="Write the media stream to a file or stdout.")
    _add_video_arguments(stream)
    mode = stream.add_mutually_exclusive_group()
    mode.add_argument("--audio", action="store_true", help="Extract audio as mp3.")
    mode.add_argument("--convert", metavar="EXT", default=None, help="Re-encode into EXT.")
    mode.add_argument(
        "--remux",
        action="store_true",
        help="Combine separate video and audio URLs (e.g. -f bestvideo+bestaudio).",
    )
    stream.add_argument("--bitrate", type=int, default=128, help="Audio bitrate in kbit/s.")
    stream.add_argument("--from", dest="start", default=None, help="Start at [[hh:]mm:]ss.")
    stream.add_argument("--to", dest="end", default=None, help="Stop at [[hh:]mm:]ss.")
    stream.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Extra HTTP header for raw streams (repeatable).",
    )
    stream.add_argument(
        "-o",
        "--output",
        default="-",
        help="Output file, or '-' for stdout (default).",
    )

    sub.add_parser("extractors", help="List supported extractors.")
    sub.add_parser("doctor", help="Run environment diagnostics.")
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _create_downloader(config_path: Path | None) -> Downloader:
    from tubestream.infra.factory import downloader_from_config_file

    return downloader_from_config_file(config_path)


def _parse_headers(raw_headers: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise TubestreamError(
                f"Invalid header: {raw}",
                hint="Use NAME:VALUE, e.g. -H 'Accept-Language: en'.",
            )
        headers[name.strip()] = value.strip()
    return headers


def _stream_request(args: argparse.Namespace) -> StreamRequest:
    from tubestream.core.models import StreamMode, StreamRequest

    if args.audio:
        mode = StreamMode.AUDIO
    elif args.convert:
        mode = StreamMode.CONVERT
    elif args.remux:
        mode = StreamMode.REMUX
    else:
        mode = StreamMode.RAW
    return StreamRequest(
        mode=mode,
        audio_bitrate=args.bitrate,
        filetype=args.convert or "mp3",
        start=args.start,
        end=args.end,
        headers=_parse_headers(args.header),
    )


def _handle_info(args: argparse.Namespace) -> int:
    """Print the metadata fields the engine uses, plus the direct URLs."""
    downloader = _create_downloader(args.config)
    video = downloader.get_video(args.url, args.format, args.password)
    document = video.metadata

    rows: list[tuple[str, str]] = [
        ("Title", document.title or "Unknown"),
        ("Extractor", document.extractor_key or "unknown"),
    ]
    if document.is_playlist:
        rows.append(("Type", "playlist"))
        rows.extend(
            (f"Entry {index}", entry.title or "Unknown")
            for index, entry in enumerate(document.entries, start=1)
        )
    else:
        rows.append(("Protocol", document.protocol or "unknown"))
        rows.append(("Container", document.ext or "unknown"))
        rows.extend((f"URL {index}", url) for index, url in enumerate(video.get_urls(), start=1))

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        for label, value in rows:
            print(f"{label:<12} {value}", file=sys.stderr)
        return exit_codes.SUCCESS

    table = Table(show_header=False, border_style="dim")
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    for label, value in rows:
        table.add_row(label, value)
    console.print(table)
    return exit_codes.SUCCESS


def _copy_stream(handle: StreamHandle, sink: IO[bytes]) -> int:
    written = 0
    for chunk in handle.iter_chunks():
        sink.write(chunk)
        written += len(chunk)
    sink.flush()
    return written


def _handle_stream(args: argparse.Namespace) -> int:
    """Open the requested stream and copy it to the output."""
    downloader = _create_downloader(args.config)
    video = downloader.get_video(args.url, args.format, args.password)
    request = _stream_request(args)

    with downloader.open_stream(video, request) as handle:
        if args.output == "-":
            _copy_stream(handle, sys.stdout.buffer)
        else:
            with open(args.output, "wb") as sink:
                written = _copy_stream(handle, sink)
            console.print(f"[bold green]Wrote {written} bytes to[/bold green] {args.output}")
    return exit_codes.SUCCESS


def _handle_extractors(args: argparse.Namespace) -> int:
    downloader = _create_downloader(args.config)
    for name in downloader.get_extractors():
        sys.stdout.write(f"{name}\n")
    return exit_codes.SUCCESS


def _handle_doctor(args: argparse.Namespace) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from tubestream.cli.doctor import run_doctor

    return run_doctor(args.config)


_HANDLERS = {
    "info": _handle_info,
    "stream": _handle_stream,
    "extractors": _handle_extractors,
    "doctor": _handle_doctor,
}


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the tubestream CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    configure_logging(args.verbose)
    return _HANDLERS[args.command](args)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except (PasswordRequiredError, WrongPasswordError) as exc:
        console.print(f"[bold yellow]Password needed:[/bold yellow] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.CREDENTIALS_REQUIRED)
    except TubestreamError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
