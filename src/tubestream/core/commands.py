"""Transcoder argument-vector synthesis.

Every builder is a pure function returning a fresh ``list[str]``,
program first.  All of them write to a single ``pipe:1`` sink so the
output can be streamed without an intermediate file.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from tubestream.exceptions import InvalidTimeError, RemuxMissingSecondUrlError

OUTPUT_SINK = "pipe:1"

_DURATION_PATTERN = re.compile(r"(\d+:)?(\d+:)?\d+(\.\d+)?")

_RTMP_OPTIONS: tuple[tuple[str, str], ...] = (
    ("url", "-rtmp_tcurl"),
    ("webpage_url", "-rtmp_pageurl"),
    ("player_url", "-rtmp_swfverify"),
    ("flash_version", "-rtmp_flashver"),
    ("play_path", "-rtmp_playpath"),
    ("app", "-rtmp_app"),
)


def validate_time(value: str) -> str:
    """Return *value* unchanged if it is a ``[[hh:]mm:]ss`` duration.

    Raises
    ------
    InvalidTimeError
        For anything else.
    """
    if not _DURATION_PATTERN.fullmatch(value):
        raise InvalidTimeError(value)
    return value


def rtmp_arguments(
    properties: dict[str, str],
    connections: Sequence[str] = (),
) -> list[str]:
    """Build the ``-rtmp_*`` flags from document *properties*.

    *properties* holds only the keys actually present in the document;
    flags follow the fixed property order, connection parameters last.
    """
    arguments: list[str] = []
    for prop, option in _RTMP_OPTIONS:
        if prop in properties:
            arguments += [option, properties[prop]]
    for conn in connections:
        arguments += ["-rtmp_conn", conn]
    return arguments


def rtmp_property_names() -> tuple[str, ...]:
    return tuple(prop for prop, _ in _RTMP_OPTIONS)


def build_transcode_command(
    transcoder: str,
    verbosity: str,
    url: str,
    *,
    filetype: str,
    audio_bitrate: int,
    audio_only: bool,
    user_agent: str,
    rtmp_args: Sequence[str] = (),
    start: str | None = None,
    end: str | None = None,
) -> list[str]:
    """Generic re-encode of a single input.

    The user agent goes last: some hosts only serve the direct URL to
    the exact agent the extractor used.
    """
    after: list[str] = []
    if audio_only:
        after.append("-vn")
    if start:
        after += ["-ss", validate_time(start)]
    if end:
        after += ["-to", validate_time(end)]

    return [
        transcoder,
        "-v", verbosity,
        *rtmp_args,
        "-i", url,
        "-f", filetype,
        "-b:a", f"{audio_bitrate}k",
        *after,
        OUTPUT_SINK,
        "-user_agent", user_agent,
    ]


def build_m3u_command(
    transcoder: str,
    verbosity: str,
    url: str,
    *,
    container: str,
) -> list[str]:
    """Remux an HLS playlist into a streamable fragmented container."""
    return [
        transcoder,
        "-v", verbosity,
        "-i", url,
        "-f", container,
        "-c", "copy",
        "-bsf:a", "aac_adtstoasc",
        "-movflags", "frag_keyframe+empty_moov",
        OUTPUT_SINK,
    ]


def build_remux_command(
    transcoder: str,
    verbosity: str,
    urls: Sequence[str],
) -> list[str]:
    """Mux video from the first URL with audio from the second into Matroska.

    Raises
    ------
    RemuxMissingSecondUrlError
        Unless exactly two non-empty URLs are given.
    """
    if len(urls) != 2 or not urls[0] or not urls[1]:
        raise RemuxMissingSecondUrlError()

    return [
        transcoder,
        "-v", verbosity,
        "-i", urls[0],
        "-i", urls[1],
        "-c", "copy",
        "-map", "0:v:0",
        "-map", "1:a:0",
        "-f", "matroska",
        OUTPUT_SINK,
    ]


def build_rtmp_command(
    transcoder: str,
    verbosity: str,
    url: str,
    *,
    container: str,
    rtmp_args: Sequence[str],
) -> list[str]:
    """Pull an RTMP stream and pass it through in its native container."""
    return [
        transcoder,
        "-v", verbosity,
        *rtmp_args,
        "-i", url,
        "-f", container,
        OUTPUT_SINK,
    ]
