"""Stream-topology selection.

Decides which strategy serves a :class:`~tubestream.core.models.StreamRequest`
for a resolved :class:`~tubestream.core.models.MetadataDocument`, and
rejects combinations the transcoder cannot serve.

Segmented protocols are never re-encoded.  Of those, only the HLS
variants are remuxed; a raw DASH request is handed to the HTTP
passthrough like any other plain URL.
"""

from __future__ import annotations

from tubestream.core.models import MetadataDocument, StreamMode, Strategy
from tubestream.exceptions import (
    InvalidProtocolConversionError,
    PlaylistConversionError,
    RemuxConflictError,
    RemuxMissingSecondUrlError,
)

HLS_PROTOCOLS: frozenset[str] = frozenset({"m3u8", "m3u8_native"})
SEGMENTED_PROTOCOLS: frozenset[str] = HLS_PROTOCOLS | {"http_dash_segments"}


def reject_unsupported(document: MetadataDocument, mode: StreamMode) -> None:
    """Apply the checks that need no resolved URLs.

    Raises
    ------
    PlaylistConversionError
        A conversion was requested on a playlist.
    InvalidProtocolConversionError
        A conversion was requested on a segmented protocol.
    """
    if not mode.is_conversion:
        return
    if document.is_playlist:
        raise PlaylistConversionError()
    protocol = document.protocol
    if protocol in SEGMENTED_PROTOCOLS:
        raise InvalidProtocolConversionError(protocol)


def select_strategy(
    document: MetadataDocument,
    url_count: int,
    mode: StreamMode,
) -> Strategy:
    """Pick the strategy for *mode* given *url_count* resolved URLs.

    Raises
    ------
    PlaylistConversionError, InvalidProtocolConversionError
        See :func:`reject_unsupported`.
    RemuxConflictError
        More than one URL for a single-stream request, or more than two
        URLs for a remux.
    RemuxMissingSecondUrlError
        A remux was requested with fewer than two URLs.
    """
    reject_unsupported(document, mode)

    if mode is StreamMode.REMUX:
        if url_count > 2:
            raise RemuxConflictError(
                f"Cannot remux {url_count} URLs; exactly two are required.",
            )
        if url_count < 2:
            raise RemuxMissingSecondUrlError()
        return Strategy.DUAL_REMUX

    if url_count > 1:
        if mode.is_conversion:
            raise RemuxConflictError("Cannot convert and remux simultaneously.")
        raise RemuxConflictError(
            "This video has separate video and audio URLs.",
            hint="Request a remuxed stream instead.",
        )

    if mode.is_conversion:
        return Strategy.GENERIC_TRANSCODE

    protocol = document.protocol
    if protocol in HLS_PROTOCOLS:
        return Strategy.M3U_REMUX
    if protocol == "rtmp":
        return Strategy.RTMP_PASSTHROUGH
    return Strategy.HTTP_PASSTHROUGH
