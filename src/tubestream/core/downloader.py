"""Core downloader service — extractor calls and stream orchestration.

The :class:`Downloader` holds the read-only configuration and the
infrastructure adapters injected at construction time (dependency
inversion).  It is the only object that launches anything: extractor
queries for :class:`~tubestream.core.video.Video`, and transcoder
processes or HTTP requests for streams.

Guarantees
----------
* A stream handle is only returned once its producer has started.
* Only :class:`~tubestream.exceptions.TubestreamError` subclasses escape.
* No retries: a failed extractor or transcoder call is surfaced as-is.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from tubestream.core import commands, topology
from tubestream.core.error_classifier import classify_completed
from tubestream.core.models import DownloaderConfig, StreamMode, StreamRequest, Strategy
from tubestream.core.protocols import CommandRunner, HttpStreamer, StreamHandle, StreamLauncher
from tubestream.core.video import Video
from tubestream.exceptions import (
    EnvironmentError,
    TranscoderNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "best/bestvideo"


class Downloader:
    """Factory for :class:`Video` objects and opener of their streams.

    Parameters
    ----------
    config:
        Binary paths and extractor/transcoder options.
    runner:
        Runs extractor queries and the transcoder version probe.
    launcher:
        Starts transcoder processes with a readable stdout pipe.
    http:
        Opens streaming GET requests for the raw passthrough.
    """

    def __init__(
        self,
        config: DownloaderConfig,
        *,
        runner: CommandRunner,
        launcher: StreamLauncher,
        http: HttpStreamer,
    ) -> None:
        self._config = config
        self._runner = runner
        self._launcher = launcher
        self._http = http

    @property
    def config(self) -> DownloaderConfig:
        return self._config

    def get_video(
        self,
        webpage_url: str,
        requested_format: str | None = DEFAULT_FORMAT,
        password: str | None = None,
    ) -> Video:
        return Video(self, webpage_url, requested_format, password)

    # ------------------------------------------------------------------
    # Extractor
    # ------------------------------------------------------------------

    def call_extractor(self, arguments: Sequence[str]) -> str:
        """Run the extractor with *arguments* and return its trimmed stdout.

        Raises
        ------
        PasswordRequiredError, WrongPasswordError, ExtractorError
            When the extractor exits with a non-zero status.
        """
        command = [*self._config.extractor_command(), *arguments]
        logger.debug("Running extractor: %s", command)
        result = self._runner.run(command, search_path=self._config.helper_dir)
        if not result.succeeded:
            raise classify_completed(result)
        return result.stdout.strip()

    def get_extractors(self) -> list[str]:
        """List every extractor the extractor program supports."""
        return self.call_extractor(["--list-extractors"]).split("\n")

    # ------------------------------------------------------------------
    # Transcoder probe
    # ------------------------------------------------------------------

    def check_command(self, command: Sequence[str]) -> bool:
        """Return ``True`` if *command* runs and exits with status 0."""
        try:
            return self._runner.run(command).succeeded
        except EnvironmentError:
            return False

    def _require_transcoder(self) -> None:
        transcoder = self._config.transcoder
        if not self.check_command([transcoder, "-version"]):
            raise TranscoderNotFoundError(
                transcoder,
                hint="Install ffmpeg or point the configuration at it.",
            )

    # ------------------------------------------------------------------
    # Topology dispatch
    # ------------------------------------------------------------------

    def select_strategy(self, video: Video, request: StreamRequest) -> Strategy:
        """Decide how *request* will be served for *video*.

        The playlist and protocol checks run before any URL is resolved.
        """
        document = video.ensure_resolved()
        topology.reject_unsupported(document, request.mode)
        return topology.select_strategy(document, len(video.get_urls()), request.mode)

    def open_stream(self, video: Video, request: StreamRequest | None = None) -> StreamHandle:
        """Open the stream described by *request* (raw passthrough by default)."""
        request = request or StreamRequest()
        strategy = self.select_strategy(video, request)
        logger.info("Opening %s stream for %s", strategy.value, video.webpage_url)

        if not strategy.uses_transcoder:
            return self.get_http_response(video, request.headers)
        if strategy is Strategy.DUAL_REMUX:
            return self.get_remux_stream(video)
        if strategy is Strategy.M3U_REMUX:
            return self.get_m3u_stream(video)
        if strategy is Strategy.RTMP_PASSTHROUGH:
            return self.get_rtmp_stream(video)
        return self._open_transcode(
            video,
            audio_bitrate=request.audio_bitrate,
            filetype=request.filetype,
            audio_only=request.mode is StreamMode.AUDIO,
            start=request.start,
            end=request.end,
        )

    # ------------------------------------------------------------------
    # Strategy entry points
    # ------------------------------------------------------------------

    def get_audio_stream(
        self,
        video: Video,
        audio_bitrate: int = 128,
        start: str | None = None,
        end: str | None = None,
    ) -> StreamHandle:
        """Stream the audio track re-encoded as mp3.

        Raises
        ------
        PlaylistConversionError
            If *video* is a playlist.
        InvalidProtocolConversionError
            If *video* uses a segmented protocol.
        RemuxConflictError
            If *video* resolved to more than one URL.
        InvalidTimeError
            If *start* or *end* is not a duration.
        TranscoderNotFoundError, PopenStreamError
        """
        request = StreamRequest.audio(audio_bitrate, start=start, end=end)
        self.select_strategy(video, request)
        return self._open_transcode(
            video,
            audio_bitrate=audio_bitrate,
            filetype="mp3",
            audio_only=True,
            start=start,
            end=end,
        )

    def get_converted_stream(
        self,
        video: Video,
        audio_bitrate: int,
        filetype: str,
        start: str | None = None,
        end: str | None = None,
    ) -> StreamHandle:
        """Stream *video* fully re-encoded into *filetype*."""
        request = StreamRequest.convert(filetype, audio_bitrate, start=start, end=end)
        self.select_strategy(video, request)
        return self._open_transcode(
            video,
            audio_bitrate=audio_bitrate,
            filetype=filetype,
            audio_only=False,
            start=start,
            end=end,
        )

    def get_m3u_stream(self, video: Video) -> StreamHandle:
        """Remux an HLS playlist into a fragmented, seek-free container."""
        self._require_transcoder()
        urls = video.get_urls()
        command = commands.build_m3u_command(
            self._config.transcoder,
            self._config.transcoder_verbosity,
            urls[0],
            container=video.ext or "mp4",
        )
        return self._launch(command)

    def get_remux_stream(self, video: Video) -> StreamHandle:
        """Mux the separate video and audio URLs into one Matroska stream.

        Raises
        ------
        RemuxMissingSecondUrlError
            If *video* has fewer than two URLs.
        RemuxConflictError
            If *video* has more than two URLs.
        """
        self.select_strategy(video, StreamRequest(StreamMode.REMUX))
        urls = video.get_urls()
        self._require_transcoder()
        command = commands.build_remux_command(
            self._config.transcoder,
            self._config.transcoder_verbosity,
            urls,
        )
        return self._launch(command)

    def get_rtmp_stream(self, video: Video) -> StreamHandle:
        """Pull an RTMP stream through the transcoder without re-encoding."""
        self._require_transcoder()
        urls = video.get_urls()
        command = commands.build_rtmp_command(
            self._config.transcoder,
            self._config.transcoder_verbosity,
            urls[0],
            container=video.ext or "flv",
            rtmp_args=video.get_rtmp_arguments(),
        )
        return self._launch(command)

    def get_http_response(
        self,
        video: Video,
        headers: Mapping[str, str] | None = None,
    ) -> StreamHandle:
        """Stream the first direct URL as-is over HTTP.

        The document's own headers are forwarded; *headers* override them
        key by key.
        """
        urls = video.get_urls()
        document_headers = video.metadata.http_headers
        merged = {**document_headers, **(headers or {})}

        # Some hosts check Referer before the application layer sees the
        # request, so it is sent a second time as a transport header.
        # Redundant on well-behaved servers; kept for compatibility.
        transport: dict[str, str] = {}
        if "Referer" in document_headers:
            transport["Referer"] = document_headers["Referer"]

        return self._http.open(urls[0], headers=merged, transport_headers=transport)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open_transcode(
        self,
        video: Video,
        *,
        audio_bitrate: int,
        filetype: str,
        audio_only: bool,
        start: str | None,
        end: str | None,
    ) -> StreamHandle:
        self._require_transcoder()
        for boundary in (start, end):
            if boundary:
                commands.validate_time(boundary)

        urls = video.get_urls()
        command = commands.build_transcode_command(
            self._config.transcoder,
            self._config.transcoder_verbosity,
            urls[0],
            filetype=filetype,
            audio_bitrate=audio_bitrate,
            audio_only=audio_only,
            user_agent=video.get_prop("dump-user-agent"),
            rtmp_args=video.get_rtmp_arguments(),
            start=start,
            end=end,
        )
        return self._launch(command)

    def _launch(self, command: list[str]) -> StreamHandle:
        logger.debug("Launching transcoder: %s", command)
        return self._launcher.launch(command)
