"""Infrastructure layer — external system integration.

This layer wraps all interaction with subprocesses (yt-dlp, ffmpeg),
upstream HTTP servers and the filesystem.  Every raw third-party
exception must be caught here and re-raised as a
:class:`~tubestream.exceptions.TubestreamError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from tubestream.infra.config_loader import load_config
from tubestream.infra.factory import create_downloader, downloader_from_config_file
from tubestream.infra.http_stream import HttpStream, RequestsHttpStreamer
from tubestream.infra.process_runner import SubprocessRunner
from tubestream.infra.stream_supervisor import ProcessStream, SubprocessLauncher
from tubestream.infra.transcoder_detector import TranscoderStatus, detect_transcoder

__all__: list[str] = [
    "HttpStream",
    "ProcessStream",
    "RequestsHttpStreamer",
    "SubprocessLauncher",
    "SubprocessRunner",
    "TranscoderStatus",
    "create_downloader",
    "detect_transcoder",
    "downloader_from_config_file",
    "load_config",
]
