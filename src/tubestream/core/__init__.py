"""Core / service layer — pure orchestration and data transformations.

Rules
-----
* No ``print()`` calls.
* No direct subprocess, filesystem or network I/O — everything goes
  through the protocols in :mod:`tubestream.core.protocols`.
* No imports from ``cli`` or ``infra``.
"""

from tubestream.core.downloader import Downloader
from tubestream.core.models import (
    DownloaderConfig,
    MetadataDocument,
    StreamMode,
    StreamRequest,
    Strategy,
)
from tubestream.core.protocols import CommandRunner, HttpStreamer, StreamHandle, StreamLauncher
from tubestream.core.video import Video

__all__: list[str] = [
    "CommandRunner",
    "Downloader",
    "DownloaderConfig",
    "HttpStreamer",
    "MetadataDocument",
    "StreamHandle",
    "StreamLauncher",
    "StreamMode",
    "StreamRequest",
    "Strategy",
    "Video",
]
