"""Wire the core :class:`~tubestream.core.downloader.Downloader` to its adapters."""

from __future__ import annotations

from pathlib import Path

from tubestream.core.downloader import Downloader
from tubestream.core.models import DownloaderConfig
from tubestream.infra.config_loader import load_config
from tubestream.infra.http_stream import RequestsHttpStreamer
from tubestream.infra.process_runner import SubprocessRunner
from tubestream.infra.stream_supervisor import SubprocessLauncher


def create_downloader(config: DownloaderConfig) -> Downloader:
    """Return a downloader using the subprocess and requests adapters."""
    return Downloader(
        config,
        runner=SubprocessRunner(),
        launcher=SubprocessLauncher(),
        http=RequestsHttpStreamer(),
    )


def downloader_from_config_file(path: Path | None = None) -> Downloader:
    """Shortcut for :func:`create_downloader` over :func:`load_config`."""
    return create_downloader(load_config(path))
