"""Shared pytest fixtures and configuration for the tubestream test suite.

Guidelines
----------
* No internet access in any test.
* Extractor and transcoder subprocesses are faked at the protocol
  boundary (:class:`FakeRunner`, :class:`FakeLauncher`, :class:`FakeHttp`).
* Core tests must be pure — no side effects.
* Tests must not depend on OS state.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest

from tubestream.core.downloader import Downloader
from tubestream.core.models import CompletedCommand, DownloaderConfig

Response = str | tuple[int, str, str]


def info_json(**fields: Any) -> str:
    """Serialize a minimal extractor document, overridden by *fields*."""
    document: dict[str, Any] = {
        "title": "Sample Video",
        "protocol": "https",
        "ext": "mp4",
        "extractor_key": "Generic",
        "url": "https://cdn.example.com/video.mp4",
    }
    document.update(fields)
    return json.dumps(document)


class FakeStream:
    """In-memory stand-in for a stream handle."""

    def __init__(self, payload: bytes = b"media-bytes") -> None:
        self._payload = payload
        self._offset = 0
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        end = len(self._payload) if size < 0 else self._offset + size
        chunk = self._payload[self._offset:end]
        self._offset += len(chunk)
        return chunk

    def iter_chunks(self, chunk_size: int = 65536) -> Iterator[bytes]:
        while chunk := self.read(chunk_size):
            yield chunk

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class FakeRunner:
    """Scripted :class:`CommandRunner`.

    *responses* maps an extractor operation flag (``"--get-url"``) to
    either its stdout or a ``(returncode, stdout, stderr)`` triple.
    Transcoder ``-version`` probes succeed unless *transcoder_ok* is false.
    """

    def __init__(
        self,
        responses: Mapping[str, Response] | None = None,
        *,
        transcoder_ok: bool = True,
    ) -> None:
        self.responses: dict[str, Response] = dict(responses or {})
        self.transcoder_ok = transcoder_ok
        self.calls: list[list[str]] = []
        self.search_paths: list[str | None] = []

    def run(
        self,
        command: Sequence[str],
        *,
        search_path: str | None = None,
    ) -> CompletedCommand:
        argv = list(command)
        self.calls.append(argv)
        self.search_paths.append(search_path)

        if "-version" in argv:
            code = 0 if self.transcoder_ok else 1
            return CompletedCommand(tuple(argv), code, "ffmpeg version 6.0", "")

        flag = next(
            (arg for arg in argv if arg.startswith("--") and arg != "--no-warnings"),
            "",
        )
        response = self.responses.get(flag)
        if response is None:
            return CompletedCommand(tuple(argv), 1, "", f"ERROR: no response for {flag}")
        if isinstance(response, tuple):
            code, stdout, stderr = response
            return CompletedCommand(tuple(argv), code, stdout, stderr)
        return CompletedCommand(tuple(argv), 0, response, "")

    def count(self, flag: str) -> int:
        return sum(1 for call in self.calls if flag in call)


class FakeLauncher:
    """Records launched commands and hands back :class:`FakeStream` objects."""

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.streams: list[FakeStream] = []

    def launch(self, command: Sequence[str]) -> FakeStream:
        self.commands.append(list(command))
        stream = FakeStream(b"transcoded")
        self.streams.append(stream)
        return stream


@dataclass
class FakeHttpCall:
    url: str
    headers: dict[str, str]
    transport_headers: dict[str, str]


class FakeHttp:
    """Records streaming GET requests."""

    def __init__(self) -> None:
        self.calls: list[FakeHttpCall] = []

    def open(
        self,
        url: str,
        *,
        headers: Mapping[str, str],
        transport_headers: Mapping[str, str],
    ) -> FakeStream:
        self.calls.append(FakeHttpCall(url, dict(headers), dict(transport_headers)))
        return FakeStream(b"http-body")


@dataclass
class Harness:
    downloader: Downloader
    runner: FakeRunner
    launcher: FakeLauncher
    http: FakeHttp
    config: DownloaderConfig = field(repr=False)


@pytest.fixture
def config() -> DownloaderConfig:
    return DownloaderConfig(
        extractor="/opt/yt-dlp/yt_dlp",
        python="/usr/bin/python3",
        transcoder="/usr/bin/ffmpeg",
        helper_dir="/opt/helpers",
    )


@pytest.fixture
def make_harness(config: DownloaderConfig) -> Callable[..., Harness]:
    """Factory fixture: ``make_harness(responses, transcoder_ok=True)``."""

    def _make(
        responses: Mapping[str, Response] | None = None,
        *,
        transcoder_ok: bool = True,
    ) -> Harness:
        runner = FakeRunner(responses, transcoder_ok=transcoder_ok)
        launcher = FakeLauncher()
        http = FakeHttp()
        downloader = Downloader(config, runner=runner, launcher=launcher, http=http)
        return Harness(downloader, runner, launcher, http, config)

    return _make
