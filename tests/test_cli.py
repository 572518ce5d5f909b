"""Tests for CLI routing and the error boundary (cli/app.py).

The downloader is built from the conftest fakes and injected by patching
``_create_downloader`` — no subprocess, no network.

Coverage:
* No command prints help; ``--version`` exits 0.
* ``info`` / ``stream`` / ``extractors`` dispatch.
* Stream request assembly from flags.
* ``cli()`` exit codes per error class.
"""

from __future__ import annotations

import argparse
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from conftest import Harness, info_json
from tubestream.cli import exit_codes
from tubestream.cli.app import _parse_headers, _stream_request, cli, main
from tubestream.core.models import StreamMode
from tubestream.exceptions import (
    PasswordRequiredError,
    RemuxConflictError,
    TubestreamError,
)

URL = "https://www.example.com/watch?v=abc"


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == exit_codes.SUCCESS
        assert "usage" in capsys.readouterr().out.lower()

    def test_version(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0

    def test_conflicting_modes_rejected(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["stream", URL, "--audio", "--remux"])
        assert exc_info.value.code == 2

    def test_extractors(
        self,
        make_harness: Callable[..., Harness],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        h = make_harness({"--list-extractors": "youtube\nvimeo"})
        with patch("tubestream.cli.app._create_downloader", return_value=h.downloader):
            assert main(["extractors"]) == exit_codes.SUCCESS
        assert capsys.readouterr().out == "youtube\nvimeo\n"

    def test_info(self, make_harness: Callable[..., Harness]) -> None:
        h = make_harness({
            "--dump-single-json": info_json(title="Hello"),
            "--get-url": "https://cdn/x.mp4\n",
        })
        with patch("tubestream.cli.app._create_downloader", return_value=h.downloader):
            assert main(["info", URL, "-f", "best"]) == exit_codes.SUCCESS
        assert h.runner.count("--dump-single-json") == 1
        assert h.runner.count("--get-url") == 1

    def test_info_playlist_skips_urls(self, make_harness: Callable[..., Harness]) -> None:
        h = make_harness({
            "--dump-single-json": info_json(_type="playlist", entries=[{"title": "a"}]),
        })
        with patch("tubestream.cli.app._create_downloader", return_value=h.downloader):
            assert main(["info", URL]) == exit_codes.SUCCESS
        assert h.runner.count("--get-url") == 0

    def test_stream_to_file(self, make_harness: Callable[..., Harness], tmp_path: Path) -> None:
        h = make_harness({
            "--dump-single-json": info_json(),
            "--get-url": "https://cdn/x.mp4\n",
        })
        out = tmp_path / "out.mp4"
        with patch("tubestream.cli.app._create_downloader", return_value=h.downloader):
            code = main(["stream", URL, "-o", str(out), "-H", "Range: bytes=0-"])

        assert code == exit_codes.SUCCESS
        assert out.read_bytes() == b"http-body"
        assert h.http.calls[0].headers == {"Range": "bytes=0-"}

    def test_stream_audio(self, make_harness: Callable[..., Harness], tmp_path: Path) -> None:
        h = make_harness({
            "--dump-single-json": info_json(),
            "--get-url": "https://cdn/x.mp4\n",
            "--dump-user-agent": "UA",
        })
        out = tmp_path / "out.mp3"
        with patch("tubestream.cli.app._create_downloader", return_value=h.downloader):
            main(["stream", URL, "--audio", "--bitrate", "64", "--from", "0:05", "-o", str(out)])

        command = h.launcher.commands[0]
        assert command[command.index("-b:a") + 1] == "64k"
        assert command[command.index("-ss") + 1] == "0:05"
        assert h.launcher.streams[0].closed
        assert out.read_bytes() == b"transcoded"

    def test_doctor_dispatch(self) -> None:
        with patch("tubestream.cli.doctor.run_doctor", return_value=exit_codes.SUCCESS) as mock:
            assert main(["--config", "x.toml", "doctor"]) == exit_codes.SUCCESS
        mock.assert_called_once_with(Path("x.toml"))


# ---------------------------------------------------------------------------
# Request assembly
# ---------------------------------------------------------------------------

def _args(**overrides: object) -> argparse.Namespace:
    values: dict[str, object] = {
        "audio": False,
        "convert": None,
        "remux": False,
        "bitrate": 128,
        "start": None,
        "end": None,
        "header": [],
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class TestStreamRequest:
    def test_raw_default(self) -> None:
        assert _stream_request(_args()).mode is StreamMode.RAW

    def test_convert(self) -> None:
        request = _stream_request(_args(convert="webm", bitrate=96))
        assert request.mode is StreamMode.CONVERT
        assert request.filetype == "webm"
        assert request.audio_bitrate == 96

    def test_remux(self) -> None:
        assert _stream_request(_args(remux=True)).mode is StreamMode.REMUX

    def test_headers(self) -> None:
        assert _parse_headers(["A: 1", "B:two:three"]) == {"A": "1", "B": "two:three"}

    @pytest.mark.parametrize("raw", ["no-colon", ": value"])
    def test_bad_header(self, raw: str) -> None:
        with pytest.raises(TubestreamError, match="Invalid header"):
            _parse_headers([raw])


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------

class TestCliBoundary:
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (PasswordRequiredError("locked"), exit_codes.CREDENTIALS_REQUIRED),
            (RemuxConflictError("two urls"), exit_codes.GENERAL_ERROR),
            (KeyboardInterrupt(), exit_codes.KEYBOARD_INTERRUPT),
            (RuntimeError("bug"), exit_codes.UNEXPECTED_ERROR),
        ],
    )
    def test_exit_codes(self, error: BaseException, expected: int) -> None:
        with patch("tubestream.cli.app.main", side_effect=error):
            with pytest.raises(SystemExit) as exc_info:
                cli()
        assert exc_info.value.code == expected

    @patch("tubestream.cli.app.main", return_value=exit_codes.SUCCESS)
    def test_success(self, _mock_main: MagicMock) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli()
        assert exc_info.value.code == exit_codes.SUCCESS

    def test_hint_rendered(self, capsys: pytest.CaptureFixture[str]) -> None:
        error = TubestreamError("boom", hint="try again")
        with patch("tubestream.cli.app.main", side_effect=error):
            with pytest.raises(SystemExit):
                cli()
        err = capsys.readouterr().err
        assert "boom" in err
        assert "try again" in err
