"""Tests for transcoder process handles (infra/stream_supervisor.py).

:class:`subprocess.Popen` is mocked — no process is spawned.  Pipes are
:class:`io.BytesIO` objects.

Coverage:
* Reading to EOF waits for the process; non-zero exit raises.
* Early close terminates, then kills after the timeout.
* Launch failures raise ``PopenStreamError``.
"""

from __future__ import annotations

import io
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from tubestream.exceptions import PopenStreamError, TranscoderError
from tubestream.infra.stream_supervisor import ProcessStream, SubprocessLauncher

COMMAND = ["ffmpeg", "-i", "https://x/a b.mp4", "pipe:1"]


def _process(stdout: bytes = b"payload", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.pid = 4242
    process.stdout = io.BytesIO(stdout)
    process.stderr = io.BytesIO(stderr)
    process.wait.return_value = returncode
    process.poll.return_value = None
    return process


# ---------------------------------------------------------------------------
# ProcessStream
# ---------------------------------------------------------------------------

class TestProcessStreamReading:
    def test_read_all_then_eof(self) -> None:
        stream = ProcessStream(_process(b"abcdef"), COMMAND)
        assert stream.read() == b"abcdef"
        assert stream.read() == b""

    def test_sized_reads(self) -> None:
        stream = ProcessStream(_process(b"abcdef"), COMMAND)
        assert stream.read(4) == b"abcd"
        assert stream.read(4) == b"ef"

    def test_iter_chunks(self) -> None:
        stream = ProcessStream(_process(b"abcdefg"), COMMAND)
        assert list(stream.iter_chunks(3)) == [b"abc", b"def", b"g"]

    def test_nonzero_exit_raises(self) -> None:
        stream = ProcessStream(_process(b"", b"Invalid data found\n", returncode=1), COMMAND)
        with pytest.raises(TranscoderError) as exc_info:
            stream.read()
        assert exc_info.value.exit_status == 1
        assert "Invalid data found" in str(exc_info.value)
        assert "'https://x/a b.mp4'" in str(exc_info.value)

    def test_exit_checked_once(self) -> None:
        process = _process(b"")
        stream = ProcessStream(process, COMMAND)
        stream.read()
        stream.read()
        assert process.wait.call_count == 1

    def test_read_after_close(self) -> None:
        stream = ProcessStream(_process(), COMMAND)
        stream.close()
        with pytest.raises(ValueError):
            stream.read()

    def test_missing_stdout(self) -> None:
        process = _process()
        process.stdout = None
        with pytest.raises(PopenStreamError):
            ProcessStream(process, COMMAND)

    def test_command_line_quoted(self) -> None:
        stream = ProcessStream(_process(), COMMAND)
        assert stream.command_line == "ffmpeg -i 'https://x/a b.mp4' pipe:1"
        assert stream.pid == 4242


class TestProcessStreamClose:
    def test_close_running_process_terminates(self) -> None:
        process = _process()
        with ProcessStream(process, COMMAND) as stream:
            stream.read(2)
        process.terminate.assert_called_once()
        process.wait.assert_called_once_with(timeout=5.0)
        process.kill.assert_not_called()
        assert stream.closed

    def test_kill_after_timeout(self) -> None:
        process = _process()
        process.wait.side_effect = [subprocess.TimeoutExpired("ffmpeg", 5.0), -9]
        ProcessStream(process, COMMAND).close()
        process.kill.assert_called_once()

    def test_close_finished_process(self) -> None:
        process = _process()
        process.poll.return_value = 0
        ProcessStream(process, COMMAND).close()
        process.terminate.assert_not_called()

    def test_close_idempotent(self) -> None:
        process = _process()
        stream = ProcessStream(process, COMMAND)
        stream.close()
        stream.close()
        process.terminate.assert_called_once()


# ---------------------------------------------------------------------------
# SubprocessLauncher
# ---------------------------------------------------------------------------

class TestSubprocessLauncher:
    @patch("tubestream.infra.stream_supervisor.subprocess.Popen")
    def test_launch(self, mock_popen: MagicMock) -> None:
        mock_popen.return_value = _process(b"data")
        stream = SubprocessLauncher().launch(COMMAND)

        assert stream.read() == b"data"
        args, kwargs = mock_popen.call_args
        assert args[0] == COMMAND
        assert kwargs["bufsize"] == 0
        assert kwargs["stdout"] is subprocess.PIPE
        assert kwargs["stdin"] is subprocess.DEVNULL

    @patch("tubestream.infra.stream_supervisor.subprocess.Popen")
    def test_os_error(self, mock_popen: MagicMock) -> None:
        mock_popen.side_effect = FileNotFoundError("ffmpeg")
        with pytest.raises(PopenStreamError) as exc_info:
            SubprocessLauncher().launch(COMMAND)
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    @patch("tubestream.infra.stream_supervisor.subprocess.Popen")
    def test_no_stdout_pipe(self, mock_popen: MagicMock) -> None:
        process = _process()
        process.stdout = None
        mock_popen.return_value = process
        with pytest.raises(PopenStreamError, match="Could not open popen stream"):
            SubprocessLauncher().launch(COMMAND)
        process.kill.assert_called_once()
