"""Transcoder process launching and the pipe-backed stream handle.

:class:`SubprocessLauncher` satisfies
:class:`~tubestream.core.protocols.StreamLauncher`.  It returns a
:class:`ProcessStream` only once the process is running with a readable
stdout pipe; anything else raises
:class:`~tubestream.exceptions.PopenStreamError` before a handle exists.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
from collections.abc import Iterator, Sequence
from types import TracebackType
from typing import IO

from tubestream.exceptions import PopenStreamError, TranscoderError

logger = logging.getLogger(__name__)

_TERMINATE_TIMEOUT = 5.0


class ProcessStream:
    """Read-once byte stream over a subprocess's stdout.

    Bytes are produced by the child as the caller reads; nothing is
    buffered beyond the pipe itself.  Reaching end of stream waits for
    the process and raises :class:`TranscoderError` on a non-zero exit.
    Closing early terminates the process instead.
    """

    def __init__(self, process: subprocess.Popen[bytes], command: Sequence[str]) -> None:
        if process.stdout is None:
            raise PopenStreamError()
        self._process = process
        self._stdout: IO[bytes] = process.stdout
        self._command_line = shlex.join(command)
        self._stderr_chunks: list[bytes] = []
        self._closed = False
        self._finished = False
        self._stderr_thread: threading.Thread | None = None
        if process.stderr is not None:
            self._stderr_thread = threading.Thread(
                target=self._drain_stderr,
                args=(process.stderr,),
                name=f"stderr-{process.pid}",
                daemon=True,
            )
            self._stderr_thread.start()

    def __repr__(self) -> str:
        return f"ProcessStream(pid={self._process.pid}, closed={self._closed})"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def command_line(self) -> str:
        return self._command_line

    @property
    def stderr_text(self) -> str:
        return b"".join(self._stderr_chunks).decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self, size: int = -1) -> bytes:
        if self._closed:
            raise ValueError("I/O operation on closed stream.")
        data = self._stdout.read() if size < 0 else self._stdout.read(size)
        if not data and size != 0:
            self._finish()
        return data or b""

    def iter_chunks(self, chunk_size: int = 65536) -> Iterator[bytes]:
        while True:
            chunk = self.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_chunks()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._process.poll() is None:
            logger.warning(
                "Stream closed before pid %d finished; terminating it",
                self._process.pid,
            )
            self._process.terminate()
            try:
                self._process.wait(timeout=_TERMINATE_TIMEOUT)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()
        self._stdout.close()
        self._join_stderr()

    def __enter__(self) -> ProcessStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _drain_stderr(self, stderr: IO[bytes]) -> None:
        for chunk in iter(lambda: stderr.read(4096), b""):
            self._stderr_chunks.append(chunk)
        stderr.close()

    def _join_stderr(self) -> None:
        if self._stderr_thread is not None:
            self._stderr_thread.join(timeout=_TERMINATE_TIMEOUT)

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        returncode = self._process.wait()
        self._join_stderr()
        logger.debug("pid %d exited with status %d", self._process.pid, returncode)
        if returncode != 0:
            raise TranscoderError(self._command_line, self.stderr_text, returncode)


class SubprocessLauncher:
    """Concrete :class:`StreamLauncher` built on :class:`subprocess.Popen`."""

    def launch(self, command: Sequence[str]) -> ProcessStream:
        argv = [str(part) for part in command]
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
            )
        except OSError as exc:
            raise PopenStreamError(
                f"Could not open popen stream: {exc}",
                hint="Check the configured transcoder path.",
            ) from exc

        if process.stdout is None:
            process.kill()
            process.wait()
            raise PopenStreamError()

        logger.debug("Started %s (pid %d)", argv[0], process.pid)
        return ProcessStream(process, argv)
