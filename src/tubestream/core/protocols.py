"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from types import TracebackType
from typing import Protocol

from tubestream.core.models import CompletedCommand


class CommandRunner(Protocol):
    """Contract for running a short-lived subprocess to completion."""

    def run(
        self,
        command: Sequence[str],
        *,
        search_path: str | None = None,
    ) -> CompletedCommand:
        """Run *command*, capturing its text output.

        Parameters
        ----------
        command:
            Full argument vector, program first.
        search_path:
            Directory prepended to the child's ``PATH`` when given.

        A non-zero exit status is **not** an error at this level — the
        caller inspects :attr:`CompletedCommand.returncode`.

        Raises
        ------
        EnvironmentError
            When the program cannot be launched at all.
        """
        ...  # pragma: no cover


class StreamHandle(Protocol):
    """A live, read-once byte source."""

    @property
    def closed(self) -> bool:
        ...  # pragma: no cover

    def read(self, size: int = -1) -> bytes:
        """Read up to *size* bytes; ``b""`` at end of stream."""
        ...  # pragma: no cover

    def iter_chunks(self, chunk_size: int = 65536) -> Iterator[bytes]:
        ...  # pragma: no cover

    def close(self) -> None:
        """Release the producer (terminate the process / close the response)."""
        ...  # pragma: no cover

    def __enter__(self) -> StreamHandle:
        ...  # pragma: no cover

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        ...  # pragma: no cover


class StreamLauncher(Protocol):
    """Contract for launching a long-running transcoder subprocess."""

    def launch(self, command: Sequence[str]) -> StreamHandle:
        """Start *command* with its stdout connected to a pipe.

        Raises
        ------
        PopenStreamError
            When the process or its pipe could not be established.
        """
        ...  # pragma: no cover


class HttpStreamer(Protocol):
    """Contract for streaming GET requests against upstream media servers."""

    def open(
        self,
        url: str,
        *,
        headers: Mapping[str, str],
        transport_headers: Mapping[str, str],
    ) -> StreamHandle:
        """Issue a streaming GET and return the response body.

        *headers* are sent as ordinary request headers; *transport_headers*
        are stamped on the outgoing request by the transport adapter.

        Raises
        ------
        UpstreamHttpError
            On connection failure or a non-2xx response.
        """
        ...  # pragma: no cover
