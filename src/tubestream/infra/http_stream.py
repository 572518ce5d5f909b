""":mod:`requests` backed implementation of :class:`~tubestream.core.protocols.HttpStreamer`.

This module is the only place that talks HTTP.  Every
:class:`requests.RequestException` is re-raised as
:class:`~tubestream.exceptions.UpstreamHttpError`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import TracebackType
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import HTTPError as Urllib3Error

from tubestream.exceptions import UpstreamHttpError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: tuple[float, float | None] = (10.0, None)
"""(connect, read) timeouts; reads are unbounded, callers own deadlines."""


class TransportHeaderAdapter(HTTPAdapter):
    """HTTP adapter that stamps fixed headers on every request it sends.

    :meth:`add_headers` runs on the prepared request after :mod:`requests`
    has merged session and application headers, so a transport header
    replaces any application header of the same name.
    """

    def __init__(self, transport_headers: Mapping[str, str], **kwargs: Any) -> None:
        self._transport_headers = dict(transport_headers)
        super().__init__(**kwargs)

    def add_headers(self, request: requests.PreparedRequest, **kwargs: Any) -> None:
        super().add_headers(request, **kwargs)
        # Design wart: this duplicates the document's Referer already merged
        # into the application headers, and outranks a caller override.
        for name, value in self._transport_headers.items():
            request.headers[name] = value


class HttpStream:
    """Read-once byte stream over a streaming :class:`requests.Response`."""

    def __init__(self, response: requests.Response, session: requests.Session | None = None) -> None:
        self._response = response
        self._session = session
        self._closed = False

    def __repr__(self) -> str:
        return f"HttpStream(status={self._response.status_code}, closed={self._closed})"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> Mapping[str, str]:
        return self._response.headers

    def read(self, size: int = -1) -> bytes:
        if self._closed:
            raise ValueError("I/O operation on closed stream.")
        amount = None if size < 0 else size
        try:
            data = self._response.raw.read(amount, decode_content=True)
        except (requests.RequestException, Urllib3Error) as exc:
            raise UpstreamHttpError(f"Upstream read failed: {exc}") from exc
        return data or b""

    def iter_chunks(self, chunk_size: int = 65536) -> Iterator[bytes]:
        if self._closed:
            raise ValueError("I/O operation on closed stream.")
        try:
            yield from self._response.iter_content(chunk_size=chunk_size)
        except requests.RequestException as exc:
            raise UpstreamHttpError(f"Upstream read failed: {exc}") from exc

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_chunks()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._response.close()
        if self._session is not None:
            self._session.close()

    def __enter__(self) -> HttpStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class RequestsHttpStreamer:
    """Concrete :class:`HttpStreamer`; one session per opened stream."""

    def __init__(self, *, timeout: tuple[float, float | None] = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout

    @staticmethod
    def _build_session(transport_headers: Mapping[str, str]) -> requests.Session:
        session = requests.Session()
        if transport_headers:
            adapter = TransportHeaderAdapter(transport_headers)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        return session

    def open(
        self,
        url: str,
        *,
        headers: Mapping[str, str],
        transport_headers: Mapping[str, str],
    ) -> HttpStream:
        """Issue a streaming GET; raise on connection failure or non-2xx status."""
        session = self._build_session(transport_headers)
        try:
            response = session.get(
                url,
                headers=dict(headers),
                stream=True,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            session.close()
            raise UpstreamHttpError(
                f"Could not reach upstream media server: {exc}",
            ) from exc

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            response.close()
            session.close()
            raise UpstreamHttpError(
                f"Upstream media server answered {response.status_code}.",
                status_code=response.status_code,
                hint="The direct URL may have expired; resolve the video again.",
            ) from exc

        logger.debug("Streaming %s (status %d)", url, response.status_code)
        return HttpStream(response, session)
