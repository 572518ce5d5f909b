"""The per-request video entity.

A :class:`Video` is identified by a page URL, a format selector and an
optional password.  Everything else — metadata, direct URLs, filenames,
RTMP flags — is derived from extractor queries run through the owning
:class:`~tubestream.core.downloader.Downloader`.

Metadata is held in a one-shot cache cell: the first access resolves it,
later accesses return the cached document (or re-raise the cached
failure).  A Video is not thread-safe; callers sharing one across
threads must synchronise access themselves.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from tubestream.core.commands import rtmp_arguments, rtmp_property_names
from tubestream.core.models import MetadataDocument
from tubestream.exceptions import EmptyUrlError, TubestreamError

if TYPE_CHECKING:
    from tubestream.core.downloader import Downloader


class _CellState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(slots=True)
class _MetadataCell:
    state: _CellState = _CellState.UNINITIALIZED
    document: MetadataDocument | None = None
    error: TubestreamError | None = None


class Video:
    """A web page resolved (lazily) into media metadata and URLs.

    Parameters
    ----------
    downloader:
        The downloader whose configuration runs every extractor query.
    webpage_url:
        URL of the page containing the video.
    requested_format:
        Any format selector the extractor accepts
        (e.g. ``"best"``, ``"bestvideo+bestaudio"``, ``"[height<=720]"``).
    password:
        Video password, forwarded with ``--video-password``.
    """

    def __init__(
        self,
        downloader: Downloader,
        webpage_url: str,
        requested_format: str | None = None,
        password: str | None = None,
    ) -> None:
        self._downloader = downloader
        self._webpage_url = webpage_url
        self._requested_format = requested_format
        self._password = password
        self._cell = _MetadataCell()
        self._urls: list[str] | None = None

    def __repr__(self) -> str:
        return (
            f"Video({self._webpage_url!r}, format={self._requested_format!r}, "
            f"state={self._cell.state.value})"
        )

    @property
    def webpage_url(self) -> str:
        return self._webpage_url

    @property
    def requested_format(self) -> str | None:
        return self._requested_format

    @property
    def password(self) -> str | None:
        return self._password

    @property
    def is_resolved(self) -> bool:
        return self._cell.state is _CellState.RESOLVED

    # ------------------------------------------------------------------
    # Extractor queries
    # ------------------------------------------------------------------

    def get_prop(self, prop: str = "dump-json") -> str:
        """Run the extractor with ``--<prop>`` for this video.

        Raises
        ------
        PasswordRequiredError, WrongPasswordError, ExtractorError
            As classified from the extractor's stderr.
        """
        arguments = [f"--{prop}", self._webpage_url]
        if self._requested_format is not None:
            arguments += ["-f", self._requested_format]
        if self._password is not None:
            arguments += ["--video-password", self._password]
        return self._downloader.call_extractor(arguments)

    def ensure_resolved(self) -> MetadataDocument:
        """Fetch the metadata document once and return it.

        Raises
        ------
        MetadataParseError
            When the extractor output is not a JSON object.
        ExtractorError
            Or one of its subclasses, when the extractor fails.
        """
        cell = self._cell
        if cell.state is _CellState.RESOLVED and cell.document is not None:
            return cell.document
        if cell.state is _CellState.FAILED and cell.error is not None:
            raise cell.error

        try:
            document = MetadataDocument.from_json(self.get_prop("dump-single-json"))
        except TubestreamError as exc:
            cell.state, cell.error = _CellState.FAILED, exc
            raise
        cell.state, cell.document = _CellState.RESOLVED, document
        return document

    @property
    def metadata(self) -> MetadataDocument:
        return self.ensure_resolved()

    def has(self, name: str) -> bool:
        return self.ensure_resolved().has(name)

    def get(self, name: str, default: Any = None) -> Any:
        return self.ensure_resolved().get(name, default)

    @property
    def title(self) -> str | None:
        return self.ensure_resolved().title

    @property
    def protocol(self) -> str | None:
        return self.ensure_resolved().protocol

    @property
    def ext(self) -> str | None:
        return self.ensure_resolved().ext

    @property
    def extractor_key(self) -> str | None:
        return self.ensure_resolved().extractor_key

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def get_urls(self) -> list[str]:
        """Return the direct media URLs, one per selected rendition.

        Usually a single URL; two when the format selector combines a
        video and an audio stream (e.g. ``bestvideo+bestaudio``).

        Raises
        ------
        EmptyUrlError
            When the first resolved URL is empty.
        """
        if self._urls is None:
            urls = self.get_prop("get-url").split("\n")
            if not urls[0]:
                raise EmptyUrlError()
            self._urls = urls
        return list(self._urls)

    def get_filename(self) -> str:
        return self.get_prop("get-filename").strip()

    def get_filename_with_extension(self, extension: str) -> str:
        """Return :meth:`get_filename` with the container extension replaced."""
        filename = self.get_filename()
        current = self.ext
        if not current:
            return filename
        return filename.replace(f".{current}", f".{extension}", 1)

    def get_rtmp_arguments(self) -> list[str]:
        """Return the ``-rtmp_*`` transcoder flags; empty unless protocol is rtmp."""
        document = self.ensure_resolved()
        if document.protocol != "rtmp":
            return []
        properties = {
            prop: str(document[prop])
            for prop in rtmp_property_names()
            if document.has(prop) and document[prop] is not None
        }
        return rtmp_arguments(properties, document.rtmp_conn)

    def with_format(self, requested_format: str) -> Video:
        """Return a new, unresolved Video for the same page in another format."""
        return Video(self._downloader, self._webpage_url, requested_format, self._password)
