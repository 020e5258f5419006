"""Crawl documents: one locator, its lineage, and the outcome of fetching it."""

from __future__ import annotations

import logging
import mimetypes
import os
from typing import Any
from urllib.parse import urljoin

from .config import CrawlConfig
from .fetcher import HttpFetcher
from .parsers import HTMLParserConfig, extract_content
from .types import CrawlType, DocumentContent, FetchStatus
from .url import file_uri_to_path, path_to_file_uri


LOGGER = logging.getLogger(__name__)


class Document:
    """A crawl candidate and, once fetched, its result.

    ``uri`` is the document's identity and may be rewritten by filters (for
    example URI normalization) before the document is fetched. ``referrer``
    is a back-reference to the discovering document, never an owner.
    """

    def __init__(
        self,
        uri: str,
        *,
        depth: int = 0,
        referrer: "Document | None" = None,
        redirect_count: int = 0,
    ) -> None:
        self.uri = uri
        self.depth = depth
        self.referrer = referrer
        self.redirect_count = redirect_count

        self.status = FetchStatus.PENDING
        self.content: DocumentContent | None = None
        self.redirect_target: str | None = None
        self.etag: str | None = None
        self.error: str | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.uri!r}, depth={self.depth}, status={self.status.value})"

    def __str__(self) -> str:
        return self.uri

    def fetch(self) -> FetchStatus:
        """Fetch the document once and return the terminal status."""

        if self.status != FetchStatus.PENDING:
            raise RuntimeError(f"Document already fetched: {self.uri}")
        LOGGER.debug("fetching %s", self.uri)
        self._fetch()
        if self.status == FetchStatus.PENDING:
            raise RuntimeError(f"Fetch left document pending: {self.uri}")
        return self.status

    def _fetch(self) -> None:
        raise NotImplementedError

    def create_child(self, uri: str, *, redirect: bool = False) -> "Document":
        """Create a document for a locator discovered by this one."""

        return self.__class__(
            uri,
            depth=self.depth + 1,
            referrer=self,
            redirect_count=self.redirect_count + 1 if redirect else 0,
            **self._child_kwargs(),
        )

    def _child_kwargs(self) -> dict[str, Any]:
        return {}

    @property
    def referring_uri(self) -> str | None:
        return None if self.referrer is None else self.referrer.uri

    @property
    def links(self) -> list[str]:
        if self.status != FetchStatus.SUCCESS or self.content is None:
            return []
        return list(self.content.links)

    @property
    def needs_indexing(self) -> bool:
        return (
            self.status == FetchStatus.SUCCESS
            and self.content is not None
            and bool(self.content.text.strip())
        )

    def _succeed(self, content: DocumentContent, *, etag: str | None = None) -> None:
        self.content = content
        self.etag = etag
        self.status = FetchStatus.SUCCESS

    def _redirect(self, target: str) -> None:
        self.redirect_target = target
        self.status = FetchStatus.REDIRECT

    def _fail(self, message: str) -> None:
        self.error = message
        self.status = FetchStatus.ERROR


class HttpDocument(Document):
    """Document reachable over HTTP(S)."""

    def __init__(
        self,
        uri: str,
        *,
        fetcher: HttpFetcher,
        extraction: HTMLParserConfig | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(uri, **kwargs)
        self.fetcher = fetcher
        self.extraction = extraction

    def _child_kwargs(self) -> dict[str, Any]:
        return {"fetcher": self.fetcher, "extraction": self.extraction}

    def _fetch(self) -> None:
        result = self.fetcher.fetch(self.uri)

        if result.is_redirect:
            self._redirect(urljoin(self.uri, result.headers["Location"]))
            return

        if not result.ok:
            self._fail(result.error or f"HTTP status {result.status_code}")
            return

        content = extract_content(
            result.body or b"",
            result.content_type,
            base_url=self.uri,
            config=self.extraction,
        )
        if content is None:
            self._fail(f"Unsupported content type: {result.content_type}")
            return

        self._succeed(content, etag=result.etag)


class FileDocument(Document):
    """Document on the local filesystem, addressed by a ``file://`` locator."""

    def __init__(self, uri: str, *, extraction: HTMLParserConfig | None = None, **kwargs: Any) -> None:
        super().__init__(uri, **kwargs)
        self.extraction = extraction

    def _child_kwargs(self) -> dict[str, Any]:
        return {"extraction": self.extraction}

    @property
    def path(self) -> str:
        return os.fspath(file_uri_to_path(self.uri))

    def _fetch(self) -> None:
        path = self.path

        if os.path.isdir(path):
            self._succeed(DocumentContent(title=None, text="", links=self._list_directory(path)))
            return

        if not os.path.isfile(path):
            self._fail(f"No such file: {path}")
            return

        try:
            with open(path, "rb") as handle:
                body = handle.read()
        except OSError as exc:
            self._fail(f"{exc.__class__.__name__}: {exc}")
            return

        content_type, _ = mimetypes.guess_type(path)
        content = extract_content(
            body,
            content_type or "text/plain",
            base_url=self.uri,
            config=self.extraction,
        )
        if content is None:
            self._fail(f"Unsupported content type: {content_type}")
            return

        if not content.title:
            content.title = os.path.basename(path)
        self._succeed(content)

    @staticmethod
    def _list_directory(path: str) -> list[str]:
        links: list[str] = []
        for name in sorted(os.listdir(path)):
            if name.startswith("."):
                continue
            entry = os.path.join(path, name)
            links.append(path_to_file_uri(entry, directory=os.path.isdir(entry)))
        return links


class DocumentFactory:
    """Create root documents for start URLs with the right fetch collaborator."""

    def __init__(
        self,
        config: CrawlConfig,
        *,
        extraction: HTMLParserConfig | None = None,
        fetcher: HttpFetcher | None = None,
    ) -> None:
        self.config = config
        self.extraction = extraction
        self._fetcher = fetcher

    @property
    def fetcher(self) -> HttpFetcher:
        if self._fetcher is None:
            self._fetcher = HttpFetcher(self.config)
        return self._fetcher

    def create(self, uri: str) -> Document:
        if CrawlType.for_url(uri) == CrawlType.FILE:
            return FileDocument(uri, extraction=self.extraction)
        return HttpDocument(uri, fetcher=self.fetcher, extraction=self.extraction)

    def __call__(self, uri: str) -> Document:
        return self.create(uri)

    def close(self) -> None:
        if self._fetcher is not None:
            self._fetcher.close()


__all__ = [
    "Document",
    "DocumentFactory",
    "FileDocument",
    "HttpDocument",
]
