"""Shared fixtures: an in-memory site and a recording indexer."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from sitedig.crawler import CrawlConfig, Document, DocumentContent
from sitedig.index import IndexConfig


class FakeSite:
    """Pages keyed by URL.

    Each page is a mapping with optional keys ``links``, ``etag``, ``text``,
    ``title``, ``redirect`` (target URL), ``error`` (message), and ``raise``
    (an exception instance thrown from fetch).
    """

    def __init__(self, pages: dict[str, dict[str, Any]]) -> None:
        self.pages = pages
        self.fetched: list[str] = []
        self._lock = threading.Lock()

    def record(self, uri: str) -> None:
        with self._lock:
            self.fetched.append(uri)

    def document(self, uri: str) -> "FakeDocument":
        return FakeDocument(uri, site=self)


class FakeDocument(Document):
    def __init__(self, uri: str, *, site: FakeSite, **kwargs: Any) -> None:
        super().__init__(uri, **kwargs)
        self.site = site

    def _child_kwargs(self) -> dict[str, Any]:
        return {"site": self.site}

    def _fetch(self) -> None:
        self.site.record(self.uri)
        page = self.site.pages.get(self.uri)
        if page is None:
            self._fail(f"HTTP status 404 for {self.uri}")
            return
        if "raise" in page:
            raise page["raise"]
        if "redirect" in page:
            self._redirect(page["redirect"])
            return
        if "error" in page:
            self._fail(page["error"])
            return
        self._succeed(
            DocumentContent(
                title=page.get("title"),
                text=page.get("text", f"content of {self.uri}"),
                links=list(page.get("links", [])),
            ),
            etag=page.get("etag"),
        )


class RecordingIndexer:
    def __init__(self, config: IndexConfig | None = None) -> None:
        self.config = config
        self.documents: list[Document] = []
        self.close_calls = 0
        self._lock = threading.Lock()

    def append(self, document: Document) -> None:
        with self._lock:
            self.documents.append(document)

    def close(self) -> None:
        self.close_calls += 1

    @property
    def urls(self) -> list[str]:
        return [document.uri for document in self.documents]


def make_config(start_urls: list[str], **overrides: Any) -> CrawlConfig:
    overrides.setdefault("wait_before_leave", 0.05)
    return CrawlConfig(start_urls=start_urls, **overrides)


@pytest.fixture
def indexer() -> RecordingIndexer:
    return RecordingIndexer()
