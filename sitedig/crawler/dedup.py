"""Thread-safe sets used to suppress repeated work across crawl workers."""

from __future__ import annotations

import logging
import threading
from typing import Hashable

from .documents import Document


LOGGER = logging.getLogger(__name__)


class ConcurrentSet:
    """A set whose only mutation is an atomic check-and-insert."""

    def __init__(self) -> None:
        self._items: set[Hashable] = set()
        self._lock = threading.Lock()

    def add(self, item: Hashable) -> bool:
        """Insert ``item``; return True only for the first insertion."""

        with self._lock:
            if item in self._items:
                return False
            self._items.add(item)
            return True

    def __contains__(self, item: object) -> bool:
        with self._lock:
            return item in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def snapshot(self) -> set[Hashable]:
        with self._lock:
            return set(self._items)


class DuplicateDetector:
    """Recognize the same content reached through different locators.

    Documents are keyed by their ETag. The first document carrying a token is
    admitted and every later one is rejected. Documents without a token always
    pass, since they cannot be deduplicated this way (think ``http://host/``
    and ``http://host/index.html`` served with one ETag).
    """

    def __init__(self) -> None:
        self._tokens = ConcurrentSet()

    def admit(self, token: str) -> bool:
        return self._tokens.add(token)

    def apply(self, document: Document) -> Document | None:
        token = document.etag
        if not token:
            return document
        if self.admit(token):
            return document
        LOGGER.debug("document %s has already-seen etag %s", document.uri, token)
        return None

    def __len__(self) -> int:
        return len(self._tokens)


__all__ = [
    "ConcurrentSet",
    "DuplicateDetector",
]
