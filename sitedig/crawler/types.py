"""Records and enums shared across the crawl engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .documents import Document


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for index rows and stats."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class FetchStatus(str, Enum):
    """Outcome of fetching one document."""

    PENDING = "pending"
    SUCCESS = "success"
    REDIRECT = "redirect"
    ERROR = "error"


class CrawlType(str, Enum):
    """Crawl flavour, selected by the scheme of the first start URL."""

    HTTP = "http"
    FILE = "file"

    @classmethod
    def for_url(cls, url: str) -> "CrawlType":
        if url.strip().lower().startswith("file://"):
            return cls.FILE
        return cls.HTTP


class CrawlState(str, Enum):
    """Lifecycle states of one crawler run."""

    IDLE = "idle"
    SEEDING = "seeding"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPING = "stopping"
    CLOSED = "closed"


class ProcessOutcome(str, Enum):
    """What happened to one document popped from the frontier."""

    INDEXED = "indexed"
    DUPLICATE = "duplicate"
    EXCLUDED = "excluded"
    NOT_INDEXABLE = "not_indexable"
    REDIRECTED = "redirected"
    REDIRECT_LIMIT = "redirect_limit"
    FETCH_ERROR = "fetch_error"
    FAILED = "failed"


@dataclass(slots=True)
class DocumentContent:
    """Extracted payload of a successfully fetched document."""

    title: str | None
    text: str
    links: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Work:
    """Frontier message carrying one document to process."""

    document: "Document"


@dataclass(frozen=True, slots=True)
class Stop:
    """Frontier message telling exactly one worker to exit."""


FrontierMessage = Union[Work, Stop]


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    seeded: int = 0
    enqueued: int = 0
    rejected: int = 0

    fetched_success: int = 0
    fetched_redirect: int = 0
    fetched_error: int = 0

    indexed: int = 0
    duplicates: int = 0
    index_excluded: int = 0
    failed: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "seeded": self.seeded,
            "enqueued": self.enqueued,
            "rejected": self.rejected,
            "fetched_success": self.fetched_success,
            "fetched_redirect": self.fetched_redirect,
            "fetched_error": self.fetched_error,
            "indexed": self.indexed,
            "duplicates": self.duplicates,
            "index_excluded": self.index_excluded,
            "failed": self.failed,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "CrawlState",
    "CrawlStats",
    "CrawlType",
    "DocumentContent",
    "FetchStatus",
    "FrontierMessage",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "ProcessOutcome",
    "Stop",
    "Work",
    "utc_now_iso",
]
