"""Crawl counters shared by the controller and its workers."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .types import CrawlStats, FetchStatus, ProcessOutcome


class StatsCollector:
    """Lock-guarded tally of what a crawl did.

    `CrawlStats` holds the headline numbers; outcome and error-type
    breakdowns are kept next to it and merged into `to_json`.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._outcomes: Counter[str] = Counter()
        self._error_types: Counter[str] = Counter()
        self._frontier: dict[str, int] = {}

    def record_seed(self, accepted: bool) -> None:
        with self._lock:
            if accepted:
                self._core.seeded += 1
                self._core.enqueued += 1
            else:
                self._core.rejected += 1

    def record_enqueue(self, accepted: bool) -> None:
        """Count one discovered locator offered to the crawl chain."""

        with self._lock:
            if accepted:
                self._core.enqueued += 1
            else:
                self._core.rejected += 1

    def record_fetch(self, status: FetchStatus, error: str | None = None) -> None:
        with self._lock:
            if status == FetchStatus.SUCCESS:
                self._core.fetched_success += 1
            elif status == FetchStatus.REDIRECT:
                self._core.fetched_redirect += 1
            else:
                self._core.fetched_error += 1

            if error:
                # "ConnectionError: ..." style messages are keyed by their prefix.
                self._error_types[error.partition(":")[0].strip() or "Unknown"] += 1

    def record_outcome(self, outcome: ProcessOutcome) -> None:
        with self._lock:
            self._outcomes[outcome.value] += 1
            if outcome == ProcessOutcome.INDEXED:
                self._core.indexed += 1
            elif outcome == ProcessOutcome.DUPLICATE:
                self._core.duplicates += 1
            elif outcome == ProcessOutcome.EXCLUDED:
                self._core.index_excluded += 1
            elif outcome == ProcessOutcome.FAILED:
                self._core.failed += 1

    def record_exception(self, exc: BaseException) -> None:
        with self._lock:
            self._error_types[type(exc).__name__] += 1

    def record_frontier_snapshot(self, snapshot: Mapping[str, int]) -> None:
        with self._lock:
            self._frontier = dict(snapshot)

    def finish(self) -> None:
        with self._lock:
            self._core.finish()

    def to_json(self) -> dict[str, Any]:
        """Headline counters plus duration, throughput and breakdowns."""

        with self._lock:
            started = _as_utc(self._core.started_at)
            finished = _as_utc(self._core.finished_at) if self._core.finished_at else datetime.now(timezone.utc)
            elapsed = max(0.0, (finished - started).total_seconds())
            fetched = self._core.fetched_success + self._core.fetched_redirect + self._core.fetched_error

            payload: dict[str, Any] = dict(self._core.to_json())
            payload.update(
                {
                    "duration_seconds": elapsed,
                    "fetched_per_second": fetched / elapsed if elapsed > 0 else 0.0,
                    "outcomes": dict(self._outcomes),
                    "error_type_counts": dict(self._error_types),
                    "frontier": dict(self._frontier),
                }
            )
            return payload


def _as_utc(value: str) -> datetime:
    stamp = datetime.fromisoformat(value)
    return stamp if stamp.tzinfo is not None else stamp.replace(tzinfo=timezone.utc)


__all__ = ["StatsCollector"]
