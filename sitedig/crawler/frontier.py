"""Thread-safe frontier queue shared by the controller and crawl workers."""

from __future__ import annotations

import queue
import threading
import time

from .documents import Document
from .types import FrontierMessage, Stop, Work


class Frontier:
    """Unbounded FIFO of pending documents plus per-worker stop messages.

    - `push` and `pop` are safe to call from any thread; `pop` blocks.
    - Besides the queue itself, a live counter tracks documents that were
      pushed but not yet fully processed. Workers call `task_done` only after
      a document's own discoveries have been pushed, so the counter reaches
      zero exactly when the crawl has run out of work.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[FrontierMessage] = queue.Queue()
        self._idle = threading.Condition(threading.Lock())
        self._pending = 0

        self._pushed_count = 0
        self._popped_count = 0
        self._stops_pushed = 0

    def push(self, document: Document) -> None:
        """Enqueue one document for processing."""

        with self._idle:
            self._pending += 1
            self._pushed_count += 1
        self._queue.put(Work(document))

    def push_stop(self, count: int = 1) -> None:
        """Enqueue `count` stop messages, one per worker that should exit."""

        for _ in range(count):
            with self._idle:
                self._stops_pushed += 1
            self._queue.put(Stop())

    def pop(self, *, timeout: float | None = None) -> FrontierMessage | None:
        """Pop the next message, blocking until one is available.

        Returns `None` only when `timeout` elapses first.
        """

        try:
            message = self._queue.get(block=True, timeout=timeout)
        except queue.Empty:
            return None

        if isinstance(message, Work):
            with self._idle:
                self._popped_count += 1
        return message

    def task_done(self) -> None:
        """Mark one popped document as fully processed."""

        with self._idle:
            if self._pending <= 0:
                raise ValueError("task_done() called more times than documents were pushed")
            self._pending -= 1
            if self._pending == 0:
                self._idle.notify_all()

    def wait_for_idle(self, timeout: float | None = None) -> bool:
        """Block up to `timeout` seconds for pending work to reach zero.

        Returns True when the frontier is idle.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._idle:
            while self._pending > 0:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._idle.wait(remaining)
            return True

    @property
    def pending(self) -> int:
        with self._idle:
            return self._pending

    def qsize(self) -> int:
        """Approximate queue size."""

        return self._queue.qsize()

    def empty(self) -> bool:
        """Return True if queue is currently empty."""

        return self._queue.empty()

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for logs/stats reporting."""

        with self._idle:
            return {
                "queue_size": self._queue.qsize(),
                "pending": self._pending,
                "pushed": self._pushed_count,
                "popped": self._popped_count,
                "stops_pushed": self._stops_pushed,
            }


__all__ = ["Frontier"]
