"""HTTP fetching with requests, proxy support, and retry logic."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import quote, urlsplit, urlunsplit

import requests

from .config import CrawlConfig


LOGGER = logging.getLogger(__name__)


def _with_proxy_credentials(proxy_url: str, user: str, password: str) -> str:
    """Embed basic-auth credentials in a proxy URL, as requests expects them."""

    parsed = urlsplit(proxy_url if "://" in proxy_url else f"http://{proxy_url}")
    host = parsed.netloc.rpartition("@")[2]
    credentials = f"{quote(user, safe='')}:{quote(password, safe='')}"
    return urlunsplit((parsed.scheme, f"{credentials}@{host}", parsed.path, parsed.query, parsed.fragment))


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to download one URL."""

    url: str
    status_code: int | None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None
    elapsed_ms: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
            and self.body is not None
        )

    @property
    def is_redirect(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 300 <= self.status_code < 400
            and bool(self.headers.get("Location"))
        )

    @property
    def content_type(self) -> str | None:
        return self.headers.get("Content-Type")

    @property
    def etag(self) -> str | None:
        value = self.headers.get("ETag")
        return value.strip() if value and value.strip() else None


class HttpFetcher:
    """Fetch URLs with one `requests.Session` per worker thread.

    Redirects are not followed; the crawl engine treats a redirect as a new
    locator that has to pass the filter chain like any discovered link.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def fetch(self, url: str) -> FetchResult:
        """Fetch one URL, retrying transient failures when configured."""

        attempts = max(1, self.config.retries + 1)
        result: FetchResult | None = None

        for attempt in range(1, attempts + 1):
            result = self._fetch_once(url)
            if self._is_terminal_result(result):
                return result

            if attempt < attempts:
                LOGGER.debug("Retrying %s after attempt %d: %s", url, attempt, result.error or result.status_code)
                if self.config.retry_backoff_seconds > 0:
                    time.sleep(self.config.retry_backoff_seconds * attempt)

        assert result is not None
        return result

    def close(self) -> None:
        """Close every session opened by worker threads."""

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @staticmethod
    def _is_terminal_result(result: FetchResult) -> bool:
        if result.error is not None:
            return False

        if result.status_code is None:
            return False

        if result.status_code in {408, 429} or result.status_code >= 500:
            return False

        return True

    def _fetch_once(self, url: str) -> FetchResult:
        started = time.perf_counter()
        session = self._thread_local_session()

        try:
            response = session.get(
                url,
                headers=self.request_headers(),
                proxies=self.proxies(),
                timeout=self.config.timeout_seconds,
                allow_redirects=False,
            )
        except requests.RequestException as exc:
            return FetchResult(
                url=url,
                status_code=None,
                elapsed_ms=int((time.perf_counter() - started) * 1000),
                error=f"{exc.__class__.__name__}: {exc}",
            )

        return FetchResult(
            url=url,
            status_code=response.status_code,
            headers=response.headers,
            body=response.content if response.content is not None else b"",
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

    def request_headers(self) -> dict[str, str]:
        return {"User-Agent": self.config.user_agent}

    def proxies(self) -> dict[str, str] | None:
        if not self.config.http_proxy:
            return None
        proxy_url = self.config.http_proxy
        if self.config.http_proxy_user:
            proxy_url = _with_proxy_credentials(
                proxy_url,
                self.config.http_proxy_user,
                self.config.http_proxy_pass or "",
            )
        return {"http": proxy_url, "https": proxy_url}

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


__all__ = [
    "FetchResult",
    "HttpFetcher",
]
