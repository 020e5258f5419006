"""Typed crawler configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from ..index.config import IndexConfig
from .constants import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_NUM_THREADS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    DEFAULT_WAIT_BEFORE_LEAVE,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .parsers import HTMLParserConfig
from .types import JSONDict


LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def _as_float(value: Any, key: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_str_list(value: Any, key: str) -> list[str] | None:
    """Coerce a scalar or list option into a list of strings.

    ``None`` stays ``None`` so gated filters are left out of their chain.
    """

    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value]
    raise ValueError(f"Invalid list for '{key}': {value!r}")


@dataclass(slots=True)
class NormalizeUriConfig:
    """Options of the `normalize_uri` filter."""

    index_document: str | None = None
    remove_trailing_slash: bool = False

    def __post_init__(self) -> None:
        self.index_document = _as_str_or_none(self.index_document)

    def to_dict(self) -> JSONDict:
        return {
            "index_document": self.index_document,
            "remove_trailing_slash": self.remove_trailing_slash,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NormalizeUriConfig":
        return cls(
            index_document=payload.get("index_document"),
            remove_trailing_slash=_as_bool(
                payload.get("remove_trailing_slash", False),
                "normalize_uri.remove_trailing_slash",
            ),
        )


@dataclass(slots=True)
class CrawlConfig:
    """Crawl settings consumed by the controller, filters, and fetchers.

    Option names double as the keys that gate conditional filters: a gated
    filter joins its chain only when the option it names is set.
    """

    start_urls: list[str]

    include_hosts: list[str] | None = None
    include_documents: list[str] | None = None
    exclude_documents: list[str] | None = None
    index_include_documents: list[str] | None = None
    index_exclude_documents: list[str] | None = None

    num_threads: int = DEFAULT_NUM_THREADS
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    max_depth: int | None = DEFAULT_MAX_DEPTH
    wait_before_leave: float = DEFAULT_WAIT_BEFORE_LEAVE

    normalize_uri: NormalizeUriConfig | None = field(default_factory=NormalizeUriConfig)

    http_proxy: str | None = None
    http_proxy_user: str | None = None
    http_proxy_pass: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        self.start_urls = [url.strip() for url in self.start_urls if url and url.strip()]
        if not self.start_urls:
            raise ValueError("CrawlConfig requires at least one start URL")

        if self.include_hosts is not None:
            self.include_hosts = [host.strip().lower() for host in self.include_hosts if host.strip()]

        if self.num_threads <= 0:
            raise ValueError("num_threads must be > 0")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError("max_depth must be >= 0 when set")
        if self.wait_before_leave <= 0:
            raise ValueError("wait_before_leave must be > 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")

        self.http_proxy = _as_str_or_none(self.http_proxy)

    def option(self, key: str) -> Any:
        """Return a config value by name, as consulted by gated filters."""

        if key not in self.__dataclass_fields__:
            raise KeyError(f"Unknown crawler option: {key!r}")
        return getattr(self, key)

    def to_dict(self) -> JSONDict:
        return {
            "start_urls": self.start_urls,
            "include_hosts": self.include_hosts,
            "include_documents": self.include_documents,
            "exclude_documents": self.exclude_documents,
            "index_include_documents": self.index_include_documents,
            "index_exclude_documents": self.index_exclude_documents,
            "num_threads": self.num_threads,
            "max_redirects": self.max_redirects,
            "max_depth": self.max_depth,
            "wait_before_leave": self.wait_before_leave,
            "normalize_uri": None if self.normalize_uri is None else self.normalize_uri.to_dict(),
            "http_proxy": self.http_proxy,
            "http_proxy_user": self.http_proxy_user,
            # Never persist the proxy password.
            "http_proxy_pass": None,
            "timeout_seconds": self.timeout_seconds,
            "retries": self.retries,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "user_agent": self.user_agent,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary."""

        if "start_urls" not in payload:
            raise ValueError("Crawler config missing required key: 'start_urls'")

        raw_normalize = payload.get("normalize_uri", {})
        if raw_normalize is None:
            normalize = None
        elif isinstance(raw_normalize, Mapping):
            normalize = NormalizeUriConfig.from_dict(raw_normalize)
        else:
            raise ValueError(f"Invalid mapping for 'normalize_uri': {raw_normalize!r}")

        return cls(
            start_urls=_as_str_list(payload["start_urls"], "start_urls") or [],
            include_hosts=_as_str_list(payload.get("include_hosts"), "include_hosts"),
            include_documents=_as_str_list(payload.get("include_documents"), "include_documents"),
            exclude_documents=_as_str_list(payload.get("exclude_documents"), "exclude_documents"),
            index_include_documents=_as_str_list(
                payload.get("index_include_documents"),
                "index_include_documents",
            ),
            index_exclude_documents=_as_str_list(
                payload.get("index_exclude_documents"),
                "index_exclude_documents",
            ),
            num_threads=int(payload.get("num_threads", DEFAULT_NUM_THREADS)),
            max_redirects=int(payload.get("max_redirects", DEFAULT_MAX_REDIRECTS)),
            max_depth=_as_int(payload.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            wait_before_leave=float(payload.get("wait_before_leave", DEFAULT_WAIT_BEFORE_LEAVE)),
            normalize_uri=normalize,
            http_proxy=payload.get("http_proxy"),
            http_proxy_user=_as_str_or_none(payload.get("http_proxy_user")),
            http_proxy_pass=_as_str_or_none(payload.get("http_proxy_pass")),
            timeout_seconds=float(payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            retries=int(payload.get("retries", DEFAULT_RETRIES)),
            retry_backoff_seconds=float(
                _as_float(
                    payload.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS),
                    "retry_backoff_seconds",
                )
            ),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
        )


@dataclass(slots=True)
class Configuration:
    """Everything one crawl needs, built once and passed explicitly."""

    crawler: CrawlConfig
    index: IndexConfig = field(default_factory=IndexConfig)
    content_extraction: HTMLParserConfig = field(default_factory=HTMLParserConfig)
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str | None = None

    def __post_init__(self) -> None:
        self.log_level = str(self.log_level).strip().lower()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        self.log_file = _as_str_or_none(self.log_file)

    def to_dict(self) -> JSONDict:
        return {
            "log_level": self.log_level,
            "log_file": self.log_file,
            "crawler": self.crawler.to_dict(),
            "index": self.index.to_dict(),
            "content_extraction": self.content_extraction.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Configuration":
        crawler_payload = payload.get("crawler")
        if not isinstance(crawler_payload, Mapping):
            raise ValueError("Config missing required mapping: 'crawler'")

        index_payload = payload.get("index") or {}
        extraction_payload = payload.get("content_extraction") or {}
        if not isinstance(index_payload, Mapping):
            raise ValueError("'index' must be a mapping")
        if not isinstance(extraction_payload, Mapping):
            raise ValueError("'content_extraction' must be a mapping")

        return cls(
            crawler=CrawlConfig.from_dict(crawler_payload),
            index=IndexConfig.from_dict(index_payload),
            content_extraction=HTMLParserConfig.from_dict(extraction_payload),
            log_level=str(payload.get("log_level", DEFAULT_LOG_LEVEL)),
            log_file=payload.get("log_file"),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config_payload(path: str | Path) -> dict[str, Any]:
    """Read a JSON/YAML config file into a plain mapping."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")
    return payload


def load_config(path: str | Path) -> Configuration:
    """Load Configuration from JSON/YAML path."""

    return Configuration.from_dict(load_config_payload(path))


def save_config(config: Configuration, path: str | Path) -> None:
    """Save Configuration as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "Configuration",
    "CrawlConfig",
    "LOG_LEVELS",
    "NormalizeUriConfig",
    "load_config",
    "load_config_payload",
    "save_config",
]
