"""Crawler package: config, shared types, filters, and the crawl controller."""

from .config import Configuration, CrawlConfig, NormalizeUriConfig, load_config, save_config
from .controller import Crawler
from .dedup import ConcurrentSet, DuplicateDetector
from .documents import Document, DocumentFactory, FileDocument, HttpDocument
from .fetcher import FetchResult, HttpFetcher
from .filters import (
    FilterChain,
    FilterChainError,
    FilterContext,
    Gated,
    Unconditional,
    build_crawl_chain,
    build_index_chain,
)
from .frontier import Frontier
from .parsers import HTMLParser, HTMLParserConfig, extract_content
from .stats import StatsCollector
from .types import (
    CrawlState,
    CrawlStats,
    CrawlType,
    DocumentContent,
    FetchStatus,
    ProcessOutcome,
    Stop,
    Work,
    utc_now_iso,
)
from .url import extract_links_from_html, host_from_url, links_from_soup, normalize_uri, resolve_url

__all__ = [
    "ConcurrentSet",
    "Configuration",
    "CrawlConfig",
    "CrawlState",
    "CrawlStats",
    "CrawlType",
    "Crawler",
    "Document",
    "DocumentContent",
    "DocumentFactory",
    "DuplicateDetector",
    "FetchResult",
    "FetchStatus",
    "FileDocument",
    "FilterChain",
    "FilterChainError",
    "FilterContext",
    "Frontier",
    "Gated",
    "HTMLParser",
    "HTMLParserConfig",
    "HttpDocument",
    "HttpFetcher",
    "NormalizeUriConfig",
    "ProcessOutcome",
    "StatsCollector",
    "Stop",
    "Unconditional",
    "Work",
    "build_crawl_chain",
    "build_index_chain",
    "extract_content",
    "extract_links_from_html",
    "links_from_soup",
    "host_from_url",
    "load_config",
    "normalize_uri",
    "resolve_url",
    "save_config",
    "utc_now_iso",
]
