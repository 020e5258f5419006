"""Filter chains deciding which documents are crawled and which are indexed.

A chain is built from a sequence of filter specs. An ``Unconditional`` spec
always yields a filter; a ``Gated`` spec yields one only when the crawler
option it names is set, so unset options remove the filter from the chain
instead of turning it into a no-op.

There are two chains per crawl type: the crawl chain runs before a locator
is enqueued, the index chain runs before a fetched document is indexed. A
filter returns the (possibly rewritten) document to let it pass, or ``None``
to reject it; the first rejection ends the chain.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence, Sized, Union
from urllib.parse import urljoin

from .config import CrawlConfig, NormalizeUriConfig
from .dedup import ConcurrentSet
from .documents import Document
from .types import CrawlType
from .url import file_uri_to_path, host_from_url, is_http_url, normalize_uri, scheme_of


LOGGER = logging.getLogger(__name__)

HTTP_SCHEMES = ("http", "https")


class FilterChainError(ValueError):
    """A filter chain could not be built from its specification."""


@dataclass(frozen=True, slots=True)
class Unconditional:
    """Chain entry that is always present."""

    name: str


@dataclass(frozen=True, slots=True)
class Gated:
    """Chain entry present only when ``config_key`` is set."""

    name: str
    config_key: str


FilterSpec = Union[Unconditional, Gated]


@dataclass(slots=True)
class FilterContext:
    """Crawl-scoped state shared by every chain built for one crawl."""

    config: CrawlConfig
    visited: ConcurrentSet = field(default_factory=ConcurrentSet)


class DocumentFilter:
    """Base class for filters. Subclasses implement `apply`."""

    name = "filter"

    def apply(self, document: Document) -> Document | None:
        raise NotImplementedError

    def __call__(self, document: Document) -> Document | None:
        return self.apply(document)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class FunctionFilter(DocumentFilter):
    """Adapt a plain function into a named filter."""

    def __init__(self, name: str, func: Callable[[Document], Document | None]) -> None:
        self.name = name
        self._func = func

    def apply(self, document: Document) -> Document | None:
        return self._func(document)


def scheme_filter_http(document: Document) -> Document | None:
    scheme = scheme_of(document.uri)
    return document if not scheme or scheme in HTTP_SCHEMES else None


def scheme_filter_file(document: Document) -> Document | None:
    scheme = scheme_of(document.uri)
    return document if not scheme or scheme == "file" else None


def fix_relative_uri(document: Document) -> Document | None:
    """Resolve a relative locator against the locator of its referrer."""

    scheme = scheme_of(document.uri)
    if scheme and scheme not in HTTP_SCHEMES:
        return None

    referrer_uri = document.referring_uri
    if not referrer_uri or is_http_url(document.uri):
        return document

    document.uri = urljoin(referrer_uri, document.uri)
    return document


class NormalizeUriFilter(DocumentFilter):
    name = "normalize_uri"

    def __init__(self, options: NormalizeUriConfig) -> None:
        self.options = options

    def apply(self, document: Document) -> Document | None:
        if is_http_url(document.uri):
            document.uri = normalize_uri(
                document.uri,
                index_document=self.options.index_document,
                remove_trailing_slash=self.options.remove_trailing_slash,
            )
        return document


class DepthFilter(DocumentFilter):
    name = "depth"

    def __init__(self, max_depth: int) -> None:
        self.max_depth = int(max_depth)

    def apply(self, document: Document) -> Document | None:
        return document if document.depth <= self.max_depth else None


class HostnameFilter(DocumentFilter):
    name = "hostname"

    def __init__(self, hosts: Iterable[str]) -> None:
        self.hosts = {host.strip().lower() for host in hosts}

    def apply(self, document: Document) -> Document | None:
        return document if host_from_url(document.uri) in self.hosts else None


class PatternFilter(DocumentFilter):
    """Match regular expressions against some string view of a document."""

    include = True

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns: list[re.Pattern[str]] = []
        for pattern in patterns:
            try:
                self.patterns.append(re.compile(pattern))
            except re.error as exc:
                raise FilterChainError(f"Invalid pattern {pattern!r} for {self.name}: {exc}") from exc

    def subject(self, document: Document) -> str:
        return document.uri

    def apply(self, document: Document) -> Document | None:
        subject = self.subject(document)
        matched = any(pattern.search(subject) for pattern in self.patterns)
        return document if matched == self.include else None


class UrlInclusionFilter(PatternFilter):
    name = "url_inclusion"


class UrlExclusionFilter(PatternFilter):
    name = "url_exclusion"
    include = False


class IndexUrlInclusionFilter(UrlInclusionFilter):
    name = "index_url_inclusion"


class IndexUrlExclusionFilter(UrlExclusionFilter):
    name = "index_url_exclusion"


class PathInclusionFilter(PatternFilter):
    name = "path_inclusion"

    def subject(self, document: Document) -> str:
        return str(file_uri_to_path(document.uri))


class DirectoryPathInclusionFilter(PathInclusionFilter):
    """Path inclusion that always passes directories."""

    name = "directory_path_inclusion"

    def apply(self, document: Document) -> Document | None:
        if document.uri.endswith("/") or os.path.isdir(self.subject(document)):
            return document
        return super().apply(document)


class PathExclusionFilter(PathInclusionFilter):
    name = "path_exclusion"
    include = False


class VisitedUrlFilter(DocumentFilter):
    """Reject locators already accepted earlier in this crawl."""

    name = "visited_url"

    def __init__(self, visited: ConcurrentSet) -> None:
        self.visited = visited

    def apply(self, document: Document) -> Document | None:
        return document if self.visited.add(document.uri) else None


class VisitedPathFilter(VisitedUrlFilter):
    """Reject files and directories already reached through another path.

    Keyed on the resolved path, so symlink cycles and aliases collapse to one entry.
    """

    name = "visited_path"

    def apply(self, document: Document) -> Document | None:
        resolved = os.path.realpath(file_uri_to_path(document.uri))
        return document if self.visited.add(resolved) else None


FilterFactory = Callable[[FilterContext, Any], DocumentFilter]

FILTER_REGISTRY: dict[str, FilterFactory] = {
    "scheme_filter_http": lambda context, option: FunctionFilter("scheme_filter_http", scheme_filter_http),
    "scheme_filter_file": lambda context, option: FunctionFilter("scheme_filter_file", scheme_filter_file),
    "fix_relative_uri": lambda context, option: FunctionFilter("fix_relative_uri", fix_relative_uri),
    "normalize_uri": lambda context, option: NormalizeUriFilter(option),
    "depth": lambda context, option: DepthFilter(option),
    "hostname": lambda context, option: HostnameFilter(option),
    "url_inclusion": lambda context, option: UrlInclusionFilter(option),
    "url_exclusion": lambda context, option: UrlExclusionFilter(option),
    "index_url_inclusion": lambda context, option: IndexUrlInclusionFilter(option),
    "index_url_exclusion": lambda context, option: IndexUrlExclusionFilter(option),
    "path_inclusion": lambda context, option: PathInclusionFilter(option),
    "directory_path_inclusion": lambda context, option: DirectoryPathInclusionFilter(option),
    "path_exclusion": lambda context, option: PathExclusionFilter(option),
    "visited_url": lambda context, option: VisitedUrlFilter(context.visited),
    "visited_path": lambda context, option: VisitedPathFilter(context.visited),
}

CRAWL_CHAIN_SPECS: dict[CrawlType, tuple[FilterSpec, ...]] = {
    CrawlType.HTTP: (
        Unconditional("scheme_filter_http"),
        Unconditional("fix_relative_uri"),
        Gated("normalize_uri", "normalize_uri"),
        Gated("depth", "max_depth"),
        Gated("hostname", "include_hosts"),
        Gated("url_inclusion", "include_documents"),
        Gated("url_exclusion", "exclude_documents"),
        Unconditional("visited_url"),
    ),
    CrawlType.FILE: (
        Unconditional("scheme_filter_file"),
        Gated("directory_path_inclusion", "include_documents"),
        Gated("path_exclusion", "exclude_documents"),
        Unconditional("visited_path"),
    ),
}

INDEX_CHAIN_SPECS: dict[CrawlType, tuple[FilterSpec, ...]] = {
    CrawlType.HTTP: (
        Gated("index_url_inclusion", "index_include_documents"),
        Gated("index_url_exclusion", "index_exclude_documents"),
    ),
    CrawlType.FILE: (
        Gated("path_inclusion", "include_documents"),
        Gated("path_exclusion", "exclude_documents"),
    ),
}


def is_option_set(value: Any) -> bool:
    """Return True when a config value should switch its gated filter on."""

    if value is None or value is False:
        return False
    if isinstance(value, (str, Sized)):
        return len(value) > 0
    return True


class FilterChain:
    """Ordered, short-circuiting sequence of document filters."""

    def __init__(self, filters: Sequence[DocumentFilter], *, label: str = "chain") -> None:
        self.filters = list(filters)
        self.label = label

    @classmethod
    def build(
        cls,
        specs: Sequence[FilterSpec],
        context: FilterContext,
        *,
        registry: Mapping[str, FilterFactory] | None = None,
        label: str = "chain",
    ) -> "FilterChain":
        """Resolve specs into filter instances.

        Raises `FilterChainError` for unknown filter names, unknown config
        keys, or filters rejecting their options.
        """

        resolved_registry = FILTER_REGISTRY if registry is None else registry
        filters: list[DocumentFilter] = []

        for spec in specs:
            factory = resolved_registry.get(spec.name)
            if factory is None:
                raise FilterChainError(f"Unknown filter {spec.name!r} in {label}")

            option: Any = None
            if isinstance(spec, Gated):
                try:
                    option = context.config.option(spec.config_key)
                except KeyError as exc:
                    raise FilterChainError(
                        f"Filter {spec.name!r} in {label} is gated on unknown option {spec.config_key!r}"
                    ) from exc
                if not is_option_set(option):
                    continue

            try:
                filters.append(factory(context, option))
            except FilterChainError:
                raise
            except (TypeError, ValueError) as exc:
                raise FilterChainError(f"Cannot build filter {spec.name!r} in {label}: {exc}") from exc

        return cls(filters, label=label)

    def apply(self, document: Document) -> Document | None:
        for document_filter in self.filters:
            result = document_filter.apply(document)
            if result is None:
                LOGGER.debug("%s: %s rejected by %s", self.label, document.uri, document_filter.name)
                return None
            document = result
        return document

    @property
    def names(self) -> list[str]:
        return [document_filter.name for document_filter in self.filters]

    def __len__(self) -> int:
        return len(self.filters)

    def __iter__(self) -> Iterator[DocumentFilter]:
        return iter(self.filters)


def build_crawl_chain(crawl_type: CrawlType, context: FilterContext) -> FilterChain:
    return FilterChain.build(CRAWL_CHAIN_SPECS[crawl_type], context, label=f"{crawl_type.value} crawl chain")


def build_index_chain(crawl_type: CrawlType, context: FilterContext) -> FilterChain:
    return FilterChain.build(INDEX_CHAIN_SPECS[crawl_type], context, label=f"{crawl_type.value} index chain")


__all__ = [
    "CRAWL_CHAIN_SPECS",
    "DepthFilter",
    "DirectoryPathInclusionFilter",
    "DocumentFilter",
    "FILTER_REGISTRY",
    "FilterChain",
    "FilterChainError",
    "FilterContext",
    "FilterFactory",
    "FilterSpec",
    "FunctionFilter",
    "Gated",
    "HostnameFilter",
    "INDEX_CHAIN_SPECS",
    "IndexUrlExclusionFilter",
    "IndexUrlInclusionFilter",
    "NormalizeUriFilter",
    "PathExclusionFilter",
    "PathInclusionFilter",
    "PatternFilter",
    "Unconditional",
    "UrlExclusionFilter",
    "UrlInclusionFilter",
    "VisitedPathFilter",
    "VisitedUrlFilter",
    "build_crawl_chain",
    "build_index_chain",
    "fix_relative_uri",
    "is_option_set",
    "scheme_filter_file",
    "scheme_filter_http",
]
