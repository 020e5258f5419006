"""URL normalization, resolution, and link extraction helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence
from urllib.parse import unquote, urljoin, urlsplit, urlunsplit
from urllib.request import pathname2url

from bs4 import BeautifulSoup


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")


def host_from_url(url: str) -> str:
    """Extract lowercased host from URL (empty string when there is none)."""

    parsed = urlsplit(url)
    return (parsed.hostname or "").strip().lower().strip(".")


def scheme_of(url: str) -> str:
    """Return lowercased scheme of URL, or empty string for relative locators."""

    return urlsplit(url.strip()).scheme.lower()


def is_http_url(url: str, allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES) -> bool:
    """Return True if URL is absolute and has an allowed HTTP-like scheme."""

    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.scheme.lower() in {scheme.lower() for scheme in allowed_schemes}


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed_url) -> str:
    host = (parsed_url.hostname or "").lower()
    if not host:
        return parsed_url.netloc.lower()

    userinfo, _, _ = parsed_url.netloc.rpartition("@")
    prefix = f"{userinfo}@" if userinfo else ""

    try:
        port = parsed_url.port
    except ValueError:
        port = None

    if port is not None and not _has_default_port(parsed_url.scheme.lower(), port):
        return f"{prefix}{host}:{port}"
    return f"{prefix}{host}"


def normalize_uri(
    url: str,
    *,
    index_document: str | None = None,
    remove_trailing_slash: bool = False,
) -> str:
    """Canonicalize an absolute URL so equal resources map to one locator.

    The fragment is dropped, scheme and host are lowercased and default ports
    removed. A path ending in ``/`` either gets ``index_document`` appended or,
    with ``remove_trailing_slash``, loses the slash (the root path is kept).
    """

    parsed = urlsplit(url.strip())
    scheme = parsed.scheme.lower()
    netloc = _normalize_netloc(parsed)

    path = parsed.path or "/"
    if path.endswith("/"):
        if index_document:
            path = path + index_document.lstrip("/")
        elif remove_trailing_slash and path != "/":
            path = path.rstrip("/") or "/"

    return urlunsplit((scheme, netloc, path, parsed.query, ""))


def resolve_url(base_url: str | None, href: str | None) -> str | None:
    """Resolve possibly relative link against base URL.

    Returns ``None`` for empty hrefs, pure fragments, and non-navigational
    schemes such as ``mailto:``.
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    if not base_url:
        return candidate
    return urljoin(base_url, candidate)


def extract_links_from_html(
    html: str | bytes,
    *,
    base_url: str | None,
    include_nofollow: bool = False,
) -> list[str]:
    """Extract resolved links from HTML anchor/area tags.

    Returns links in document order with duplicates removed.
    """

    return links_from_soup(
        BeautifulSoup(html, "lxml"),
        base_url=base_url,
        include_nofollow=include_nofollow,
    )


def links_from_soup(
    soup: BeautifulSoup,
    *,
    base_url: str | None,
    include_nofollow: bool = False,
) -> list[str]:
    """Same as `extract_links_from_html` for an already parsed tree."""

    base_tag = soup.find("base", href=True)
    if base_tag is not None:
        base_url = resolve_url(base_url, base_tag["href"]) or base_url

    out: list[str] = []
    seen: set[str] = set()

    for element in soup.find_all(["a", "area"]):
        href = element.get("href")
        if not href:
            continue

        rel_values = {value.lower() for value in (element.get("rel") or [])}
        if not include_nofollow and "nofollow" in rel_values:
            continue

        resolved = resolve_url(base_url, href)
        if not resolved:
            continue

        resolved, _, _ = resolved.partition("#")
        if not resolved or resolved in seen:
            continue

        seen.add(resolved)
        out.append(resolved)

    return out


def file_uri_to_path(uri: str) -> Path:
    """Convert a ``file://`` locator (or a bare path) to a filesystem path."""

    parsed = urlsplit(uri)
    if parsed.scheme and parsed.scheme.lower() != "file":
        raise ValueError(f"Not a file URI: {uri!r}")
    if parsed.scheme:
        return Path(unquote(parsed.path))
    return Path(unquote(uri))


def path_to_file_uri(path: str | os.PathLike[str], *, directory: bool = False) -> str:
    """Convert a filesystem path to a ``file://`` locator.

    Directories get a trailing slash so relative links resolve inside them.
    """

    absolute = os.path.abspath(os.fspath(path))
    uri = "file://" + pathname2url(absolute)
    if directory and not uri.endswith("/"):
        uri += "/"
    return uri


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "extract_links_from_html",
    "file_uri_to_path",
    "host_from_url",
    "is_http_url",
    "links_from_soup",
    "normalize_uri",
    "path_to_file_uri",
    "resolve_url",
    "scheme_of",
]
