"""Content extraction dispatch by content type."""

from __future__ import annotations

import re

from ..types import DocumentContent
from .html_parser import HTMLParser, HTMLParserConfig


HTML_CONTENT_TYPE_RE = re.compile(r"^(text/(html|xml)|application/(xhtml\+xml|xml))")


def extract_content(
    body: str | bytes,
    content_type: str | None,
    *,
    base_url: str | None = None,
    config: HTMLParserConfig | None = None,
) -> DocumentContent | None:
    """Extract title, text, and links from a fetched body.

    Returns ``None`` when no extractor handles ``content_type``.
    """

    normalized = (content_type or "").split(";", maxsplit=1)[0].strip().lower()

    if HTML_CONTENT_TYPE_RE.match(normalized):
        return HTMLParser(config).parse(body, base_url=base_url)

    if normalized.startswith("text/"):
        text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
        return DocumentContent(title=None, text=text.strip(), links=[])

    return None


__all__ = [
    "HTMLParser",
    "HTMLParserConfig",
    "extract_content",
]
