"""HTML content extraction: title, readable text, and outgoing links."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Any, Mapping

from bs4 import BeautifulSoup
import trafilatura

from ..types import DocumentContent, JSONDict
from ..url import links_from_soup


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class HTMLParserConfig:
    """Config for HTML extraction."""

    title_selector: str = "title"
    content_selector: str = "body"
    use_trafilatura: bool = True
    include_nofollow_links: bool = False

    def to_dict(self) -> JSONDict:
        return {
            "title_selector": self.title_selector,
            "content_selector": self.content_selector,
            "use_trafilatura": self.use_trafilatura,
            "include_nofollow_links": self.include_nofollow_links,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "HTMLParserConfig":
        return cls(
            title_selector=str(payload.get("title_selector", "title")),
            content_selector=str(payload.get("content_selector", "body")),
            use_trafilatura=bool(payload.get("use_trafilatura", True)),
            include_nofollow_links=bool(payload.get("include_nofollow_links", False)),
        )


class HTMLParser:
    """Parse HTML with BeautifulSoup, preferring Trafilatura for body text."""

    def __init__(self, config: HTMLParserConfig | None = None) -> None:
        self.config = config or HTMLParserConfig()

    def parse(self, html: str | bytes, *, base_url: str | None = None) -> DocumentContent:
        html_text = self._coerce_html_text(html)
        soup = BeautifulSoup(html_text, "lxml")

        links = links_from_soup(
            soup,
            base_url=base_url,
            include_nofollow=self.config.include_nofollow_links,
        )

        text = self._extract_with_trafilatura(html_text, base_url)
        if not text:
            text = self._extract_with_selector(soup)

        return DocumentContent(
            title=self._extract_title(soup),
            text=text,
            links=links,
        )

    def _extract_with_trafilatura(self, html_text: str, base_url: str | None) -> str:
        if not self.config.use_trafilatura:
            return ""

        try:
            extracted = trafilatura.extract(
                html_text,
                url=base_url,
                output_format="txt",
                include_comments=False,
                include_tables=True,
                include_images=False,
                deduplicate=True,
            )
        except Exception as exc:
            LOGGER.debug("Trafilatura extraction failed for %s: %s", base_url, exc)
            return ""
        return (extracted or "").strip()

    def _extract_with_selector(self, soup: BeautifulSoup) -> str:
        for tag in soup(["script", "style", "noscript", "template"]):
            tag.decompose()

        node = soup.select_one(self.config.content_selector) if self.config.content_selector else None
        if node is None:
            node = soup
        text = node.get_text(" ", strip=True)
        return re.sub(r"\s+", " ", text).strip()

    def _extract_title(self, soup: BeautifulSoup) -> str | None:
        if self.config.title_selector:
            node = soup.select_one(self.config.title_selector)
            if node is not None and node.get_text(strip=True):
                return node.get_text(" ", strip=True)
        heading = soup.find(["h1", "h2"])
        if heading:
            text = heading.get_text(" ", strip=True)
            if text:
                return text
        return None

    @staticmethod
    def _coerce_html_text(html: str | bytes) -> str:
        if isinstance(html, bytes):
            return html.decode("utf-8", errors="replace")
        return html


__all__ = [
    "HTMLParser",
    "HTMLParserConfig",
]
