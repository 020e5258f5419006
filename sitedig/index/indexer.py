"""Append-only document index with a BM25 model fitted on close.

Layout under ``IndexConfig.path``:
- ``docs.jsonl``: one row per indexed document
- ``bm25_index.pkl``: pickled BM25 object + row-to-document mapping + tokenizer
- ``index_stats.json``: summary of the last close
"""

from __future__ import annotations

from datetime import datetime, timezone
import hashlib
import json
import logging
import pickle
import threading
from typing import TYPE_CHECKING, Any

from rank_bm25 import BM25Okapi

from .config import IndexConfig
from .text import compile_token_pattern, iter_jsonl, normalize_text, tokenize

if TYPE_CHECKING:
    from ..crawler.documents import Document


LOGGER = logging.getLogger(__name__)
INDEX_FORMAT = "sitedig_bm25_v1"


def make_doc_id(url: str) -> str:
    return hashlib.sha1(url.encode("utf-8", errors="ignore")).hexdigest()


class Indexer:
    """Persist crawled documents; safe to share between crawl workers.

    Opening the indexer creates the index directory (``OSError`` when that is
    impossible). With ``create`` set any previous index at the path is
    discarded, otherwise new documents extend it.
    """

    def __init__(self, config: IndexConfig) -> None:
        self.config = config
        self._token_re = compile_token_pattern(config.token_pattern)

        self._lock = threading.Lock()
        self._closed = False
        self._appended = 0

        config.root.mkdir(parents=True, exist_ok=True)
        if config.create:
            config.index_path.unlink(missing_ok=True)
        mode = "w" if config.create else "a"
        self._handle = config.docs_path.open(mode, encoding="utf-8")
        LOGGER.info("opened index at %s (create=%s)", config.root, config.create)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def appended(self) -> int:
        with self._lock:
            return self._appended

    def append(self, document: "Document") -> None:
        """Add one fetched document to the index."""

        content = document.content
        text = normalize_text(content.text if content is not None else "")
        row = {
            "doc_id": make_doc_id(document.uri),
            "url": document.uri,
            "title": content.title if content is not None else None,
            "text": text,
            "depth": document.depth,
            "etag": document.etag,
            "referrer": document.referring_uri,
            "indexed_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }
        line = json.dumps(row, ensure_ascii=False, sort_keys=True)

        with self._lock:
            if self._closed:
                raise RuntimeError(f"Cannot append {document.uri}: index is closed")
            self._handle.write(line + "\n")
            self._appended += 1

    def __lshift__(self, document: "Document") -> "Indexer":
        self.append(document)
        return self

    def close(self) -> dict[str, Any] | None:
        """Flush documents and fit the BM25 model.

        Closing an already closed indexer does nothing and returns ``None``.
        """

        with self._lock:
            if self._closed:
                LOGGER.warning("index at %s already closed", self.config.root)
                return None
            self._closed = True
            self._handle.close()

        summary = self._build()
        self.config.stats_path.write_text(
            json.dumps(summary, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        LOGGER.info(
            "closed index at %s: appended=%d indexed_rows=%d",
            self.config.root,
            summary["appended"],
            summary["indexed_rows"],
        )
        return summary

    def __enter__(self) -> "Indexer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _build(self) -> dict[str, Any]:
        rows: dict[str, dict[str, Any]] = {}
        for row in iter_jsonl(self.config.docs_path):
            doc_id = str(row.get("doc_id") or make_doc_id(str(row.get("url", ""))))
            # A re-crawled URL replaces its previous row.
            rows.pop(doc_id, None)
            rows[doc_id] = row

        doc_ids: list[str] = []
        corpus: list[list[str]] = []
        skipped_empty_tokens = 0
        for doc_id, row in rows.items():
            tokens = tokenize(
                " ".join(filter(None, [str(row.get("title") or ""), str(row.get("text") or "")])),
                token_re=self._token_re,
                lowercase=self.config.lowercase,
                min_token_len=self.config.min_token_len,
            )
            if not tokens:
                skipped_empty_tokens += 1
                continue
            doc_ids.append(doc_id)
            corpus.append(tokens)

        bm25 = BM25Okapi(corpus, k1=self.config.k1, b=self.config.b) if corpus else None

        serialized = {
            "format": INDEX_FORMAT,
            "created_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "bm25_params": {"k1": self.config.k1, "b": self.config.b},
            "tokenizer": {
                "pattern": self.config.token_pattern,
                "lowercase": self.config.lowercase,
                "min_token_len": self.config.min_token_len,
            },
            "doc_ids": doc_ids,
            "bm25": bm25,
        }
        with self.config.index_path.open("wb") as handle:
            pickle.dump(serialized, handle, protocol=pickle.HIGHEST_PROTOCOL)

        return {
            "appended": self._appended,
            "stored_rows": len(rows),
            "indexed_rows": len(doc_ids),
            "skipped_empty_tokens": skipped_empty_tokens,
            "paths": {
                "docs": str(self.config.docs_path),
                "index": str(self.config.index_path),
                "stats": str(self.config.stats_path),
            },
        }


__all__ = [
    "Indexer",
    "make_doc_id",
]
