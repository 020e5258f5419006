"""Query a closed index."""

from __future__ import annotations

import logging
import pickle
from pathlib import Path
from typing import Any

import numpy as np

from .config import IndexConfig
from .indexer import INDEX_FORMAT
from .text import compile_token_pattern, iter_jsonl, normalize_text, tokenize


LOGGER = logging.getLogger(__name__)
EXTRACT_CHARS = 240


class Searcher:
    """In-memory BM25 searcher that loads the index on initialization."""

    def __init__(self, config: IndexConfig) -> None:
        self.config = config
        payload = self._load_index(config.index_path)

        self.bm25 = payload["bm25"]
        self.row_to_doc_id = [str(value) for value in payload["doc_ids"]]
        self.tokenizer_config = dict(payload.get("tokenizer", {}))
        self.documents = self._load_documents(config.docs_path)

        self._token_re = compile_token_pattern(
            str(self.tokenizer_config.get("pattern", config.token_pattern))
        )
        self._lowercase = bool(self.tokenizer_config.get("lowercase", config.lowercase))
        self._min_token_len = int(self.tokenizer_config.get("min_token_len", config.min_token_len))
        LOGGER.info("loaded index at %s with %d documents", config.root, self.size)

    @property
    def size(self) -> int:
        return len(self.row_to_doc_id)

    def search(self, query: str, top_k: int = 10) -> list[dict[str, Any]]:
        """Return the ``top_k`` best matching documents for ``query``."""

        if top_k <= 0:
            raise ValueError("top_k must be > 0")
        if self.size == 0 or self.bm25 is None:
            return []

        query_tokens = tokenize(
            normalize_text(query),
            token_re=self._token_re,
            lowercase=self._lowercase,
            min_token_len=self._min_token_len,
        )
        if not query_tokens:
            return []

        scores = np.asarray(self.bm25.get_scores(query_tokens), dtype=np.float32)
        if scores.shape[0] != self.size:
            raise ValueError(
                f"BM25 score length ({scores.shape[0]}) does not match row map length ({self.size})"
            )

        k = min(int(top_k), self.size)
        top_indices = self._topk_desc(scores, k)

        results: list[dict[str, Any]] = []
        for row_idx in top_indices.tolist():
            # Okapi idf can be zero or negative on small corpora; match on terms instead.
            term_freqs = self.bm25.doc_freqs[row_idx]
            if not any(token in term_freqs for token in query_tokens):
                continue
            score = float(scores[row_idx])
            row = self.documents.get(self.row_to_doc_id[row_idx], {})
            text = str(row.get("text") or "")
            results.append(
                {
                    "rank": len(results) + 1,
                    "url": row.get("url"),
                    "title": row.get("title"),
                    "score": score,
                    "extract": self._extract(text, query_tokens),
                }
            )
        return results

    @staticmethod
    def _topk_desc(values: np.ndarray, k: int) -> np.ndarray:
        if k >= values.shape[0]:
            return np.argsort(-values, kind="stable")
        selected = np.argpartition(-values, kth=k - 1)[:k]
        return selected[np.argsort(-values[selected], kind="stable")]

    def _extract(self, text: str, query_tokens: list[str]) -> str:
        haystack = text.lower() if self._lowercase else text
        start = 0
        for token in query_tokens:
            pos = haystack.find(token)
            if pos >= 0:
                start = max(0, pos - EXTRACT_CHARS // 4)
                break
        snippet = text[start : start + EXTRACT_CHARS].strip()
        if start > 0:
            snippet = "..." + snippet
        if start + EXTRACT_CHARS < len(text):
            snippet += "..."
        return snippet

    @staticmethod
    def _load_index(index_path: Path) -> dict[str, Any]:
        if not index_path.exists():
            raise FileNotFoundError(f"Missing index file: {index_path}")

        with index_path.open("rb") as handle:
            payload = pickle.load(handle)

        if not isinstance(payload, dict):
            raise ValueError(f"Expected dict payload in index file: {index_path}")
        if payload.get("format") != INDEX_FORMAT:
            raise ValueError(f"Unsupported index format {payload.get('format')!r} in {index_path}")
        if not isinstance(payload.get("doc_ids"), list):
            raise ValueError(f"'doc_ids' must be a list in index file: {index_path}")
        return payload

    @staticmethod
    def _load_documents(path: Path) -> dict[str, dict[str, Any]]:
        if not path.exists():
            raise FileNotFoundError(f"Missing document store: {path}")

        mapping: dict[str, dict[str, Any]] = {}
        for payload in iter_jsonl(path):
            doc_id = str(payload.get("doc_id", "")).strip()
            if doc_id:
                mapping[doc_id] = payload
        return mapping


__all__ = ["Searcher"]
