"""Index configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping


DEFAULT_INDEX_PATH = "/tmp/sitedig-index"
DEFAULT_TOKEN_PATTERN = r"[A-Za-z0-9_]+"
DOCS_FILE_NAME = "docs.jsonl"
INDEX_FILE_NAME = "bm25_index.pkl"
STATS_FILE_NAME = "index_stats.json"


@dataclass(slots=True)
class IndexConfig:
    """Where and how crawled documents are indexed."""

    path: str = DEFAULT_INDEX_PATH
    create: bool = True
    token_pattern: str = DEFAULT_TOKEN_PATTERN
    lowercase: bool = True
    min_token_len: int = 1
    k1: float = 1.5
    b: float = 0.75

    def __post_init__(self) -> None:
        self.path = str(self.path).strip()
        if not self.path:
            raise ValueError("index path cannot be empty")
        if self.min_token_len < 1:
            raise ValueError("min_token_len must be >= 1")
        if self.k1 < 0:
            raise ValueError("k1 must be >= 0")
        if not (0.0 <= self.b <= 1.0):
            raise ValueError("b must be between 0 and 1")

    @property
    def root(self) -> Path:
        return Path(self.path)

    @property
    def docs_path(self) -> Path:
        return self.root / DOCS_FILE_NAME

    @property
    def index_path(self) -> Path:
        return self.root / INDEX_FILE_NAME

    @property
    def stats_path(self) -> Path:
        return self.root / STATS_FILE_NAME

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "create": self.create,
            "token_pattern": self.token_pattern,
            "lowercase": self.lowercase,
            "min_token_len": self.min_token_len,
            "k1": self.k1,
            "b": self.b,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "IndexConfig":
        create = payload.get("create", True)
        lowercase = payload.get("lowercase", True)
        if not isinstance(create, bool):
            raise ValueError(f"Invalid bool for 'index.create': {create!r}")
        if not isinstance(lowercase, bool):
            raise ValueError(f"Invalid bool for 'index.lowercase': {lowercase!r}")

        return cls(
            path=str(payload.get("path", DEFAULT_INDEX_PATH)),
            create=create,
            token_pattern=str(payload.get("token_pattern", DEFAULT_TOKEN_PATTERN)),
            lowercase=lowercase,
            min_token_len=int(payload.get("min_token_len", 1)),
            k1=float(payload.get("k1", 1.5)),
            b=float(payload.get("b", 0.75)),
        )


__all__ = [
    "DEFAULT_INDEX_PATH",
    "DEFAULT_TOKEN_PATTERN",
    "IndexConfig",
]
