"""Index package: persist crawled documents and query them with BM25."""

from .config import IndexConfig
from .indexer import Indexer, make_doc_id
from .search import Searcher

__all__ = [
    "IndexConfig",
    "Indexer",
    "Searcher",
    "make_doc_id",
]
