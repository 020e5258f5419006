"""Tests for index.indexer and index.search modules."""

from __future__ import annotations

import json
import threading

import pytest

from sitedig.crawler import Document, DocumentContent
from sitedig.index import IndexConfig, Indexer, Searcher


def _document(uri: str, text: str, *, title: str | None = None, etag: str | None = None) -> Document:
    document = Document(uri)
    document._succeed(DocumentContent(title=title, text=text), etag=etag)
    return document


@pytest.fixture
def index_config(tmp_path) -> IndexConfig:
    return IndexConfig(path=str(tmp_path / "index"))


class TestIndexer:
    def test_close_writes_artifacts(self, index_config):
        indexer = Indexer(index_config)
        indexer.append(_document("http://example.com/a", "python crawler threads", title="A", etag="e1"))
        indexer.append(_document("http://example.com/b", "ruby gems"))

        summary = indexer.close()

        assert summary["appended"] == 2
        assert summary["indexed_rows"] == 2
        assert index_config.index_path.exists()
        rows = [json.loads(line) for line in index_config.docs_path.read_text(encoding="utf-8").splitlines()]
        assert [row["url"] for row in rows] == ["http://example.com/a", "http://example.com/b"]
        assert rows[0]["etag"] == "e1"
        assert json.loads(index_config.stats_path.read_text(encoding="utf-8"))["stored_rows"] == 2

    def test_close_is_idempotent(self, index_config):
        indexer = Indexer(index_config)
        assert indexer.close() is not None
        assert indexer.close() is None
        assert indexer.closed

    def test_append_after_close_raises(self, index_config):
        indexer = Indexer(index_config)
        indexer.close()
        with pytest.raises(RuntimeError):
            indexer.append(_document("http://example.com/", "late"))

    def test_concurrent_appends(self, index_config):
        indexer = Indexer(index_config)

        def worker(offset):
            for idx in range(25):
                indexer.append(_document(f"http://example.com/{offset}/{idx}", f"page {offset} {idx}"))

        threads = [threading.Thread(target=worker, args=(offset,)) for offset in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert indexer.close()["indexed_rows"] == 100

    def test_create_false_extends_existing_index(self, index_config):
        with Indexer(index_config) as indexer:
            indexer.append(_document("http://example.com/a", "first crawl"))

        extended = IndexConfig(path=index_config.path, create=False)
        with Indexer(extended) as indexer:
            indexer.append(_document("http://example.com/b", "second crawl"))
            indexer.append(_document("http://example.com/a", "first page recrawled"))

        stats = json.loads(index_config.stats_path.read_text(encoding="utf-8"))
        assert stats["stored_rows"] == 2

    def test_create_true_replaces_existing_index(self, index_config):
        with Indexer(index_config) as indexer:
            indexer.append(_document("http://example.com/a", "old"))
        with Indexer(index_config) as indexer:
            indexer.append(_document("http://example.com/b", "new"))

        assert Searcher(index_config).size == 1

    def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(OSError):
            Indexer(IndexConfig(path=str(blocker / "index")))


class TestSearcher:
    def test_ranked_results(self, index_config):
        with Indexer(index_config) as indexer:
            indexer.append(_document("http://example.com/a", "python crawler with worker threads", title="Crawler"))
            indexer.append(_document("http://example.com/b", "ruby gems and bundler"))
            indexer.append(_document("http://example.com/c", "python snakes in the garden"))

        results = Searcher(index_config).search("crawler threads")

        assert len(results) == 1
        assert results[0]["rank"] == 1
        assert results[0]["url"] == "http://example.com/a"
        assert results[0]["title"] == "Crawler"
        assert "crawler" in results[0]["extract"]

    def test_top_k_limits_results(self, index_config):
        with Indexer(index_config) as indexer:
            for idx in range(5):
                indexer.append(_document(f"http://example.com/{idx}", f"shared term number{idx}"))

        results = Searcher(index_config).search("shared", top_k=2)

        assert [result["rank"] for result in results] == [1, 2]

    def test_empty_index(self, index_config):
        Indexer(index_config).close()
        searcher = Searcher(index_config)

        assert searcher.size == 0
        assert searcher.search("anything") == []

    def test_query_without_tokens(self, index_config):
        with Indexer(index_config) as indexer:
            indexer.append(_document("http://example.com/", "text"))
        assert Searcher(index_config).search("!!!") == []

    def test_invalid_top_k(self, index_config):
        Indexer(index_config).close()
        with pytest.raises(ValueError):
            Searcher(index_config).search("x", top_k=0)

    def test_missing_index(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Searcher(IndexConfig(path=str(tmp_path / "nothing")))
