"""Tests for crawler.config module."""

from __future__ import annotations

import json

import pytest

from sitedig.crawler.config import (
    Configuration,
    CrawlConfig,
    NormalizeUriConfig,
    load_config,
    save_config,
)
from sitedig.index import IndexConfig


class TestCrawlConfig:
    def test_defaults(self):
        config = CrawlConfig(start_urls=["http://example.com/"])
        assert config.num_threads == 2
        assert config.max_redirects == 5
        assert config.max_depth is None
        assert config.wait_before_leave == 10.0
        assert config.normalize_uri == NormalizeUriConfig()

    def test_requires_start_url(self):
        with pytest.raises(ValueError, match="start URL"):
            CrawlConfig(start_urls=["  "])

    @pytest.mark.parametrize(
        "overrides",
        [
            {"num_threads": 0},
            {"max_redirects": -1},
            {"max_depth": -2},
            {"wait_before_leave": 0},
            {"timeout_seconds": 0},
            {"retries": -1},
        ],
    )
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            CrawlConfig(start_urls=["http://example.com/"], **overrides)

    def test_hosts_are_lowercased(self):
        config = CrawlConfig(start_urls=["http://example.com/"], include_hosts=[" Example.COM "])
        assert config.include_hosts == ["example.com"]

    def test_from_dict_accepts_scalar_lists(self):
        config = CrawlConfig.from_dict(
            {
                "start_urls": "http://example.com/",
                "include_hosts": "example.com",
                "exclude_documents": r"\.pdf$",
                "normalize_uri": {"index_document": "index.html", "remove_trailing_slash": False},
            }
        )
        assert config.start_urls == ["http://example.com/"]
        assert config.include_hosts == ["example.com"]
        assert config.exclude_documents == [r"\.pdf$"]
        assert config.normalize_uri.index_document == "index.html"

    def test_from_dict_disables_normalization(self):
        config = CrawlConfig.from_dict({"start_urls": ["http://example.com/"], "normalize_uri": None})
        assert config.normalize_uri is None

    def test_option_lookup(self):
        config = CrawlConfig(start_urls=["http://example.com/"], max_depth=0)
        assert config.option("max_depth") == 0
        with pytest.raises(KeyError):
            config.option("nope")

    def test_proxy_password_not_serialized(self):
        config = CrawlConfig(
            start_urls=["http://example.com/"],
            http_proxy="http://proxy:3128",
            http_proxy_user="user",
            http_proxy_pass="secret",
        )
        assert config.to_dict()["http_proxy_pass"] is None


class TestConfiguration:
    def test_requires_crawler_mapping(self):
        with pytest.raises(ValueError, match="crawler"):
            Configuration.from_dict({"index": {}})

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValueError, match="log_level"):
            Configuration(crawler=CrawlConfig(start_urls=["http://example.com/"]), log_level="loud")

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "crawl.yaml"
        path.write_text(
            "\n".join(
                [
                    "log_level: INFO",
                    "crawler:",
                    "  start_urls:",
                    "    - http://localhost:3000/",
                    "  include_hosts: [localhost]",
                    "  num_threads: 4",
                    "index:",
                    f"  path: {tmp_path / 'index'}",
                    "  create: false",
                    "content_extraction:",
                    "  content_selector: div#content",
                ]
            ),
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.log_level == "info"
        assert config.crawler.num_threads == 4
        assert config.crawler.include_hosts == ["localhost"]
        assert config.index == IndexConfig(path=str(tmp_path / "index"), create=False)
        assert config.content_extraction.content_selector == "div#content"

    def test_save_and_load_json(self, tmp_path):
        config = Configuration(
            crawler=CrawlConfig(start_urls=["http://example.com/"], max_depth=3),
            index=IndexConfig(path=str(tmp_path / "idx")),
        )
        path = tmp_path / "out" / "crawl.json"

        save_config(config, path)

        assert json.loads(path.read_text(encoding="utf-8"))["crawler"]["max_depth"] == 3
        assert load_config(path) == config

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "crawl.toml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported"):
            load_config(path)


class TestIndexConfig:
    def test_paths(self, tmp_path):
        config = IndexConfig(path=str(tmp_path))
        assert config.docs_path == tmp_path / "docs.jsonl"
        assert config.index_path == tmp_path / "bm25_index.pkl"

    @pytest.mark.parametrize("overrides", [{"path": " "}, {"min_token_len": 0}, {"b": 1.5}])
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            IndexConfig(**overrides)
