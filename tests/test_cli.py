"""Tests for the sitedig command line entrypoint."""

from __future__ import annotations

import logging

import pytest

from sitedig.crawl import build_config, main, parse_args
from sitedig.crawler.url import path_to_file_uri


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestBuildConfig:
    def test_flags_override_config_file(self, tmp_path):
        path = tmp_path / "crawl.yaml"
        path.write_text(
            "crawler:\n  start_urls: [http://example.com/]\n  num_threads: 8\n",
            encoding="utf-8",
        )
        args = parse_args(
            [
                "--config",
                str(path),
                "--start_url",
                "http://localhost:3000/",
                "--include_host",
                "localhost",
                "--max_depth",
                "2",
                "--index_path",
                str(tmp_path / "idx"),
                "--no_create",
                "--verbose",
            ]
        )

        config = build_config(args)

        assert config.crawler.start_urls == ["http://localhost:3000/"]
        assert config.crawler.include_hosts == ["localhost"]
        assert config.crawler.num_threads == 8
        assert config.crawler.max_depth == 2
        assert config.index.path == str(tmp_path / "idx")
        assert config.index.create is False
        assert config.log_level == "debug"

    def test_negative_depth_disables_limit(self):
        config = build_config(parse_args(["--start_url", "http://example.com/", "--max_depth", "-1"]))
        assert config.crawler.max_depth is None

    def test_requires_start_url(self):
        with pytest.raises(ValueError, match="No start URLs"):
            build_config(parse_args([]))

    def test_query_mode_needs_no_start_url(self):
        config = build_config(parse_args(["--query", "hello"]))
        assert config.crawler.start_urls


class TestMain:
    def test_config_error_exit_code(self):
        assert main(["--num_threads", "1"]) == 2

    def test_missing_index_exit_code(self, tmp_path):
        assert main(["--query", "x", "--index_path", str(tmp_path / "none")]) == 1

    def test_crawl_then_query(self, tmp_path, capsys):
        site = tmp_path / "site"
        site.mkdir()
        (site / "readme.txt").write_text("installation guide for sitedig", encoding="utf-8")
        (site / "other.txt").write_text("unrelated words", encoding="utf-8")
        index_path = str(tmp_path / "index")

        exit_code = main(
            [
                "--start_url",
                path_to_file_uri(site, directory=True),
                "--index_path",
                index_path,
                "--wait_before_leave",
                "0.05",
            ]
        )
        assert exit_code == 0
        assert "indexed: 2" in capsys.readouterr().out

        assert main(["--query", "installation", "--index_path", index_path]) == 0
        out = capsys.readouterr().out
        assert "readme.txt" in out
        assert "other.txt" not in out

    def test_bad_filter_pattern_exit_code(self, tmp_path):
        path = tmp_path / "crawl.yaml"
        path.write_text(
            f"crawler:\n  start_urls: ['{path_to_file_uri(tmp_path, directory=True)}']\n"
            "  include_documents: ['(']\n",
            encoding="utf-8",
        )
        index_path = tmp_path / "index"

        assert main(["--config", str(path), "--index_path", str(index_path)]) == 2
        assert not index_path.exists()

    def test_corrupt_index_is_a_crawl_failure(self, tmp_path):
        site = tmp_path / "site"
        site.mkdir()
        (site / "readme.txt").write_text("some words", encoding="utf-8")
        index_path = tmp_path / "index"
        index_path.mkdir()
        (index_path / "docs.jsonl").write_text("not json\n", encoding="utf-8")

        exit_code = main(
            [
                "--start_url",
                path_to_file_uri(site, directory=True),
                "--index_path",
                str(index_path),
                "--no_create",
                "--wait_before_leave",
                "0.05",
            ]
        )

        assert exit_code == 1
