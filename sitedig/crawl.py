"""CLI entrypoint: crawl a site into the index, or query an existing index."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from sitedig.crawler import Configuration, Crawler
from sitedig.crawler.config import LOG_LEVELS, load_config_payload
from sitedig.index import IndexConfig, Searcher


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a web site or directory tree into a full-text index, or query that index.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML config.",
    )
    parser.add_argument(
        "--start_url",
        action="append",
        default=[],
        help="Start URL (repeatable). Overrides config start URLs if provided.",
    )
    parser.add_argument(
        "--include_host",
        action="append",
        default=[],
        help="Host to stay on (repeatable). Overrides config include_hosts if provided.",
    )
    parser.add_argument("--num_threads", type=int, default=None)
    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument("--max_redirects", type=int, default=None)
    parser.add_argument("--wait_before_leave", type=float, default=None)
    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--user_agent", type=str, default=None)

    parser.add_argument("--index_path", type=str, default=None)
    parser.add_argument(
        "--no_create",
        action="store_true",
        help="Add to an existing index instead of replacing it.",
    )

    parser.add_argument(
        "--query",
        type=str,
        default=None,
        help="Search the index instead of crawling.",
    )
    parser.add_argument("--top_k", type=int, default=10)

    parser.add_argument("--log_file", type=str, default=None)
    parser.add_argument("--log_level", type=str, choices=LOG_LEVELS, default=None)
    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after the crawl.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Configuration:
    if args.config is not None:
        payload = load_config_payload(args.config)
    else:
        payload = {}

    crawler = dict(payload.get("crawler") or {})
    index = dict(payload.get("index") or {})

    if args.start_url:
        crawler["start_urls"] = list(args.start_url)
    if args.include_host:
        crawler["include_hosts"] = list(args.include_host)

    if args.query is not None and not crawler.get("start_urls"):
        # Querying never crawls; any placeholder start URL satisfies validation.
        crawler["start_urls"] = ["http://localhost/"]
    if not crawler.get("start_urls"):
        raise ValueError("No start URLs provided. Use --config or at least one --start_url.")

    if args.num_threads is not None:
        crawler["num_threads"] = args.num_threads
    if args.max_depth is not None:
        crawler["max_depth"] = None if args.max_depth < 0 else args.max_depth
    if args.max_redirects is not None:
        crawler["max_redirects"] = args.max_redirects
    if args.wait_before_leave is not None:
        crawler["wait_before_leave"] = args.wait_before_leave
    if args.timeout_seconds is not None:
        crawler["timeout_seconds"] = args.timeout_seconds
    if args.user_agent is not None:
        crawler["user_agent"] = args.user_agent

    if args.index_path is not None:
        index["path"] = args.index_path
    if args.no_create:
        index["create"] = False

    payload["crawler"] = crawler
    payload["index"] = index
    if args.log_file is not None:
        payload["log_file"] = args.log_file
    if args.verbose:
        payload["log_level"] = "debug"
    elif args.log_level is not None:
        payload["log_level"] = args.log_level

    return Configuration.from_dict(payload)


def setup_logging(level_name: str, log_file: str | None = None) -> None:
    log_level = getattr(logging, level_name.upper())

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.getLogger("trafilatura").setLevel(logging.ERROR)
    logging.getLogger("trafilatura.core").setLevel(logging.ERROR)
    logging.getLogger("urllib3").setLevel(max(log_level, logging.WARNING))


def print_summary(result: dict[str, Any], index: IndexConfig, *, print_stats_json: bool) -> None:
    stats = result.get("stats", {})

    print("\n=== Crawl Complete ===")
    print(f"crawl_type: {result.get('crawl_type')}")
    print(f"index: {index.root}")

    print("\n--- Core Stats ---")
    for key in [
        "seeded",
        "enqueued",
        "rejected",
        "fetched_success",
        "fetched_redirect",
        "fetched_error",
        "indexed",
        "duplicates",
        "index_excluded",
        "failed",
        "duration_seconds",
    ]:
        if key in stats:
            print(f"{key}: {stats[key]}")

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))


def print_results(results: list[dict[str, Any]]) -> None:
    if not results:
        print("no matches")
        return
    for result in results:
        print(f"{result['rank']:>3}. {result.get('title') or '(untitled)'}  [{result['score']:.3f}]")
        print(f"     {result.get('url')}")
        if result.get("extract"):
            print(f"     {result['extract']}")


def run_query(config: Configuration, query: str, top_k: int) -> int:
    searcher = Searcher(config.index)
    results = searcher.search(query, top_k=top_k)
    print_results(results)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = build_config(args)
    except Exception as exc:
        setup_logging("error")
        logging.error("Failed to build config: %s", exc)
        return 2

    setup_logging(config.log_level, config.log_file)

    if args.query is not None:
        try:
            return run_query(config, args.query, args.top_k)
        except (FileNotFoundError, ValueError) as exc:
            logging.error("Cannot search index at %s: %s", config.index.root, exc)
            return 1

    logging.info(
        "Starting crawl: start_urls=%d, num_threads=%d, index=%s",
        len(config.crawler.start_urls),
        config.crawler.num_threads,
        config.index.root,
    )

    crawler = Crawler.from_configuration(config)
    try:
        crawler.validate()
    except ValueError as exc:
        logging.error("Invalid crawl configuration: %s", exc)
        return 2

    try:
        result = crawler.run()
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl failed")
        return 1

    print_summary(result, config.index, print_stats_json=args.print_stats_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
