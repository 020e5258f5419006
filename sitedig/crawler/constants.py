"""Default values shared by crawler config, CLI, and collaborators."""

from __future__ import annotations


DEFAULT_NUM_THREADS = 2
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_MAX_DEPTH: int | None = None
DEFAULT_WAIT_BEFORE_LEAVE = 10.0

DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_RETRIES = 0
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
DEFAULT_USER_AGENT = "sitedig/0.3 (+https://pypi.org/project/sitedig/)"

DEFAULT_LOG_LEVEL = "warning"

SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
JSON_INDENT = 2
