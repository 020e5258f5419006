from __future__ import annotations

import json
from pathlib import Path
import re
from typing import Any, Iterator


WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Normalize document text for indexing.

    Steps:
    - remove null bytes
    - collapse whitespace and trim
    """

    value = str(text or "").replace("\x00", " ")
    return WHITESPACE_RE.sub(" ", value).strip()


def compile_token_pattern(token_pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(token_pattern)
    except re.error as exc:
        raise ValueError(f"Invalid token pattern: {token_pattern!r}") from exc


def tokenize(
    text: str,
    *,
    token_re: re.Pattern[str],
    lowercase: bool,
    min_token_len: int,
) -> list[str]:
    value = text.lower() if lowercase else text
    tokens = token_re.findall(value)
    if min_token_len > 1:
        return [tok for tok in tokens if len(tok) >= min_token_len]
    return tokens


def iter_jsonl(path: str | Path) -> Iterator[dict[str, Any]]:
    """Yield JSON object rows from JSONL file."""

    input_path = Path(path)
    with input_path.open("r", encoding="utf-8") as handle:
        for line_no, raw in enumerate(handle, start=1):
            line = raw.strip()
            if not line:
                continue
            payload = json.loads(line)
            if not isinstance(payload, dict):
                raise ValueError(
                    f"Expected JSON object at {input_path}:{line_no}, got {type(payload).__name__}"
                )
            yield payload
