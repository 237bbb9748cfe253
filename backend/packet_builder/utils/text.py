"""Text processing helpers."""

from __future__ import annotations

import re

UNSAFE_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
WHITESPACE_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Collapse whitespace and strip."""
    return WHITESPACE_RE.sub(" ", text).strip()


def safe_filename(name: str, fallback: str = "attachment") -> str:
    """Reduce an uploaded name to a bare basename usable as an archive entry."""
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    base = normalize(UNSAFE_CHARS_RE.sub("", base))
    if base in {"", ".", ".."}:
        return fallback
    return base
