from __future__ import annotations

import re

from loguru import logger

# Character-obfuscated technical terms and their canonical spelling
REPLACEMENTS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"\b{pattern}\b", re.IGNORECASE), replacement)
    for pattern, replacement in (
        ("3rr0r", "error"),
        ("1nst4ll", "install"),
        ("w1nd0ws", "windows"),
        ("l1nux", "linux"),
        ("f1x", "fix"),
        ("h3lp", "help"),
        ("c0nf1g", "config"),
        ("s3tup", "setup"),
    )
)

_REPEATED_PUNCTUATION = re.compile(r"[!?]{2,}")
_WHITESPACE = re.compile(r"\s+")


def _enhance(query: str) -> str:
    enhanced = query.strip()
    for pattern, replacement in REPLACEMENTS:
        enhanced = pattern.sub(replacement, enhanced)
    enhanced = _REPEATED_PUNCTUATION.sub("", enhanced)
    return _WHITESPACE.sub(" ", enhanced).strip()


def enhance_query(query: str) -> str:
    """Clean a raw query. Never raises; falls back to the input unchanged."""
    try:
        enhanced = _enhance(query)
    except Exception as e:
        logger.warning(f"Query enhancement failed, using original query: {e}")
        return query
    return enhanced or query
