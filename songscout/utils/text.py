"""String normalization shared by search, ranking and deduplication."""

from __future__ import annotations

import math
import re

# Anything that is not a word character or whitespace
_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
# Query sanitizer keeps quotes, hyphens and apostrophes
_QUERY_STRIP_RE = re.compile(r"""[^\w\s'"-]""")


def normalize_key(value: str | None) -> str:
    """Case-fold, strip punctuation and collapse whitespace.

    >>> normalize_key("  Sweet Child O' Mine!! ")
    'sweet child o mine'
    """
    if not value:
        return ""
    lowered = value.lower()
    stripped = _NON_WORD_RE.sub("", lowered)
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def song_key(title: str | None, artist: str | None) -> tuple[str, str]:
    """Return the normalized (title, artist) dedup key."""
    return normalize_key(title), normalize_key(artist)


def sanitize_query(query: str | None) -> str:
    """Clean a free-text catalog query.

    Punctuation other than quotes, hyphens and apostrophes becomes a space,
    then whitespace is collapsed.
    """
    if not query:
        return ""
    cleaned = _QUERY_STRIP_RE.sub(" ", query.strip())
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def clean_value(value: str | None) -> str | None:
    """Trim and collapse whitespace; empty strings become None."""
    if not value:
        return None
    cleaned = " ".join(value.split())
    return cleaned if cleaned else None


def format_duration(seconds: int | float | None) -> str:
    """Format seconds as M:SS (or '--:--' when unknown)."""
    if seconds is None or seconds < 0:
        return "--:--"
    total = round_half_up(seconds)
    return f"{total // 60}:{total % 60:02d}"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, not 2)."""
    return int(math.floor(value + 0.5))
