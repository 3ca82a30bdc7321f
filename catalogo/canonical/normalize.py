"""Text normalization for accent-insensitive keyword matching."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable


def normalize_text(text: str | None) -> str:
    """Normalize text to canonical matching form.

    Args:
        text: Input string

    Returns:
        Lowercase string with accents stripped and whitespace collapsed
    """
    if not text:
        return ""

    # NFKD splits "ç" into "c" + combining cedilla, which is then dropped
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))

    text = text.lower()
    text = re.sub(r"\s+", " ", text)

    return text.strip()


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Trim tags, drop empties and duplicates, keep first-seen order."""
    if not tags:
        return []

    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        cleaned = str(tag).strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def split_tags(raw: str | None, separator: str = ";") -> list[str]:
    """Split a delimited tag field (e.g. "motor; naval;;yuchai")."""
    if not raw:
        return []
    return normalize_tags(raw.split(separator))


def contains_any(haystack: str, needles: Iterable[str]) -> bool:
    """Check whether normalized haystack contains any normalized needle."""
    return any(needle and needle in haystack for needle in (normalize_text(n) for n in needles))
