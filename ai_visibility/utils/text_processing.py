"""Text processing utilities for page and AI-answer analysis."""

import re
from typing import Optional

_URL_RE = re.compile(r"https?://[^\s<>\"'\])]+")
_BOLD_RE = re.compile(r"\*\*([^*\n]{2,80})\*\*")
_LIST_HEAD_RE = re.compile(
    r"^\s*(?:\d+[.)]|[-*•])\s+(?:\*\*)?([^:\n–—*]{2,80}?)(?:\*\*)?\s*(?:[:–—]|\s-\s|$)",
    re.MULTILINE,
)
# Capitalised phrases; single-letter joiners keep names like "Charcoal N Chill" whole.
_PROPER_NAME_RE = re.compile(
    r"\b([A-Z][\w'’]+(?:\s+(?:&|and|of|the|[A-Z]|[A-Z][\w'’]+))*\s+[A-Z][\w'’]+)\b"
)


def first_sentence(text: str) -> str:
    """Return text up to the first sentence terminator."""
    return re.split(r"[.!?]", text, maxsplit=1)[0]


def calculate_keyword_density(text: str, keyword: str) -> dict[str, float | int]:
    """Calculate keyword density metrics.

    Args:
        text: The full text content.
        keyword: Single or multi-word keyword to measure.

    Returns:
        Dict with density_pct, count, and total_words.
    """
    words = re.findall(r"[a-z0-9']+", text.lower())
    kw_words = re.findall(r"[a-z0-9']+", keyword.lower())
    total_words = len(words)

    if total_words == 0 or not kw_words:
        return {"density_pct": 0.0, "count": 0, "total_words": total_words}

    kw_len = len(kw_words)
    count = 0
    for i in range(total_words - kw_len + 1):
        if words[i:i + kw_len] == kw_words:
            count += 1

    density = (count * kw_len / total_words) * 100
    return {
        "density_pct": round(density, 2),
        "count": count,
        "total_words": total_words,
    }


def extract_candidate_names(text: str, limit: int = 25) -> list[str]:
    """Pull likely business names out of a free-text AI answer.

    Looks at bold spans, list-item heads and capitalised multi-word
    phrases, in that order, and returns unique names in first-seen order.
    """
    if not text:
        return []
    found: list[str] = []
    seen: set[str] = set()

    def _add(name: str) -> None:
        cleaned = name.strip(" \t*_.,;:!?\"'()[]")
        key = cleaned.lower()
        if len(cleaned) < 2 or key in seen:
            return
        seen.add(key)
        found.append(cleaned)

    for match in _BOLD_RE.finditer(text):
        _add(match.group(1))
    for match in _LIST_HEAD_RE.finditer(text):
        _add(match.group(1))
    for match in _PROPER_NAME_RE.finditer(text):
        _add(match.group(1))
    return found[:limit]


def find_first_url(text: str) -> Optional[str]:
    if not text:
        return None
    match = _URL_RE.search(text)
    return match.group(0).rstrip(".,;:") if match else None
