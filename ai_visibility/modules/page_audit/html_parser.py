"""HTML extraction for the page auditor.

Pulls out everything the five audit dimensions score: JSON-LD blocks,
``<title>``, first ``<h1>``, meta description, the opening text a reader
(or an AI crawler) meets first, and the full visible text.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from bs4 import BeautifulSoup, Comment

logger = logging.getLogger(__name__)

_OPENING_TAGS = ["h1", "h2", "p"]
_OPENING_MAX_CHARS = 500
_OPENING_TARGET_CHARS = 300


@dataclass
class ParsedPage:
    title: str = ""
    h1: str = ""
    meta_description: str = ""
    opening_text: str = ""
    visible_text: str = ""
    json_ld_blocks: list[dict[str, Any]] = field(default_factory=list)


def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _flatten_json_ld(data: Any) -> list[dict[str, Any]]:
    """Expand top-level arrays and ``@graph`` containers into plain nodes."""
    if isinstance(data, list):
        blocks: list[dict[str, Any]] = []
        for item in data:
            blocks.extend(_flatten_json_ld(item))
        return blocks
    if not isinstance(data, dict):
        return []
    graph = data.get("@graph")
    if isinstance(graph, list):
        blocks = []
        # A container may carry its own @type alongside the graph.
        if "@type" in data:
            blocks.append({k: v for k, v in data.items() if k != "@graph"})
        for item in graph:
            blocks.extend(_flatten_json_ld(item))
        return blocks
    return [data]


def extract_json_ld(soup: BeautifulSoup) -> list[dict[str, Any]]:
    """Return every JSON-LD node on the page; malformed blocks are skipped."""
    blocks: list[dict[str, Any]] = []
    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string or script.get_text() or ""
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Skipping malformed JSON-LD block (%d chars)", len(raw))
            continue
        blocks.extend(_flatten_json_ld(data))
    return blocks


def _visible_text(soup: BeautifulSoup) -> str:
    """Extract visible body text; mutates *soup*."""
    for tag in soup(["head", "script", "style", "noscript", "template"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda t: isinstance(t, Comment)):
        comment.extract()
    return _clean(soup.get_text(separator=" ", strip=True))


def _opening_text(soup: BeautifulSoup) -> str:
    """Leading heading/paragraph copy from the main content area."""
    content = soup.find("main") or soup.find("article") or soup.body or soup
    for tag in content.find_all(["nav", "header", "footer", "aside"]):
        tag.decompose()

    parts: list[str] = []
    length = 0
    for element in content.find_all(_OPENING_TAGS):
        text = _clean(element.get_text(separator=" ", strip=True))
        if not text:
            continue
        parts.append(text)
        length += len(text) + 1
        if length >= _OPENING_TARGET_CHARS:
            break

    if not parts:
        # No headings or paragraphs: fall back to the raw visible text.
        return _visible_text(content)[:_OPENING_MAX_CHARS]
    return " ".join(parts)[:_OPENING_MAX_CHARS]


def parse_page(html: str) -> ParsedPage:
    """Parse *html* into the fields the audit dimensions consume."""
    soup = BeautifulSoup(html or "", "html.parser")

    title_tag = soup.find("title")
    h1_tag = soup.find("h1")
    meta_tag = soup.find("meta", attrs={"name": re.compile(r"^description$", re.I)})

    json_ld = extract_json_ld(soup)
    opening = _opening_text(BeautifulSoup(html or "", "html.parser"))  # fresh copy
    visible = _visible_text(soup)

    return ParsedPage(
        title=_clean(title_tag.get_text()) if title_tag else "",
        h1=_clean(h1_tag.get_text(separator=" ")) if h1_tag else "",
        meta_description=_clean(meta_tag.get("content", "")) if meta_tag else "",
        opening_text=opening,
        visible_text=visible,
        json_ld_blocks=json_ld,
    )
