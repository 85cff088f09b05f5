"""Source snippet extraction around a matched line."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

BACKTRACK_LINES = 20
ELEMENT_LINES = 30
OPENING_TAG_LINES = 10


def _open_tag(tag: str) -> "re.Pattern[str]":
    return re.compile(rf"<{re.escape(tag)}(?:[\s>]|$)", re.IGNORECASE)


def _find_opening_line(lines: Sequence[str], start: int, tag: str) -> int:
    pattern = _open_tag(tag)
    if 0 <= start < len(lines) and pattern.search(lines[start]):
        return start
    for index in range(start - 1, max(0, start - BACKTRACK_LINES) - 1, -1):
        if 0 <= index < len(lines) and lines[index] and pattern.search(lines[index]):
            return index
    return start


def extract_complete_tag_snippet(lines: Sequence[str], start: int, tag: str) -> str:
    """Whole element source starting at (or a few lines above) 0-based line ``start``.

    Falls back to the opening line when the closing tag is not found within
    the scan window.
    """
    first = _find_opening_line(lines, start, tag)
    escaped = re.escape(tag)
    opening = _open_tag(tag)
    self_closing = re.compile(rf"<{escaped}[^>]*/>", re.IGNORECASE)
    closing = re.compile(rf"</{escaped}>", re.IGNORECASE)

    collected: List[str] = []
    depth = 0
    complete = False
    for index in range(max(first, 0), min(first + ELEMENT_LINES, len(lines))):
        line = lines[index]
        if not line:
            continue
        collected.append(line)
        opens = len(opening.findall(line))
        closes_self = len(self_closing.findall(line))
        closes = len(closing.findall(line))
        depth += opens - closes_self - closes
        if closes_self > 0 or (depth <= 0 and (closes > 0 or opens > 0)):
            complete = True
            break

    if not complete and len(collected) > 1:
        return collected[0]
    return "\n".join(collected)


def extract_inner_html_from_snippet(snippet: str, tag: str) -> Optional[str]:
    """``content`` from ``<tag ...>content</tag>``."""
    escaped = re.escape(tag)
    open_match = re.search(rf"<{escaped}(?:\s[^>]*)?>", snippet, re.IGNORECASE)
    close_match = re.search(rf"</{escaped}>", snippet, re.IGNORECASE)
    if open_match is None or close_match is None:
        return None
    if close_match.start() > open_match.end():
        return snippet[open_match.end() : close_match.start()]
    return None


def extract_image_snippet(lines: Sequence[str], start: int) -> str:
    """The ``<img>`` (or image component) tag starting at 0-based line ``start``."""
    collected: List[str] = []
    complete = False
    for index in range(max(start, 0), min(start + OPENING_TAG_LINES, len(lines))):
        line = lines[index]
        if not line:
            continue
        collected.append(line)
        if "/>" in line or ("<img" in line and ">" in line):
            complete = True
            break
    if not complete and len(collected) > 1:
        return collected[0]
    return "\n".join(collected)


def extract_tag_until_close(lines: Sequence[str], start: int) -> str:
    """Lines from ``start`` up to the first one ending a tag (``/>`` or ``>``)."""
    collected: List[str] = []
    for index in range(max(start, 0), min(start + OPENING_TAG_LINES, len(lines))):
        collected.append(lines[index])
        stripped = lines[index].rstrip()
        if stripped.endswith("/>") or stripped.endswith(">"):
            break
    return "\n".join(collected)


def line_at(lines: Sequence[str], line: int) -> str:
    """Source of 1-based ``line``, empty when out of range."""
    if 1 <= line <= len(lines):
        return lines[line - 1]
    return ""


__all__ = [
    "extract_complete_tag_snippet",
    "extract_image_snippet",
    "extract_inner_html_from_snippet",
    "extract_tag_until_close",
    "line_at",
]
