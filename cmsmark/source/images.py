"""Find where an image ``src`` is written in template files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..template.nodes import ComponentNode, ElementNode, NodeVisitor, RootNode
from .snippets import extract_image_snippet

NEAR_LINE_WINDOW = 15


@dataclass
class ImageMatch:
    line: int
    src: str
    snippet: str


def find_image_element(ast: RootNode, src: str, lines: List[str]) -> Optional[ImageMatch]:
    """First ``<img>`` or component whose ``src`` attribute equals ``src``."""
    for match in _image_elements(ast, lines):
        if match.src == src:
            return match
    return None


def find_image_element_near_line(
    ast: RootNode, lines: List[str], line: int, src: Optional[str] = None
) -> Optional[ImageMatch]:
    """Image element closest to ``line``, at most :data:`NEAR_LINE_WINDOW` lines away.

    When ``src`` is given only elements with that source are considered.
    """
    best: Optional[ImageMatch] = None
    best_distance = NEAR_LINE_WINDOW + 1
    for match in _image_elements(ast, lines):
        if src is not None and match.src != src:
            continue
        distance = abs(match.line - line)
        if distance < best_distance:
            best, best_distance = match, distance
    return best


def parse_srcset(srcset: str) -> List[str]:
    """URLs of a ``srcset`` value, descriptors dropped."""
    urls = []
    for candidate in srcset.split(","):
        parts = candidate.strip().split()
        if parts:
            urls.append(parts[0])
    return urls


# ------------------------------------------------------------------
# Internal helpers


def _image_elements(ast: RootNode, lines: List[str]) -> List[ImageMatch]:
    collector = _ImageCollector(lines)
    collector.visit(ast)
    return collector.matches


class _ImageCollector(NodeVisitor):
    def __init__(self, lines: List[str]) -> None:
        self.lines = lines
        self.matches: List[ImageMatch] = []

    def visit_element(self, node: ElementNode) -> None:
        if node.name.lower() == "img":
            self._collect(node)
        self.generic_visit(node)

    def visit_component(self, node: ComponentNode) -> None:
        self._collect(node)
        self.generic_visit(node)

    def _collect(self, node: ElementNode) -> None:
        attr = node.attribute("src")
        if attr is None or not attr.value:
            return
        line = attr.position.line or node.position.line
        self.matches.append(
            ImageMatch(line=line, src=attr.value, snippet=extract_image_snippet(self.lines, line - 1))
        )


__all__ = [
    "ImageMatch",
    "NEAR_LINE_WINDOW",
    "find_image_element",
    "find_image_element_near_line",
    "parse_srcset",
]
