"""Text normalization and text extraction from the markup AST."""

from __future__ import annotations

import re
from typing import List, Optional

from ..template.nodes import ElementNode, ExpressionNode, Node, TextNode, iter_children
from .symbols import parse_expression_path

_ESCAPED_QUOTE = re.compile(r"\\(['\"])")
_NBSP = re.compile(r"&nbsp;", re.IGNORECASE)
_BR = re.compile(r"<br\s*/?>", re.IGNORECASE)
_WBR = re.compile(r"<wbr\s*/?>", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

_ENTITIES = (
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&quot;", '"'),
    ("&amp;", "&"),
)


def normalize_text(text: str) -> str:
    """Canonical form used for every text comparison.

    Unescapes quotes, decodes the common entities, turns ``<br>`` into a
    line break and drops ``<wbr>``, collapses whitespace and lowercases.
    Decoding repeats until nothing changes so the result is a fixed point.
    """
    text = text.strip().lower()
    previous = None
    while text != previous:
        previous = text
        text = _ESCAPED_QUOTE.sub(r"\1", text)
        for entity, replacement in _ENTITIES:
            text = text.replace(entity, replacement)
        text = _NBSP.sub(" ", text)
        text = _BR.sub("\n", text)
        text = _WBR.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def get_text_content(node: Node, *, include_expressions: bool = True) -> str:
    """Concatenated text under ``node``; ``<br>`` counts as a space and ``<wbr>`` as nothing."""
    if isinstance(node, TextNode):
        return node.value
    if isinstance(node, ElementNode):
        name = node.name.lower()
        if name == "br":
            return " "
        if name == "wbr":
            return ""
    if isinstance(node, ExpressionNode) and not include_expressions:
        return ""
    return "".join(
        get_text_content(child, include_expressions=include_expressions)
        for child in iter_children(node)
    )


def literal_text(node: Node) -> str:
    """Text written literally in the template, ignoring ``{...}`` expressions."""
    return get_text_content(node, include_expressions=False)


def expression_paths(node: Node) -> List[str]:
    """Variable paths of every expression under ``node`` that is a plain reference."""
    if isinstance(node, ExpressionNode):
        path = parse_expression_path(get_text_content(node))
        return [path] if path else []
    paths: List[str] = []
    for child in iter_children(node):
        paths.extend(expression_paths(child))
    return paths


def find_text_line(node: Node, normalized_search: str) -> Optional[int]:
    """Line of the first text node whose normalized value contains the search text."""
    if isinstance(node, TextNode):
        if normalized_search in normalize_text(node.value):
            return node.position.line
        return None
    for child in iter_children(node):
        if isinstance(node, ExpressionNode) and isinstance(child, TextNode):
            continue  # script code, not rendered text
        line = find_text_line(child, normalized_search)
        if line is not None:
            return line
    return None


__all__ = [
    "expression_paths",
    "find_text_line",
    "get_text_content",
    "literal_text",
    "normalize_text",
]
