"""Tree-sitter parsing of template preambles and script modules."""

from __future__ import annotations

import codecs
from typing import Dict, Iterator, Optional

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser, Tree

TS_LANGUAGE = Language(tstypescript.language_typescript())
TSX_LANGUAGE = Language(tstypescript.language_tsx())

_PARSERS: Dict[str, Parser] = {}

# Wrappers whose first named child carries the actual value (``x as const``).
_TRANSPARENT_NODES = {
    "as_expression",
    "satisfies_expression",
    "parenthesized_expression",
    "non_null_expression",
}


def _get_parser(dialect: str) -> Parser:
    parser = _PARSERS.get(dialect)
    if parser is None:
        parser = Parser(TSX_LANGUAGE if dialect == "tsx" else TS_LANGUAGE)
        _PARSERS[dialect] = parser
    return parser


def parse_script(code: str, *, jsx: bool = False) -> Tree:
    """Parse TypeScript (or TSX when ``jsx``) source; tree-sitter recovers from errors."""
    return _get_parser("tsx" if jsx else "typescript").parse(code.encode("utf-8"))


def node_text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text is not None else ""


def node_row(node: Node) -> int:
    """0-based row of the node start."""
    return node.start_point[0]


def unwrap(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type in _TRANSPARENT_NODES and node.named_children:
        node = node.named_children[0]
    return node


def walk_nodes(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from walk_nodes(child)


def string_value(node: Optional[Node]) -> Optional[str]:
    """Cooked value of a string literal or a substitution-free template string."""
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "string":
        return _cook(node)
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.children):
            return None
        return _cook(node)
    return None


def _cook(node: Node) -> str:
    parts = []
    for child in node.children:
        if child.type == "string_fragment":
            parts.append(node_text(child))
        elif child.type == "escape_sequence":
            parts.append(_decode_escape(node_text(child)))
    return "".join(parts)


def _decode_escape(raw: str) -> str:
    if raw.startswith("\\u{") and raw.endswith("}"):
        try:
            return chr(int(raw[3:-1], 16))
        except ValueError:
            return raw
    if raw.startswith("\\") and len(raw) == 2 and raw[1] in "'\"`$":
        return raw[1]
    try:
        return codecs.decode(raw, "unicode_escape")
    except UnicodeDecodeError:
        return raw


__all__ = [
    "TSX_LANGUAGE",
    "TS_LANGUAGE",
    "node_row",
    "node_text",
    "parse_script",
    "string_value",
    "unwrap",
    "walk_nodes",
]
