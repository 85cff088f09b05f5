"""Template parsing: markup AST and tree-sitter preamble parsing."""

from .markup import MarkupParseError, parse_template
from .nodes import (
    Attribute,
    ComponentNode,
    ElementNode,
    ExpressionNode,
    FrontmatterNode,
    NodeVisitor,
    Position,
    RootNode,
    TextNode,
    walk,
)
from .script import parse_script

__all__ = [
    "Attribute",
    "ComponentNode",
    "ElementNode",
    "ExpressionNode",
    "FrontmatterNode",
    "MarkupParseError",
    "NodeVisitor",
    "Position",
    "RootNode",
    "TextNode",
    "parse_script",
    "parse_template",
    "walk",
]
