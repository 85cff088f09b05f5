"""Markup AST for template files.

Nodes form a closed set of variants. Code that walks the tree subclasses
:class:`NodeVisitor`, which dispatches on the node class and fails loudly for
an unknown variant instead of silently skipping it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union

# Attribute kinds.
QUOTED = "quoted"
EXPRESSION = "expression"
SPREAD = "spread"
SHORTHAND = "shorthand"
EMPTY = "empty"
TEMPLATE_LITERAL = "template-literal"


@dataclass(frozen=True)
class Position:
    """1-based line and column of a node start."""

    line: int
    column: int


@dataclass
class Attribute:
    name: str
    kind: str
    value: str
    position: Position


@dataclass
class TextNode:
    value: str
    position: Position


@dataclass
class ExpressionNode:
    """A ``{...}`` block; children mix raw code (as text) with embedded markup."""

    children: List["Node"]
    position: Position

    @property
    def code(self) -> str:
        return "".join(child.value for child in self.children if isinstance(child, TextNode))


@dataclass
class ElementNode:
    name: str
    attributes: List[Attribute]
    children: List["Node"]
    position: Position

    def attribute(self, name: str) -> Optional[Attribute]:
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None


@dataclass
class ComponentNode(ElementNode):
    """An element whose tag is capitalized or dotted (``Card``, ``UI.Button``)."""


@dataclass
class FrontmatterNode:
    value: str
    position: Position


@dataclass
class RootNode:
    children: List["Node"] = field(default_factory=list)
    frontmatter: Optional[FrontmatterNode] = None
    position: Position = Position(1, 1)


Node = Union[RootNode, ElementNode, ComponentNode, TextNode, ExpressionNode]
ParentNode = Union[RootNode, ElementNode, ExpressionNode]


def is_component_name(name: str) -> bool:
    return bool(name) and (name[0].isupper() or "." in name)


def iter_children(node: Node) -> List[Node]:
    if isinstance(node, (RootNode, ElementNode, ExpressionNode)):
        return node.children
    return []


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and every descendant in document order."""
    yield node
    for child in iter_children(node):
        yield from walk(child)


class NodeVisitor:
    """Depth-first visitor over the markup AST.

    ``visit`` dispatches to ``visit_<variant>``; the defaults recurse into
    children so subclasses only override what they care about.
    """

    def visit(self, node: Node) -> None:
        # ComponentNode before ElementNode: it is a subclass.
        if isinstance(node, ComponentNode):
            self.visit_component(node)
        elif isinstance(node, ElementNode):
            self.visit_element(node)
        elif isinstance(node, TextNode):
            self.visit_text(node)
        elif isinstance(node, ExpressionNode):
            self.visit_expression(node)
        elif isinstance(node, RootNode):
            self.visit_root(node)
        else:
            raise TypeError(f"Unknown markup node: {type(node).__name__}")

    def generic_visit(self, node: Node) -> None:
        for child in iter_children(node):
            self.visit(child)

    def visit_root(self, node: RootNode) -> None:
        self.generic_visit(node)

    def visit_element(self, node: ElementNode) -> None:
        self.generic_visit(node)

    def visit_component(self, node: ComponentNode) -> None:
        self.generic_visit(node)

    def visit_expression(self, node: ExpressionNode) -> None:
        self.generic_visit(node)

    def visit_text(self, node: TextNode) -> None:
        pass


__all__ = [
    "EMPTY",
    "EXPRESSION",
    "QUOTED",
    "SHORTHAND",
    "SPREAD",
    "TEMPLATE_LITERAL",
    "Attribute",
    "ComponentNode",
    "ElementNode",
    "ExpressionNode",
    "FrontmatterNode",
    "Node",
    "NodeVisitor",
    "ParentNode",
    "Position",
    "RootNode",
    "TextNode",
    "is_component_name",
    "iter_children",
    "walk",
]
