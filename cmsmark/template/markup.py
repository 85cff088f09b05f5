"""Parser for ``.astro`` style templates: a ``---`` fenced script preamble followed by markup.

The parser is deliberately forgiving about HTML structure (unclosed elements
are closed by their ancestors, stray closing tags are dropped) but raises
:class:`MarkupParseError` for input it cannot make sense of at all, such as an
unterminated preamble, tag or expression.
"""

from __future__ import annotations

import bisect
import re
from typing import List, Optional, Tuple

from .nodes import (
    EMPTY,
    EXPRESSION,
    QUOTED,
    SHORTHAND,
    SPREAD,
    TEMPLATE_LITERAL,
    Attribute,
    ComponentNode,
    ElementNode,
    ExpressionNode,
    FrontmatterNode,
    Node,
    Position,
    RootNode,
    TextNode,
    is_component_name,
)

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)
RAW_TEXT_ELEMENTS = frozenset({"script", "style"})

_FENCE_OPEN = re.compile(r"\s*---")
_FENCE_CLOSE = re.compile(r"^---[ \t]*$", re.MULTILINE)
_TAG_NAME_STOP = set(" \t\r\n/>{")
_ATTR_NAME_STOP = set(" \t\r\n=>/{")
# Characters after which ``<`` inside an expression opens markup rather than a comparison.
_MARKUP_LEADS = set("(,[?:&|{")


class MarkupParseError(ValueError):
    """Raised when a template cannot be parsed."""


def parse_template(source: str) -> RootNode:
    """Parse template source into a :class:`RootNode`."""
    return _MarkupParser(source).parse()


class _MarkupParser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self._line_starts = [0]
        for index, char in enumerate(source):
            if char == "\n":
                self._line_starts.append(index + 1)

    def parse(self) -> RootNode:
        root = RootNode(position=Position(1, 1))
        root.frontmatter = self._parse_frontmatter()
        root.children = self._parse_children([])
        return root

    # ------------------------------------------------------------------
    # Internal helpers

    def _position(self, offset: int) -> Position:
        line_index = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line_index + 1, offset - self._line_starts[line_index] + 1)

    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.source[index] if index < len(self.source) else ""

    def _parse_frontmatter(self) -> Optional[FrontmatterNode]:
        match = _FENCE_OPEN.match(self.source)
        if match is None:
            return None
        fence_start = match.end() - 3
        content_start = match.end()
        closing = _FENCE_CLOSE.search(self.source, content_start)
        if closing is None:
            raise MarkupParseError("Unterminated frontmatter fence")
        node = FrontmatterNode(
            value=self.source[content_start : closing.start()],
            position=self._position(fence_start),
        )
        self.pos = closing.end()
        return node

    def _parse_children(self, open_tags: List[str]) -> List[Node]:
        nodes: List[Node] = []
        text_start: Optional[int] = None
        source = self.source

        def flush(end: int) -> None:
            nonlocal text_start
            if text_start is not None and end > text_start:
                nodes.append(self._text_node(text_start, end))
            text_start = None

        while self.pos < len(source):
            char = source[self.pos]
            if char == "<":
                if source.startswith("<!--", self.pos):
                    flush(self.pos)
                    end = source.find("-->", self.pos + 4)
                    self.pos = len(source) if end == -1 else end + 3
                    continue
                if source.startswith("</", self.pos):
                    flush(self.pos)
                    name = self._peek_closing_name()
                    if name.lower() in open_tags:
                        return nodes
                    self._skip_past(">")
                    continue
                if source.startswith("<!", self.pos):
                    flush(self.pos)
                    self._skip_past(">")
                    continue
                following = self._peek(1)
                if following.isalpha() or following == ">":
                    flush(self.pos)
                    nodes.append(self._parse_element(open_tags))
                    continue
            elif char == "{":
                flush(self.pos)
                nodes.append(self._parse_expression())
                continue
            if text_start is None:
                text_start = self.pos
            self.pos += 1

        flush(self.pos)
        return nodes

    def _text_node(self, start: int, end: int) -> TextNode:
        value = self.source[start:end]
        stripped = len(value) - len(value.lstrip())
        anchor = start + stripped if stripped < len(value) else start
        return TextNode(value=value, position=self._position(anchor))

    def _peek_closing_name(self) -> str:
        index = self.pos + 2
        end = index
        while end < len(self.source) and self.source[end] not in _TAG_NAME_STOP:
            end += 1
        return self.source[index:end]

    def _skip_past(self, marker: str) -> None:
        end = self.source.find(marker, self.pos)
        self.pos = len(self.source) if end == -1 else end + len(marker)

    def _parse_element(self, open_tags: List[str]) -> Node:
        start = self.pos
        self.pos += 1
        name_start = self.pos
        while self.pos < len(self.source) and self.source[self.pos] not in _TAG_NAME_STOP:
            self.pos += 1
        raw_name = self.source[name_start : self.pos]
        attributes, self_closing = self._parse_attributes()

        position = self._position(start)
        if not raw_name or is_component_name(raw_name):
            node: ElementNode = ComponentNode(raw_name or "Fragment", attributes, [], position)
        else:
            node = ElementNode(raw_name, attributes, [], position)

        key = raw_name.lower()
        if self_closing or key in VOID_ELEMENTS:
            return node

        if key in RAW_TEXT_ELEMENTS:
            closing = re.compile(rf"</{re.escape(raw_name)}\s*>", re.IGNORECASE)
            match = closing.search(self.source, self.pos)
            end = match.start() if match else len(self.source)
            if end > self.pos:
                node.children.append(TextNode(self.source[self.pos : end], self._position(self.pos)))
            self.pos = match.end() if match else end
            return node

        node.children = self._parse_children(open_tags + [key])
        if self.source.startswith("</", self.pos) and self._peek_closing_name().lower() == key:
            self._skip_past(">")
        return node

    def _parse_attributes(self) -> Tuple[List[Attribute], bool]:
        attributes: List[Attribute] = []
        source = self.source
        while True:
            while self.pos < len(source) and source[self.pos].isspace():
                self.pos += 1
            if self.pos >= len(source):
                raise MarkupParseError("Unterminated tag")
            if source.startswith("/>", self.pos):
                self.pos += 2
                return attributes, True
            char = source[self.pos]
            if char == ">":
                self.pos += 1
                return attributes, False
            position = self._position(self.pos)
            if char == "{":
                code = self._read_braced().strip()
                if code.startswith("..."):
                    name = code[3:].strip()
                    attributes.append(Attribute(name, SPREAD, name, position))
                else:
                    attributes.append(Attribute(code, SHORTHAND, code, position))
                continue
            if char == "/":
                self.pos += 1
                continue

            name_start = self.pos
            while self.pos < len(source) and source[self.pos] not in _ATTR_NAME_STOP:
                self.pos += 1
            name = source[name_start : self.pos]
            while self.pos < len(source) and source[self.pos].isspace():
                self.pos += 1
            if self._peek() != "=":
                attributes.append(Attribute(name, EMPTY, "", position))
                continue

            self.pos += 1
            while self.pos < len(source) and source[self.pos].isspace():
                self.pos += 1
            lead = self._peek()
            if lead in ("'", '"'):
                end = source.find(lead, self.pos + 1)
                if end == -1:
                    raise MarkupParseError(f"Unterminated attribute value for {name!r}")
                attributes.append(Attribute(name, QUOTED, source[self.pos + 1 : end], position))
                self.pos = end + 1
            elif lead == "{":
                attributes.append(Attribute(name, EXPRESSION, self._read_braced().strip(), position))
            elif lead == "`":
                start = self.pos
                self._skip_template_literal()
                attributes.append(
                    Attribute(name, TEMPLATE_LITERAL, source[start + 1 : self.pos - 1], position)
                )
            else:
                value_start = self.pos
                while self.pos < len(source) and not source[self.pos].isspace() and source[self.pos] != ">":
                    if source.startswith("/>", self.pos):
                        break
                    self.pos += 1
                attributes.append(Attribute(name, QUOTED, source[value_start : self.pos], position))

    def _read_braced(self) -> str:
        """Consume a balanced ``{...}`` block and return its inner code."""
        start = self.pos
        depth = 0
        while self.pos < len(self.source):
            char = self.source[self.pos]
            if self._skip_code_literal():
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return self.source[start + 1 : self.pos - 1]
            self.pos += 1
        raise MarkupParseError("Unterminated expression")

    def _parse_expression(self) -> ExpressionNode:
        start = self.pos
        self.pos += 1
        children: List[Node] = []
        code_start = self.pos
        depth = 0
        source = self.source

        def flush(end: int) -> None:
            if end > code_start:
                children.append(TextNode(source[code_start:end], self._position(code_start)))

        while self.pos < len(source):
            char = source[self.pos]
            if self._skip_code_literal():
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                if depth == 0:
                    flush(self.pos)
                    self.pos += 1
                    return ExpressionNode(children, self._position(start))
                depth -= 1
            elif char == "<" and self._opens_markup(start):
                flush(self.pos)
                children.append(self._parse_element([]))
                code_start = self.pos
                continue
            self.pos += 1
        raise MarkupParseError("Unterminated expression")

    def _opens_markup(self, expression_start: int) -> bool:
        following = self._peek(1)
        if not (following.isalpha() or following == ">"):
            return False
        index = self.pos - 1
        while index > expression_start and self.source[index].isspace():
            index -= 1
        previous = self.source[index]
        if previous in _MARKUP_LEADS:
            return True
        if previous == ">" and self.source[index - 1] == "=":
            return True
        return self.source[expression_start:index + 1].endswith("return")

    def _skip_code_literal(self) -> bool:
        """Skip a string, template literal or comment at the cursor, if any."""
        source = self.source
        char = source[self.pos]
        if char in ("'", '"'):
            index = self.pos + 1
            while index < len(source) and source[index] != char:
                if source[index] == "\\":
                    index += 1
                elif source[index] == "\n":
                    break
                index += 1
            self.pos = min(index + 1, len(source))
            return True
        if char == "`":
            self._skip_template_literal()
            return True
        if source.startswith("//", self.pos):
            end = source.find("\n", self.pos)
            self.pos = len(source) if end == -1 else end
            return True
        if source.startswith("/*", self.pos):
            end = source.find("*/", self.pos + 2)
            self.pos = len(source) if end == -1 else end + 2
            return True
        return False

    def _skip_template_literal(self) -> None:
        source = self.source
        self.pos += 1
        while self.pos < len(source):
            char = source[self.pos]
            if char == "\\":
                self.pos += 2
                continue
            if char == "`":
                self.pos += 1
                return
            if source.startswith("${", self.pos):
                self.pos += 1
                self._read_braced()
                continue
            self.pos += 1
        raise MarkupParseError("Unterminated template literal")


__all__ = ["MarkupParseError", "RAW_TEXT_ELEMENTS", "VOID_ELEMENTS", "parse_template"]
