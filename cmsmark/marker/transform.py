"""Add provenance attributes to the markup of a template file."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import List

from ..logging import get_logger
from ..template.markup import parse_template
from ..template.nodes import ComponentNode, ElementNode, NodeVisitor
from .html import SOURCE_FILE_ATTR, SOURCE_LINE_ATTR

_LOGGER = get_logger("marker.transform")

SKIPPED_TAGS = {"html", "head", "body", "script", "style", "slot", "fragment"}

_TAG_NAME = re.compile(r"^<([\w-]+)")


@dataclass
class Insertion:
    line: int  # 0-based
    column: int  # 0-based
    text: str


def inject_source_attributes(code: str, file_path: str) -> str:
    """Return ``code`` with ``data-astro-source-file``/``-line`` on every plain element.

    Components and the document-level tags in :data:`SKIPPED_TAGS` are left
    alone. Raises :class:`~cmsmark.template.markup.MarkupParseError` when the
    template cannot be parsed.
    """
    lines = code.split("\n")
    collector = _InsertionCollector(lines, file_path)
    collector.visit(parse_template(code))
    return apply_insertions(lines, collector.insertions, file_path)


def apply_insertions(lines: List[str], insertions: List[Insertion], file_path: str) -> str:
    """Apply insertions bottom-up; out-of-range ones are logged and skipped."""
    result = list(lines)
    for item in sorted(insertions, key=lambda i: (i.line, i.column), reverse=True):
        if not 0 <= item.line < len(result):
            _LOGGER.warning("Skipping insertion at line %d of %s: no such line", item.line + 1, file_path)
            continue
        line = result[item.line]
        if not 0 <= item.column <= len(line):
            _LOGGER.warning(
                "Skipping insertion at %d:%d of %s: line is %d characters long",
                item.line + 1,
                item.column,
                file_path,
                len(line),
            )
            continue
        result[item.line] = line[: item.column] + item.text + line[item.column :]
    return "\n".join(result)


class _InsertionCollector(NodeVisitor):
    def __init__(self, lines: List[str], file_path: str) -> None:
        self.lines = lines
        self.file_path = file_path
        self.insertions: List[Insertion] = []

    def visit_component(self, node: ComponentNode) -> None:
        self.generic_visit(node)

    def visit_element(self, node: ElementNode) -> None:
        if node.name.lower() not in SKIPPED_TAGS:
            self._collect(node)
        self.generic_visit(node)

    def _collect(self, node: ElementNode) -> None:
        index = node.position.line - 1
        if not 0 <= index < len(self.lines):
            return
        column = node.position.column - 1
        match = _TAG_NAME.match(self.lines[index][column:])
        if match is None:
            return
        self.insertions.append(
            Insertion(
                line=index,
                column=column + match.end(),
                text=f' {SOURCE_FILE_ATTR}="{self.file_path}" {SOURCE_LINE_ATTR}="{node.position.line}"',
            )
        )


__all__ = ["Insertion", "SKIPPED_TAGS", "apply_insertions", "inject_source_attributes"]
