"""Build-lifetime flat index of rendered text and image sources.

The index is filled once per build from every template under the
components, pages and layouts directories. Lookups return the first
compatible entry in insertion order; identical text in two files resolves to
whichever file was indexed first.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

from ..logging import get_logger
from ..models import ImageIndexEntry, SearchIndexEntry, SourceLocation
from ..template.nodes import QUOTED, ComponentNode, ElementNode, NodeVisitor
from .context import BuildContext
from .matcher import MIN_CONTENT_LENGTH, PREVIEW_LENGTH, SHORT_TEXT_LIMIT
from .parser import ParsedFile, get_parsed_file
from .snippets import (
    extract_complete_tag_snippet,
    extract_image_snippet,
    extract_inner_html_from_snippet,
    line_at,
)
from .text import expression_paths, find_text_line, literal_text, normalize_text

_LOGGER = get_logger("source.search_index")

_SRC_PATTERNS = (re.compile(r'src="([^"]+)"'), re.compile(r"src='([^']+)'"))

MIN_SUFFIX_LENGTH = 5


class SearchIndex:
    """Text and image index stored on a :class:`BuildContext`."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context

    @property
    def ready(self) -> bool:
        return self.context.index_ready

    def build(self) -> None:
        """Scan all template files once; later calls are no-ops until the context resets."""
        if self.context.index_ready:
            return
        files = 0
        for directory in self.context.index_dirs():
            for path in self.context.collect_template_files(directory):
                parsed = get_parsed_file(self.context, path)
                if parsed is None:
                    continue
                relative = self.context.relative(path)
                self.index_file_content(parsed, relative)
                self.index_file_images(parsed, relative)
                files += 1
        self.context.index_ready = True
        _LOGGER.debug(
            "Indexed %d templates: %d text entries, %d images",
            files,
            len(self.context.text_index),
            len(self.context.image_index),
        )

    def index_file_content(self, parsed: ParsedFile, relative: str) -> None:
        _ContentIndexer(self.context, parsed, relative).visit(parsed.ast)

    def index_file_images(self, parsed: ParsedFile, relative: str) -> None:
        if parsed.path.suffix == ".astro":
            _ImageIndexer(self.context, parsed, relative).visit(parsed.ast)
            return
        for index, line in enumerate(parsed.lines):
            for pattern in _SRC_PATTERNS:
                for match in pattern.finditer(line):
                    self.context.image_index.append(
                        ImageIndexEntry(
                            file=relative,
                            line=index + 1,
                            snippet=extract_image_snippet(parsed.lines, index),
                            src=match.group(1),
                        )
                    )

    def find_text(self, text: str, tag: str) -> Optional[SourceLocation]:
        """Exact text and tag, then a 30 character prefix with the same tag, then any tag."""
        normalized = normalize_text(text)
        tag = tag.lower()
        entries = self.context.text_index
        for entry in entries:
            if entry.tag == tag and entry.normalized_text == normalized:
                return entry.to_location()
        if len(normalized) > SHORT_TEXT_LIMIT:
            preview = normalized[:PREVIEW_LENGTH]
            for entry in entries:
                if entry.tag == tag and preview in entry.normalized_text:
                    return entry.to_location()
        for entry in entries:
            if entry.normalized_text == normalized:
                return entry.to_location()
        return None

    def find_image(self, src: str) -> Optional[SourceLocation]:
        """Exact ``src`` first, then a path-suffix match for CDN-rewritten URLs."""
        entries = self.context.image_index
        for entry in entries:
            if entry.src == src:
                return SourceLocation(file=entry.file, line=entry.line, snippet=entry.snippet)
        target = _pathname(src)
        for entry in entries:
            candidate = _pathname(entry.src)
            if len(candidate) > MIN_SUFFIX_LENGTH and (
                target.endswith(candidate) or candidate.endswith(target)
            ):
                return SourceLocation(file=entry.file, line=entry.line, snippet=entry.snippet)
        return None


# ------------------------------------------------------------------
# Internal helpers


def _pathname(src: str) -> str:
    parts = urlsplit(src)
    if parts.scheme and parts.netloc:
        return parts.path
    return src.split("?", 1)[0]


class _ContentIndexer(NodeVisitor):
    def __init__(self, context: BuildContext, parsed: ParsedFile, relative: str) -> None:
        self.entries = context.text_index
        self.parsed = parsed
        self.relative = relative

    def visit_element(self, node: ElementNode) -> None:
        self._index(node)
        self.generic_visit(node)

    def visit_component(self, node: ComponentNode) -> None:
        self._index(node)
        self._index_props(node)
        self.generic_visit(node)

    def _index(self, node: ElementNode) -> None:
        tag = node.name.lower()
        lines = self.parsed.lines
        line = node.position.line

        for path in expression_paths(node):
            for definition in self.parsed.variable_definitions:
                if definition.path != path:
                    continue
                self.entries.append(
                    SearchIndexEntry(
                        file=self.relative,
                        line=definition.line,
                        snippet=line_at(lines, definition.line),
                        type="variable",
                        normalized_text=normalize_text(definition.value),
                        tag=tag,
                        variable_name=path,
                        definition_line=definition.line,
                    )
                )

        text = normalize_text(literal_text(node))
        if len(text) < MIN_CONTENT_LENGTH:
            return
        complete = extract_complete_tag_snippet(lines, line - 1, tag)
        snippet = extract_inner_html_from_snippet(complete, tag)
        self.entries.append(
            SearchIndexEntry(
                file=self.relative,
                line=find_text_line(node, text[:PREVIEW_LENGTH]) or line,
                snippet=complete if snippet is None else snippet,
                type="static",
                normalized_text=text,
                tag=tag,
            )
        )

    def _index_props(self, node: ComponentNode) -> None:
        for attr in node.attributes:
            if attr.kind != QUOTED or not attr.value:
                continue
            value = normalize_text(attr.value)
            if len(value) < MIN_CONTENT_LENGTH:
                continue
            self.entries.append(
                SearchIndexEntry(
                    file=self.relative,
                    line=attr.position.line,
                    snippet=line_at(self.parsed.lines, attr.position.line),
                    type="prop",
                    normalized_text=value,
                    tag=node.name.lower(),
                    variable_name=attr.name,
                )
            )


class _ImageIndexer(NodeVisitor):
    def __init__(self, context: BuildContext, parsed: ParsedFile, relative: str) -> None:
        self.entries = context.image_index
        self.parsed = parsed
        self.relative = relative

    def visit_element(self, node: ElementNode) -> None:
        if node.name.lower() == "img":
            self._index(node)
        self.generic_visit(node)

    def visit_component(self, node: ComponentNode) -> None:
        self._index(node)
        self.generic_visit(node)

    def _index(self, node: ElementNode) -> None:
        for attr in node.attributes:
            if attr.name == "src" and attr.value:
                self.entries.append(
                    ImageIndexEntry(
                        file=self.relative,
                        line=attr.position.line,
                        snippet=extract_image_snippet(self.parsed.lines, attr.position.line - 1),
                        src=attr.value,
                    )
                )


__all__ = ["SearchIndex"]
