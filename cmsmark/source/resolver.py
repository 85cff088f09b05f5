"""Query surface: map rendered text, attributes and images back to source.

Typical use::

    context = BuildContext(root)
    resolver = SourceResolver(context)
    location = resolver.resolve_source_location("Hello World", "h1")

Text lookups try the search index first, then a full AST match over every
template, then literal component attributes anywhere in the project. Every
lookup returns ``None`` when nothing matches.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..logging import get_logger
from ..models import SourceLocation
from .context import BuildContext
from .cross_file import (
    find_attribute_source_location,
    search_for_expression_prop,
    search_for_imported_value,
    search_for_prop_in_parents,
)
from .images import find_image_element, parse_srcset
from .matcher import find_element_with_text
from .parser import get_parsed_file
from .search_index import SearchIndex
from .snippets import extract_complete_tag_snippet, extract_image_snippet, line_at

_LOGGER = get_logger("source.resolver")


class SourceResolver:
    """Resolve rendered values against the templates of one project."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.index = SearchIndex(context)

    def build_index(self) -> None:
        self.index.build()

    def resolve_source_location(self, text: str, tag: str) -> Optional[SourceLocation]:
        if not text.strip():
            return None
        self.index.build()
        location = self.index.find_text(text, tag)
        if location is not None:
            return location

        for directory in self.context.index_dirs():
            for path in self.context.collect_template_files(directory):
                if path.suffix != ".astro":
                    continue
                location = self.resolve_in_file(path, text, tag)
                if location is not None:
                    return location

        location = search_for_prop_in_parents(self.context, text)
        if location is None:
            _LOGGER.debug("No source found for <%s> %r", tag, text[:40])
        return location

    def resolve_in_file(self, path: Path, text: str, tag: str) -> Optional[SourceLocation]:
        """Match ``text`` inside one template, following props and imports it reads."""
        parsed = get_parsed_file(self.context, path)
        if parsed is None:
            return None
        result = find_element_with_text(
            parsed.ast,
            tag,
            text,
            parsed.variable_definitions,
            parsed.prop_aliases,
            parsed.imports,
        )

        best = result.best_match
        if best is not None:
            if best.type == "variable" and best.definition_line:
                line = best.definition_line
                snippet = line_at(parsed.lines, line)
            else:
                line = best.line
                snippet = extract_complete_tag_snippet(parsed.lines, line - 1, tag)
            return SourceLocation(
                file=self.context.relative(path),
                line=line,
                snippet=snippet,
                type=best.type,
                variable_name=best.variable_name,
                definition_line=best.definition_line if best.type == "variable" else None,
            )

        for candidate in result.prop_candidates:
            if candidate.prop_name and candidate.expression_path:
                location = search_for_expression_prop(
                    self.context, path, candidate.prop_name, candidate.expression_path, text
                )
                if location is not None:
                    return location

        for candidate in result.import_candidates:
            if candidate.import_info is not None and candidate.expression_path:
                location = search_for_imported_value(
                    self.context, path, candidate.import_info, candidate.expression_path, text
                )
                if location is not None:
                    return location
        return None

    def resolve_attribute_source_location(
        self, expression: str, resolved_value: str, source_file: str
    ) -> Optional[SourceLocation]:
        return find_attribute_source_location(self.context, expression, resolved_value, source_file)

    def resolve_image_source_location(
        self, src: str, srcset: Optional[str] = None
    ) -> Optional[SourceLocation]:
        """Index lookup for ``src`` and every ``srcset`` URL, then a template scan."""
        self.index.build()
        candidates = [src] + [url for url in parse_srcset(srcset or "") if url != src]
        for candidate in candidates:
            location = self.index.find_image(candidate)
            if location is not None:
                return location
        for candidate in candidates:
            location = self._scan_for_image(candidate)
            if location is not None:
                return location
        return None

    def _scan_for_image(self, src: str) -> Optional[SourceLocation]:
        quoted = (f'src="{src}"', f"src='{src}'")
        for directory in self.context.search_dirs():
            for path in self.context.collect_template_files(directory):
                parsed = get_parsed_file(self.context, path)
                if parsed is None:
                    continue
                if path.suffix == ".astro":
                    match = find_image_element(parsed.ast, src, parsed.lines)
                    if match is not None:
                        return SourceLocation(
                            file=self.context.relative(path), line=match.line, snippet=match.snippet
                        )
                for index, line in enumerate(parsed.lines):
                    if any(pattern in line for pattern in quoted):
                        return SourceLocation(
                            file=self.context.relative(path),
                            line=index + 1,
                            snippet=extract_image_snippet(parsed.lines, index),
                        )
        return None


__all__ = ["SourceResolver"]
