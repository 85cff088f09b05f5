"""Follow values that reach a template through props or imports.

When a template renders ``{items[0].label}`` and ``items`` is a prop, the
text is defined wherever the component is used. The functions here search the
pages, components and layouts directories for those usage sites and recurse
while the value keeps flowing through further props. Recursion stops past
:data:`MAX_DEPTH` and never revisits a ``(file, component, prop)`` triple.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import REST_PROPS, ImportInfo, SourceLocation, VariableDefinition
from .context import BuildContext
from .matcher import (
    find_component_prop,
    find_expression_prop,
    find_literal_prop,
    find_spread_prop,
)
from .parser import ParsedFile, get_exported_definitions, get_parsed_file
from .snippets import extract_tag_until_close, line_at
from .symbols import base_identifier, parse_expression_path, resolve_import_path
from .text import normalize_text

_LOGGER = get_logger("source.cross_file")

MAX_DEPTH = 5

Visited = Set[Tuple[Path, str, str]]


def search_for_expression_prop(
    context: BuildContext,
    component_file: Path,
    prop_name: str,
    expression_path: str,
    search_text: str,
    depth: int = 0,
    visited: Optional[Visited] = None,
) -> Optional[SourceLocation]:
    """Find where the value behind ``expression_path`` is passed into ``component_file``.

    ``expression_path`` is rooted at the prop (``items[0].label`` for the
    ``items`` prop). Each usage site is checked for a literal attribute, an
    expression attribute and a spread attribute, in that order.
    """
    if depth > MAX_DEPTH:
        _LOGGER.debug("Prop search for %s.%s stopped at depth %d", component_file.stem, prop_name, depth)
        return None
    visited = set() if visited is None else visited
    component_name = component_file.stem
    normalized = normalize_text(search_text)

    for path, parsed in _usage_candidates(context):
        key = (path, component_name, prop_name)
        if key in visited:
            continue
        visited.add(key)

        literal = find_literal_prop(parsed.ast, component_name, prop_name, search_text)
        if literal is not None:
            return SourceLocation(
                file=context.relative(path),
                line=literal.line,
                snippet=extract_tag_until_close(parsed.lines, literal.line - 1),
                type="prop",
                variable_name=prop_name,
            )

        expression = find_expression_prop(parsed.ast, component_name, prop_name)
        if expression is not None:
            parent_path = expression.expression_text + expression_path[len(base_identifier(expression_path)) :]
            found = _match_definition(context, path, parsed.lines, parsed.variable_definitions, parent_path, normalized)
            if found is not None:
                return found
            found = _follow(context, path, parsed, parent_path, search_text, depth, visited)
            if found is not None:
                return found
            continue

        spread = find_spread_prop(parsed.ast, component_name)
        if spread is not None:
            spread_path = f"{spread.spread_var_name}.{expression_path}"
            found = _match_definition(context, path, parsed.lines, parsed.variable_definitions, spread_path, normalized)
            if found is None and spread.map_source_array:
                found = _match_array_item(context, path, parsed, spread.map_source_array, expression_path, normalized)
            if found is not None:
                return found
            alias = parsed.prop_aliases.get(spread.spread_var_name)
            if alias is not None:
                if alias == REST_PROPS:
                    next_prop, next_path = base_identifier(expression_path), expression_path
                else:
                    next_prop, next_path = alias, f"{alias}.{expression_path}"
                found = search_for_expression_prop(
                    context, path, next_prop, next_path, search_text, depth + 1, visited
                )
                if found is not None:
                    return found
    return None


def search_for_imported_value(
    context: BuildContext,
    from_file: Path,
    import_info: ImportInfo,
    expression_path: str,
    search_text: str,
) -> Optional[SourceLocation]:
    """Match ``expression_path`` against the exported definitions of an imported module."""
    imported = resolve_import_path(import_info.source, from_file)
    if imported is None:
        return None
    definitions = get_exported_definitions(context, imported)
    if not definitions:
        return None
    target = _imported_path(import_info, expression_path)
    normalized = normalize_text(search_text)
    return _match_definition(context, imported, _read_lines(imported), definitions, target, normalized)


def search_for_prop_in_parents(context: BuildContext, search_text: str) -> Optional[SourceLocation]:
    """Any component usage whose literal attribute value equals the text."""
    for path, parsed in _usage_candidates(context):
        match = find_component_prop(parsed.ast, search_text)
        if match is None:
            continue
        return SourceLocation(
            file=context.relative(path),
            line=match.line,
            snippet=extract_tag_until_close(parsed.lines, match.line - 1),
            type="prop",
            variable_name=match.prop_name,
        )
    return None


def find_attribute_source_location(
    context: BuildContext,
    expression: str,
    resolved_value: str,
    source_file: str,
) -> Optional[SourceLocation]:
    """Locate the definition of a dynamic attribute from its already-resolved value.

    Loop variables make the expression text ambiguous (``item.href``), so
    definitions are matched on ``(property name, value)`` first and on the
    value alone last.
    """
    expression_path = parse_expression_path(expression)
    if expression_path is None:
        return None
    prop_name = expression_path.rsplit(".", 1)[-1] if "." in expression_path else expression_path

    path = Path(source_file)
    if not path.is_absolute():
        path = context.root / path
    parsed = get_parsed_file(context, path)
    if parsed is None:
        return None
    definitions = parsed.variable_definitions

    for definition in definitions:
        if definition.name == prop_name and definition.value == resolved_value:
            return _definition_location(context, path, parsed.lines, definition)

    base = base_identifier(expression_path)
    for definition in definitions:
        if definition.path == expression_path and definition.value == resolved_value:
            return _definition_location(context, path, parsed.lines, definition)

    if base in parsed.prop_aliases:
        found = _search_value_in_dirs(context, prop_name, resolved_value)
        if found is not None:
            return found

    info = parsed.find_import(base)
    if info is not None:
        found = _search_imported_by_value(context, path, info, prop_name, resolved_value)
        if found is not None:
            return found

    for definition in definitions:
        if definition.value == resolved_value:
            return _definition_location(context, path, parsed.lines, definition)
    return None


# ------------------------------------------------------------------
# Internal helpers


def _usage_candidates(context: BuildContext) -> Iterator[Tuple[Path, ParsedFile]]:
    for directory in context.search_dirs():
        for path in context.collect_template_files(directory):
            if path.suffix != ".astro":
                continue
            parsed = get_parsed_file(context, path)
            if parsed is not None:
                yield path, parsed


def _follow(
    context: BuildContext,
    path: Path,
    parsed: ParsedFile,
    parent_path: str,
    search_text: str,
    depth: int,
    visited: Visited,
) -> Optional[SourceLocation]:
    """Continue from a usage site whose own value comes from a prop or an import."""
    base = base_identifier(parent_path)
    alias = parsed.prop_aliases.get(base)
    if alias is not None:
        if alias == REST_PROPS:
            rooted = parent_path[len(base) + 1 :]
            if not rooted:
                return None
            return search_for_expression_prop(
                context, path, base_identifier(rooted), rooted, search_text, depth + 1, visited
            )
        return search_for_expression_prop(
            context, path, alias, alias + parent_path[len(base) :], search_text, depth + 1, visited
        )
    info = parsed.find_import(base)
    if info is not None:
        return search_for_imported_value(context, path, info, parent_path, search_text)
    return None


def _match_definition(
    context: BuildContext,
    path: Path,
    lines: Sequence[str],
    definitions: Sequence[VariableDefinition],
    target_path: str,
    normalized_search: str,
) -> Optional[SourceLocation]:
    for definition in definitions:
        if definition.path == target_path and normalize_text(definition.value) == normalized_search:
            return _definition_location(context, path, lines, definition)
    return None


def _match_array_item(
    context: BuildContext,
    path: Path,
    parsed: ParsedFile,
    array_path: str,
    expression_path: str,
    normalized_search: str,
) -> Optional[SourceLocation]:
    """``{items.map((item) => <Card {...item} />)}``: try every ``items[n].<path>``."""
    prefix = f"{array_path}["
    suffix = f"].{expression_path}"
    for definition in parsed.variable_definitions:
        candidate = definition.path
        if candidate.startswith(prefix) and candidate.endswith(suffix):
            index = candidate[len(prefix) : -len(suffix)]
            if index.isdigit() and normalize_text(definition.value) == normalized_search:
                return _definition_location(context, path, parsed.lines, definition)
    return None


def _imported_path(info: ImportInfo, expression_path: str) -> str:
    if info.imported_name == "*":
        return expression_path[len(info.local_name) + 1 :]
    if info.imported_name in ("default", info.local_name):
        return expression_path
    return info.imported_name + expression_path[len(info.local_name) :]


def _search_value_in_dirs(
    context: BuildContext, prop_name: str, resolved_value: str
) -> Optional[SourceLocation]:
    for path, parsed in _usage_candidates(context):
        for definition in parsed.variable_definitions:
            if definition.name == prop_name and definition.value == resolved_value:
                return _definition_location(context, path, parsed.lines, definition)
    return None


def _search_imported_by_value(
    context: BuildContext,
    from_file: Path,
    info: ImportInfo,
    prop_name: str,
    resolved_value: str,
) -> Optional[SourceLocation]:
    imported = resolve_import_path(info.source, from_file)
    if imported is None:
        return None
    definitions = get_exported_definitions(context, imported)
    matches = [d for d in definitions if d.name == prop_name and d.value == resolved_value]
    matches = matches or [d for d in definitions if d.value == resolved_value]
    if not matches:
        return None
    return _definition_location(context, imported, _read_lines(imported), matches[0])


def _definition_location(
    context: BuildContext, path: Path, lines: Sequence[str], definition: VariableDefinition
) -> SourceLocation:
    return SourceLocation(
        file=context.relative(path),
        line=definition.line,
        snippet=line_at(lines, definition.line),
        type="variable",
        variable_name=definition.path,
        definition_line=definition.line,
    )


def _read_lines(path: Path) -> List[str]:
    try:
        return path.read_text(encoding="utf-8").split("\n")
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.debug("Could not read %s for a snippet: %s", path, exc)
        return []


__all__ = [
    "MAX_DEPTH",
    "find_attribute_source_location",
    "search_for_expression_prop",
    "search_for_imported_value",
    "search_for_prop_in_parents",
]
