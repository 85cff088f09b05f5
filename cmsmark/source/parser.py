"""Cached parsing of template files into markup AST plus symbol tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..logging import get_logger
from ..models import ImportInfo, VariableDefinition
from ..template.markup import MarkupParseError, parse_template
from ..template.nodes import RootNode
from ..template.script import parse_script
from .context import BuildContext
from .symbols import (
    extract_exported_definitions,
    extract_imports,
    extract_prop_aliases,
    extract_variable_definitions,
)

_LOGGER = get_logger("source.parser")

_SCRIPT_SUFFIXES = {".ts", ".js", ".mjs", ".tsx", ".jsx"}


@dataclass
class ParsedFile:
    """A template file broken into markup AST, source lines and preamble symbols."""

    path: Path
    content: str
    lines: List[str]
    ast: RootNode
    frontmatter_start_line: int = 0
    variable_definitions: List[VariableDefinition] = field(default_factory=list)
    prop_aliases: Dict[str, str] = field(default_factory=dict)
    imports: List[ImportInfo] = field(default_factory=list)

    def find_import(self, local_name: str) -> Optional[ImportInfo]:
        for info in self.imports:
            if info.local_name == local_name:
                return info
        return None


def parse_template_source(path: Path, content: str) -> ParsedFile:
    """Parse already-loaded template text; raises :class:`MarkupParseError` on bad markup."""
    lines = content.split("\n")
    if path.suffix != ".astro":
        # .tsx/.jsx sources are only searched textually.
        return ParsedFile(path=path, content=content, lines=lines, ast=RootNode())

    ast = parse_template(content)
    parsed = ParsedFile(path=path, content=content, lines=lines, ast=ast)
    if ast.frontmatter is not None:
        start_line = ast.frontmatter.position.line
        tree = parse_script(ast.frontmatter.value)
        parsed.frontmatter_start_line = start_line
        parsed.variable_definitions = extract_variable_definitions(tree.root_node, start_line)
        parsed.prop_aliases = extract_prop_aliases(tree.root_node)
        parsed.imports = extract_imports(tree.root_node)
    return parsed


def get_parsed_file(context: BuildContext, path: Path) -> Optional[ParsedFile]:
    """Return the cached parse of ``path``; ``None`` when it cannot be read or parsed."""
    key = path.resolve()
    cached = context.parsed_files.get(key)
    if cached is not None:
        return cached
    try:
        content = key.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.debug("Skipping unreadable template %s: %s", key, exc)
        return None
    try:
        parsed = parse_template_source(key, content)
    except MarkupParseError as exc:
        _LOGGER.debug("Skipping malformed template %s: %s", key, exc)
        return None
    context.parsed_files[key] = parsed
    return parsed


def get_exported_definitions(context: BuildContext, path: Path) -> List[VariableDefinition]:
    """Top-level definitions of an imported script module; empty when unavailable."""
    key = path.resolve()
    cached = context.exports.get(key)
    if cached is not None:
        return cached
    definitions: List[VariableDefinition] = []
    if key.suffix in _SCRIPT_SUFFIXES:
        try:
            code = key.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            _LOGGER.debug("Skipping unreadable module %s: %s", key, exc)
        else:
            tree = parse_script(code, jsx=key.suffix in (".tsx", ".jsx"))
            definitions = extract_exported_definitions(tree.root_node)
    context.exports[key] = definitions
    return definitions


__all__ = ["ParsedFile", "get_exported_definitions", "get_parsed_file", "parse_template_source"]
