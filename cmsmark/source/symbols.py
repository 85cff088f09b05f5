"""Symbol extraction from template preambles and script modules.

Everything here is file-local: definitions, prop aliases and imports are
collected per file and only combined across files by :mod:`.cross_file`.
Line numbers are file lines; preamble rows are shifted by the preamble start
line (the line holding the opening ``---`` fence).
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from tree_sitter import Node

from ..models import REST_PROPS, ImportInfo, VariableDefinition, build_definition_path
from ..template.script import node_row, node_text, string_value, unwrap, walk_nodes

_EXPRESSION_PATH = re.compile(r"^\s*(\w+(?:\.\w+|\[\d+\])*(?:\.\w+)?)\s*$")

IMPORT_EXTENSIONS = (".ts", ".js", ".astro", ".tsx", ".jsx", "")
INDEX_EXTENSIONS = (".ts", ".js", ".tsx", ".jsx")

_DECLARATIONS = {"lexical_declaration", "variable_declaration"}


def parse_expression_path(code: str) -> Optional[str]:
    """Return ``code`` as a variable path (``links[0].text``) or ``None`` if it is not one."""
    match = _EXPRESSION_PATH.match(code)
    return match.group(1) if match else None


def base_identifier(path: str) -> str:
    """Leading identifier of a path: ``nav.items[0]`` -> ``nav``."""
    return re.split(r"[.\[]", path, maxsplit=1)[0]


def extract_variable_definitions(root: Node, start_line: int) -> List[VariableDefinition]:
    """Collect string definitions from every declaration in the tree, at any depth."""
    definitions: List[VariableDefinition] = []
    for node in walk_nodes(root):
        if node.type != "variable_declarator":
            continue
        name_node = node.child_by_field_name("name")
        value = unwrap(node.child_by_field_name("value"))
        if name_node is None or value is None:
            continue
        if name_node.type == "identifier":
            line = node_row(node) + start_line
            definitions.extend(_value_definitions(node_text(name_node), value, line, start_line))
        elif name_node.type == "object_pattern" and _is_props_object(value):
            definitions.extend(_destructured_defaults(name_node, start_line))
    return definitions


def extract_prop_aliases(root: Node) -> Dict[str, str]:
    """Map local names to prop names for every ``const {...} = Astro.props``."""
    aliases: Dict[str, str] = {}
    for pattern in _props_patterns(root):
        for child in pattern.named_children:
            if child.type == "shorthand_property_identifier_pattern":
                name = node_text(child)
                aliases[name] = name
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                if left is not None:
                    name = node_text(left)
                    aliases[name] = name
            elif child.type == "pair_pattern":
                key = _key_name(child.child_by_field_name("key"))
                local = child.child_by_field_name("value")
                if local is not None and local.type == "assignment_pattern":
                    local = local.child_by_field_name("left")
                if key and local is not None and local.type == "identifier":
                    aliases[node_text(local)] = key
            elif child.type == "rest_pattern":
                for ident in child.named_children:
                    if ident.type == "identifier":
                        aliases[node_text(ident)] = REST_PROPS
    return aliases


def extract_imports(root: Node) -> List[ImportInfo]:
    imports: List[ImportInfo] = []
    for statement in root.named_children:
        if statement.type != "import_statement":
            continue
        source = string_value(statement.child_by_field_name("source"))
        if source is None:
            continue
        for clause in statement.named_children:
            if clause.type != "import_clause":
                continue
            for part in clause.named_children:
                if part.type == "identifier":
                    imports.append(ImportInfo(node_text(part), "default", source))
                elif part.type == "namespace_import":
                    for ident in part.named_children:
                        if ident.type == "identifier":
                            imports.append(ImportInfo(node_text(ident), "*", source))
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name = spec.child_by_field_name("name")
                        alias = spec.child_by_field_name("alias")
                        if name is None:
                            continue
                        imported = node_text(name)
                        local = node_text(alias) if alias is not None else imported
                        imports.append(ImportInfo(local, imported, source))
    return imports


def resolve_import_path(source: str, from_file: Path) -> Optional[Path]:
    """Resolve a relative import to an existing file; bare specifiers are not followed."""
    if not source.startswith("."):
        return None
    base = (from_file.parent / source).resolve()
    for extension in IMPORT_EXTENSIONS:
        candidate = Path(f"{base}{extension}")
        if candidate.is_file():
            return candidate
    for extension in INDEX_EXTENSIONS:
        candidate = base / f"index{extension}"
        if candidate.is_file():
            return candidate
    return None


def extract_exported_definitions(root: Node) -> List[VariableDefinition]:
    """Definitions from top-level (optionally exported) declarations of a script module."""
    definitions: List[VariableDefinition] = []
    for statement in root.named_children:
        declaration = statement
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
        if declaration is None or declaration.type not in _DECLARATIONS:
            continue
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            value = unwrap(declarator.child_by_field_name("value"))
            if name_node is None or value is None or name_node.type != "identifier":
                continue
            line = node_row(declarator) + 1
            definitions.extend(_value_definitions(node_text(name_node), value, line, 1))
    return definitions


def extract_prop_defaults(root: Node) -> Dict[str, str]:
    """Default values written in ``const {...} = Astro.props``, keyed by prop name.

    Non-string defaults keep their source text (``count = 3`` gives ``"3"``).
    """
    defaults: Dict[str, str] = {}
    for pattern in _props_patterns(root):
        for child in pattern.named_children:
            if child.type == "object_assignment_pattern":
                prop = child.child_by_field_name("left")
                right = child.child_by_field_name("right")
            elif child.type == "pair_pattern":
                prop = child.child_by_field_name("key")
                value = child.child_by_field_name("value")
                if value is None or value.type != "assignment_pattern":
                    continue
                right = value.child_by_field_name("right")
            else:
                continue
            name = _key_name(prop)
            if name is None or right is None:
                continue
            text = string_value(right)
            defaults[name] = text if text is not None else node_text(right)
    return defaults


# ------------------------------------------------------------------
# Internal helpers


def _value_definitions(
    name: str, value: Node, line: int, start_line: int, parent_path: Optional[str] = None
) -> Iterator[VariableDefinition]:
    text = string_value(value)
    if text is not None:
        yield VariableDefinition(name=name, value=text, line=line, parent_path=parent_path)
        return
    path = build_definition_path(name, parent_path)
    value = unwrap(value)
    if value is None:
        return
    if value.type == "object":
        yield from _object_definitions(value, path, start_line)
    elif value.type == "array":
        yield from _array_definitions(value, path, start_line)


def _object_definitions(node: Node, path: str, start_line: int) -> Iterator[VariableDefinition]:
    for pair in node.named_children:
        if pair.type != "pair":
            continue
        key = _key_name(pair.child_by_field_name("key"))
        value = unwrap(pair.child_by_field_name("value"))
        if key is None or value is None:
            continue
        yield from _value_definitions(key, value, node_row(pair) + start_line, start_line, path)


def _array_definitions(node: Node, path: str, start_line: int) -> Iterator[VariableDefinition]:
    index = 0
    for child in node.children:
        if child.type == ",":
            index += 1
            continue
        if not child.is_named or child.type == "comment":
            continue
        yield from _value_definitions(str(index), child, node_row(child) + start_line, start_line, path)


def _key_name(node: Optional[Node]) -> Optional[str]:
    if node is None:
        return None
    if node.type in ("property_identifier", "identifier", "shorthand_property_identifier_pattern", "number"):
        return node_text(node)
    if node.type == "string":
        return string_value(node)
    return None


def _is_props_object(node: Optional[Node]) -> bool:
    node = unwrap(node)
    if node is None or node.type != "member_expression":
        return False
    obj = node.child_by_field_name("object")
    prop = node.child_by_field_name("property")
    return (
        obj is not None
        and prop is not None
        and node_text(obj) == "Astro"
        and node_text(prop) == "props"
    )


def _props_patterns(root: Node) -> Iterator[Node]:
    for node in walk_nodes(root):
        if node.type != "variable_declarator":
            continue
        name_node = node.child_by_field_name("name")
        if name_node is not None and name_node.type == "object_pattern":
            if _is_props_object(node.child_by_field_name("value")):
                yield name_node


def _destructured_defaults(pattern: Node, start_line: int) -> Iterator[VariableDefinition]:
    for child in pattern.named_children:
        if child.type == "object_assignment_pattern":
            left = child.child_by_field_name("left")
            right = child.child_by_field_name("right")
        elif child.type == "pair_pattern":
            value = child.child_by_field_name("value")
            if value is None or value.type != "assignment_pattern":
                continue
            left = value.child_by_field_name("left")
            right = value.child_by_field_name("right")
        else:
            continue
        if left is None or right is None:
            continue
        yield from _value_definitions(node_text(left), right, node_row(right) + start_line, start_line)


__all__ = [
    "IMPORT_EXTENSIONS",
    "base_identifier",
    "extract_exported_definitions",
    "extract_imports",
    "extract_prop_aliases",
    "extract_prop_defaults",
    "extract_variable_definitions",
    "parse_expression_path",
    "resolve_import_path",
]
