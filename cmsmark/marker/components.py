"""Registry of component templates and the props/slots they declare."""

from __future__ import annotations

from pathlib import Path
import re
from typing import Dict, Iterable, List, Optional

from tree_sitter import Node

from ..logging import get_logger
from ..models import ComponentDefinition, ComponentProp
from ..source.symbols import extract_prop_defaults
from ..template.markup import MarkupParseError, parse_template
from ..template.nodes import ElementNode, FrontmatterNode, RootNode, walk
from ..template.script import node_text, parse_script

_LOGGER = get_logger("marker.components")

DEFAULT_SLOT = "default"

_LEADING_JSDOC = re.compile(r"^\s*/\*\*(.*?)\*/", re.DOTALL)
_PREVIEW_WIDTH = re.compile(r"@previewWidth\s+(\d+)")
_JSDOC_TAG = re.compile(r"^@\w+")


class ComponentRegistry:
    """Scans component directories for ``.astro`` files.

    ``component_dirs`` are relative to ``root``; a missing directory is
    skipped. Names are file stems, so the last file scanned wins when two
    directories hold a component with the same name.
    """

    def __init__(self, root: Path, component_dirs: Iterable[str] = ("src/components",)) -> None:
        self.root = Path(root)
        self.component_dirs = list(component_dirs)
        self._components: Dict[str, ComponentDefinition] = {}

    def scan(self) -> Dict[str, ComponentDefinition]:
        self._components.clear()
        for directory in self.component_dirs:
            base = self.root / directory
            if not base.is_dir():
                continue
            for path in sorted(base.rglob("*.astro")):
                definition = self.parse_component(path)
                if definition is not None:
                    self._components[definition.name] = definition
        _LOGGER.debug("Registered %d components", len(self._components))
        return dict(self._components)

    def get_components(self) -> Dict[str, ComponentDefinition]:
        return dict(self._components)

    def get_component(self, name: str) -> Optional[ComponentDefinition]:
        return self._components.get(name)

    def parse_component(self, path: Path) -> Optional[ComponentDefinition]:
        try:
            content = path.read_text(encoding="utf-8")
            ast = parse_template(content)
        except (OSError, UnicodeDecodeError, MarkupParseError) as exc:
            _LOGGER.warning("Failed to parse component %s: %s", path, exc)
            return None
        try:
            relative = path.relative_to(self.root).as_posix()
        except ValueError:
            relative = path.as_posix()
        return build_component_definition(path.stem, relative, ast)


def build_component_definition(name: str, file: str, ast: RootNode) -> ComponentDefinition:
    props: List[ComponentProp] = []
    description: Optional[str] = None
    preview_width: Optional[int] = None
    if ast.frontmatter is not None:
        props = extract_props(ast.frontmatter)
        description, preview_width = _leading_doc(ast.frontmatter.value)
    return ComponentDefinition(
        name=name,
        file=file,
        props=props,
        slots=extract_slots(ast),
        description=description,
        preview_width=preview_width,
    )


def extract_props(frontmatter: FrontmatterNode) -> List[ComponentProp]:
    """Props declared by ``interface Props`` (or ``type Props = {...}``) with their defaults."""
    root = parse_script(frontmatter.value).root_node
    body = _props_body(root)
    if body is None:
        return []
    props = _property_signatures(body)
    defaults = extract_prop_defaults(root)
    for prop in props:
        if prop.name in defaults:
            prop.default_value = defaults[prop.name]
    return props


def extract_slots(ast: RootNode) -> List[str]:
    """Named slots in template order, with ``default`` first when an unnamed slot exists."""
    slots: List[str] = []
    has_default = False
    for node in walk(ast):
        if not isinstance(node, ElementNode) or node.name != "slot":
            continue
        attr = node.attribute("name")
        if attr is None:
            has_default = True
        elif attr.value and attr.value not in slots:
            slots.append(attr.value)
    if has_default:
        slots.insert(0, DEFAULT_SLOT)
    return slots


# ------------------------------------------------------------------
# Internal helpers


def _props_body(root: Node) -> Optional[Node]:
    for node in root.named_children:
        if node.type == "export_statement":
            node = node.child_by_field_name("declaration") or node
        name = node.child_by_field_name("name")
        if name is None or node_text(name) != "Props":
            continue
        if node.type == "interface_declaration":
            return node.child_by_field_name("body")
        if node.type == "type_alias_declaration":
            value = node.child_by_field_name("value")
            if value is not None and value.type == "object_type":
                return value
    return None


def _property_signatures(body: Node) -> List[ComponentProp]:
    props: List[ComponentProp] = []
    pending: Optional[str] = None
    last: Optional[ComponentProp] = None
    last_row = -1
    for child in body.named_children:
        if child.type == "comment":
            text = node_text(child)
            if last is not None and child.start_point[0] == last_row and text.startswith("//"):
                last.description = last.description or _comment_text(text)
            else:
                pending = _comment_text(text)
            continue
        if child.type != "property_signature":
            pending = None
            continue
        name = child.child_by_field_name("name")
        if name is None:
            continue
        annotation = child.child_by_field_name("type")
        type_text = "unknown"
        if annotation is not None and annotation.named_children:
            type_text = node_text(annotation.named_children[0]).strip()
        optional = any(token.type == "?" for token in child.children)
        last = ComponentProp(
            name=node_text(name),
            type=type_text,
            required=not optional,
            description=pending,
        )
        last_row = child.end_point[0]
        props.append(last)
        pending = None
    return props


def _comment_text(raw: str) -> Optional[str]:
    if raw.startswith("//"):
        return raw[2:].strip() or None
    lines = [re.sub(r"^\s*\*\s?", "", line).strip() for line in raw[2:-2].strip("*").split("\n")]
    return " ".join(line for line in lines if line) or None


def _leading_doc(preamble: str) -> tuple[Optional[str], Optional[int]]:
    match = _LEADING_JSDOC.match(preamble)
    if match is None:
        return None, None
    body = match.group(1)
    width = _PREVIEW_WIDTH.search(body)
    lines = [re.sub(r"^\s*\*\s?", "", line).strip() for line in body.split("\n")]
    text = " ".join(line for line in lines if line and not _JSDOC_TAG.match(line))
    return text or None, int(width.group(1)) if width else None


__all__ = [
    "ComponentRegistry",
    "DEFAULT_SLOT",
    "build_component_definition",
    "extract_props",
    "extract_slots",
]
