"""Locate the template element that rendered a given tag and text.

Scoring is part of the contract and the constants below must not drift:

* 100 - the element renders a local variable whose value equals the text;
* 80  - short text (10 normalized characters or fewer) found verbatim;
* 50 + 40 * ratio - longer text whose 30 character prefix is found;
* 40  - text over 20 characters whose first three words are found.

A candidate only replaces the current best when its score is strictly
higher, so the first element found wins a tie.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import REST_PROPS, ImportInfo, VariableDefinition
from ..template.nodes import (
    QUOTED,
    SPREAD,
    EXPRESSION,
    ComponentNode,
    ElementNode,
    ExpressionNode,
    Node,
    NodeVisitor,
    RootNode,
    iter_children,
)
from .symbols import base_identifier
from .text import expression_paths, find_text_line, get_text_content, literal_text, normalize_text

SCORE_VARIABLE = 100
SCORE_SHORT_TEXT = 80
SCORE_PREFIX_BASE = 50
SCORE_PREFIX_RANGE = 40
SCORE_FIRST_WORDS = 40

SHORT_TEXT_LIMIT = 10
PREVIEW_LENGTH = 30
FIRST_WORDS_MIN_LENGTH = 20
MIN_CONTENT_LENGTH = 2

_MAP_CALL = re.compile(r"(\w+(?:\.\w+)*)\.map\s*\(\s*\(?(\w+)\)?\s*=>")


@dataclass
class TemplateMatch:
    line: int
    type: str = "static"
    variable_name: Optional[str] = None
    definition_line: Optional[int] = None
    prop_name: Optional[str] = None
    expression_path: Optional[str] = None
    import_info: Optional[ImportInfo] = None


@dataclass
class MatchResult:
    best_match: Optional[TemplateMatch] = None
    prop_candidates: List[TemplateMatch] = field(default_factory=list)
    import_candidates: List[TemplateMatch] = field(default_factory=list)


@dataclass
class ComponentPropMatch:
    component_name: str
    prop_name: str
    prop_value: str
    line: int


@dataclass
class ExpressionPropMatch:
    component_name: str
    prop_name: str
    expression_text: str
    line: int


@dataclass
class SpreadPropMatch:
    component_name: str
    spread_var_name: str
    line: int
    map_source_array: Optional[str] = None


def find_element_with_text(
    ast: RootNode,
    tag: str,
    search_text: str,
    definitions: Sequence[VariableDefinition],
    prop_aliases: Optional[Dict[str, str]] = None,
    imports: Sequence[ImportInfo] = (),
) -> MatchResult:
    """Best local match plus the prop/import candidates that need cross-file checks."""
    finder = _ElementTextFinder(tag, search_text, definitions, prop_aliases or {}, imports)
    finder.visit(ast)
    return finder.result


def find_component_prop(ast: RootNode, search_text: str) -> Optional[ComponentPropMatch]:
    """First component attribute with a literal value equal to the text."""
    normalized = normalize_text(search_text)
    for component in _components(ast):
        for attr in component.attributes:
            if attr.kind == QUOTED and normalize_text(attr.value) == normalized:
                return ComponentPropMatch(component.name, attr.name, attr.value, attr.position.line)
    return None


def find_expression_prop(
    ast: RootNode, component_name: str, prop_name: str
) -> Optional[ExpressionPropMatch]:
    """First ``<Component prop={expr} />`` usage."""
    for component in _components(ast):
        if component.name != component_name:
            continue
        for attr in component.attributes:
            if attr.name == prop_name and attr.kind == EXPRESSION and attr.value.strip():
                return ExpressionPropMatch(
                    component_name, prop_name, attr.value.strip(), attr.position.line
                )
    return None


def find_literal_prop(
    ast: RootNode, component_name: str, prop_name: str, search_text: str
) -> Optional[ComponentPropMatch]:
    """``<Component prop="text" />`` usage whose value equals the text."""
    normalized = normalize_text(search_text)
    for component in _components(ast):
        if component.name != component_name:
            continue
        for attr in component.attributes:
            if attr.name == prop_name and attr.kind == QUOTED and normalize_text(attr.value) == normalized:
                return ComponentPropMatch(component_name, prop_name, attr.value, attr.position.line)
    return None


def find_spread_prop(ast: RootNode, component_name: str) -> Optional[SpreadPropMatch]:
    """First ``<Component {...props} />`` usage, noting the array when inside ``.map()``."""
    return _find_spread(ast, component_name, None)


# ------------------------------------------------------------------
# Internal helpers


def _components(node: Node) -> List[ComponentNode]:
    collector = _ComponentCollector()
    collector.visit(node)
    return collector.components


class _ComponentCollector(NodeVisitor):
    def __init__(self) -> None:
        self.components: List[ComponentNode] = []

    def visit_component(self, node: ComponentNode) -> None:
        self.components.append(node)
        self.generic_visit(node)


def _find_spread(
    node: Node, component_name: str, parent_expression: Optional[ExpressionNode]
) -> Optional[SpreadPropMatch]:
    if isinstance(node, ComponentNode) and node.name == component_name:
        for attr in node.attributes:
            if attr.kind != SPREAD or not attr.name:
                continue
            match = SpreadPropMatch(component_name, attr.name, attr.position.line)
            if parent_expression is not None:
                found = _MAP_CALL.search(get_text_content(parent_expression))
                if found and found.group(2) == attr.name:
                    match.map_source_array = found.group(1)
            return match
    if isinstance(node, ExpressionNode):
        parent_expression = node
    for child in iter_children(node):
        result = _find_spread(child, component_name, parent_expression)
        if result is not None:
            return result
    return None


class _ElementTextFinder(NodeVisitor):
    def __init__(
        self,
        tag: str,
        search_text: str,
        definitions: Sequence[VariableDefinition],
        prop_aliases: Dict[str, str],
        imports: Sequence[ImportInfo],
    ) -> None:
        self.tag = tag.lower()
        self.search = normalize_text(search_text)
        self.definitions = definitions
        self.prop_aliases = prop_aliases
        self.imports = imports
        self.result = MatchResult()
        self.best_score = 0.0
        self.done = False

    def visit(self, node: Node) -> None:
        if not self.done:
            super().visit(node)

    def visit_element(self, node: ElementNode) -> None:
        if node.name.lower() == self.tag:
            self._check(node)
        self.generic_visit(node)

    def visit_component(self, node: ComponentNode) -> None:
        self.visit_element(node)

    def _check(self, node: ElementNode) -> None:
        line = node.position.line
        for path in expression_paths(node):
            if self._check_expression(path, line):
                self.done = True
                return
        self._check_literal(node, line)

    def _check_expression(self, path: str, line: int) -> bool:
        found_locally = False
        for definition in self.definitions:
            if definition.path != path:
                continue
            found_locally = True
            if normalize_text(definition.value) == self.search:
                self._accept(
                    SCORE_VARIABLE,
                    TemplateMatch(
                        line=line,
                        type="variable",
                        variable_name=path,
                        definition_line=definition.line,
                    ),
                )
                return True

        # A destructured default is only the fallback; call sites may still pass the prop.
        base = base_identifier(path)
        prop = self._prop_for(path, base)
        if prop is not None:
            prop_name, prop_path = prop
            self.result.prop_candidates.append(
                TemplateMatch(line=line, type="variable", prop_name=prop_name, expression_path=prop_path)
            )
            return False
        if found_locally:
            return False
        for info in self.imports:
            if info.local_name == base:
                self.result.import_candidates.append(
                    TemplateMatch(line=line, type="variable", import_info=info, expression_path=path)
                )
                break
        return False

    def _prop_for(self, path: str, base: str) -> Optional[Tuple[str, str]]:
        """``(prop name, path rooted at the prop)`` when ``path`` reads a component prop."""
        if path.startswith("Astro.props."):
            rest = path[len("Astro.props."):]
            return base_identifier(rest), rest
        alias = self.prop_aliases.get(base)
        if alias is None:
            return None
        if alias == REST_PROPS:
            rest = path[len(base) + 1:]
            if not rest or path[len(base)] != ".":
                return None
            return base_identifier(rest), rest
        return alias, alias + path[len(base):]

    def _check_literal(self, node: ElementNode, line: int) -> None:
        content = normalize_text(literal_text(node))
        search = self.search
        if len(content) < MIN_CONTENT_LENGTH or not search:
            return
        if len(search) <= SHORT_TEXT_LIMIT:
            if search in content:
                self._accept_static(SCORE_SHORT_TEXT, node, search, line)
            return
        preview = search[:PREVIEW_LENGTH]
        if preview in content:
            overlap = min(len(search), len(content))
            score = SCORE_PREFIX_BASE + (overlap / len(search)) * SCORE_PREFIX_RANGE
            self._accept_static(score, node, preview, line)
        elif len(search) > FIRST_WORDS_MIN_LENGTH:
            first_words = " ".join(search.split(" ")[:3])
            if first_words and first_words in content:
                self._accept_static(SCORE_FIRST_WORDS, node, first_words, line)

    def _accept_static(self, score: float, node: ElementNode, matched: str, line: int) -> None:
        if score > self.best_score:
            text_line = find_text_line(node, matched)
            self._accept(score, TemplateMatch(line=text_line or line, type="static"))

    def _accept(self, score: float, match: TemplateMatch) -> None:
        if score > self.best_score:
            self.best_score = score
            self.result.best_match = match


__all__ = [
    "ComponentPropMatch",
    "ExpressionPropMatch",
    "MatchResult",
    "SpreadPropMatch",
    "TemplateMatch",
    "find_component_prop",
    "find_element_with_text",
    "find_expression_prop",
    "find_literal_prop",
    "find_spread_prop",
]
