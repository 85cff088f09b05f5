"""Tests for preamble symbol extraction."""

from __future__ import annotations

from pathlib import Path

from cmsmark.models import REST_PROPS, ImportInfo
from cmsmark.source.parser import get_exported_definitions, parse_template_source
from cmsmark.source.symbols import (
    base_identifier,
    extract_prop_defaults,
    parse_expression_path,
    resolve_import_path,
)
from cmsmark.template.script import parse_script
from tests._fixtures.project_builder import ProjectBuilder

PAGE = """\
---
import Card from "./Card.astro";
import { site as siteData, other } from "../data/site";
import * as ns from "../data/ns";
const title = "Hello";
const nav = {
  items: [{ label: "Home" }, { label: "About" }],
};
const { heading, items: navItems, subtitle = "Default sub", ...rest } = Astro.props;
const label = "Go" as const;
const greeting = `Hi ${title}`;
---
<h1>{title}</h1>
"""


def test_variable_definitions_flatten_nested_literals() -> None:
    parsed = parse_template_source(Path("Page.astro"), PAGE)

    found = {(d.path, d.value, d.line) for d in parsed.variable_definitions}
    assert ("title", "Hello", 5) in found
    assert ("nav.items[0].label", "Home", 7) in found
    assert ("nav.items[1].label", "About", 7) in found
    assert ("subtitle", "Default sub", 9) in found
    assert ("label", "Go", 10) in found
    assert not any(path == "greeting" for path, _, _ in found)
    assert parsed.frontmatter_start_line == 1


def test_prop_aliases_cover_renames_defaults_and_rest() -> None:
    parsed = parse_template_source(Path("Page.astro"), PAGE)

    assert parsed.prop_aliases == {
        "heading": "heading",
        "navItems": "items",
        "subtitle": "subtitle",
        "rest": REST_PROPS,
    }


def test_imports_cover_default_named_and_namespace() -> None:
    parsed = parse_template_source(Path("Page.astro"), PAGE)

    assert parsed.imports == [
        ImportInfo("Card", "default", "./Card.astro"),
        ImportInfo("siteData", "site", "../data/site"),
        ImportInfo("other", "other", "../data/site"),
        ImportInfo("ns", "*", "../data/ns"),
    ]
    assert parsed.find_import("siteData") == ImportInfo("siteData", "site", "../data/site")
    assert parsed.find_import("missing") is None


def test_prop_defaults_keep_source_text_for_non_strings() -> None:
    tree = parse_script('const { size = "md", count = 3, label: text = "x" } = Astro.props;')

    assert extract_prop_defaults(tree.root_node) == {"size": "md", "count": "3", "label": "x"}


def test_parse_expression_path() -> None:
    assert parse_expression_path("  links[0].text ") == "links[0].text"
    assert parse_expression_path("Astro.props.title") == "Astro.props.title"
    assert parse_expression_path("a + b") is None
    assert parse_expression_path("fn()") is None
    assert base_identifier("nav.items[0]") == "nav"


def test_resolve_import_path_tries_extensions_and_index(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "src/data/site.ts": "export const site = {};\n",
            "src/data/nav/index.ts": "export const nav = [];\n",
            "src/pages/index.astro": "<p>x</p>\n",
        }
    )
    page = project_builder.path() / "src/pages/index.astro"

    assert resolve_import_path("../data/site", page) == (project_builder.path() / "src/data/site.ts").resolve()
    assert resolve_import_path("../data/nav", page) == (
        project_builder.path() / "src/data/nav/index.ts"
    ).resolve()
    assert resolve_import_path("../data/missing", page) is None
    assert resolve_import_path("react", page) is None


def test_exported_definitions_use_file_lines(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "src/data/site.ts": """
                export const site = { title: "My Site", tagline: 'Fast' };
                const hidden = "internal";
                export default "ignored";
                """,
        }
    )
    context = project_builder.context()

    definitions = get_exported_definitions(context, project_builder.path() / "src/data/site.ts")

    assert [(d.path, d.value, d.line) for d in definitions] == [
        ("site.title", "My Site", 1),
        ("site.tagline", "Fast", 1),
        ("hidden", "internal", 2),
    ]
    assert get_exported_definitions(context, project_builder.path() / "src/data/missing.ts") == []
