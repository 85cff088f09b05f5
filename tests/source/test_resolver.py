"""Tests for the source resolver query surface."""

from __future__ import annotations

from cmsmark.source.resolver import SourceResolver
from tests._fixtures.project_builder import ProjectBuilder


def test_static_heading_resolves_to_its_line(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "src/pages/index.astro": """
                ---
                const unused = "x";
                ---
                <main>
                  <h1>Hello World</h1>
                </main>
                """,
        }
    )
    resolver = SourceResolver(project_builder.context())

    location = resolver.resolve_source_location("Hello World", "h1")

    assert location is not None
    assert location.file == "src/pages/index.astro"
    assert location.line == 5
    assert location.type == "static"


def test_variable_resolves_to_definition_line(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "src/components/More.astro": """
                ---
                const label = "Read more";
                ---
                <a href="/more">{label}</a>
                """,
        }
    )
    resolver = SourceResolver(project_builder.context())

    location = resolver.resolve_source_location("Read more", "a")

    assert location is not None
    assert location.line == 2
    assert location.type == "variable"
    assert location.variable_name == "label"
    assert location.to_dict()["definitionLine"] == 2


def test_ast_fallback_uses_first_words(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/pages/index.astro": "<div>\n  <p>Quick brown fox runs</p>\n</div>\n"})
    resolver = SourceResolver(project_builder.context())

    location = resolver.resolve_source_location("Quick brown fox jumps somewhere else", "p")

    assert location is not None
    assert location.line == 2
    assert location.snippet == "  <p>Quick brown fox runs</p>"


def test_blank_or_unknown_text_is_not_found(project_builder: ProjectBuilder) -> None:
    project_builder.write({"src/pages/index.astro": "<p>Hi there</p>\n"})
    resolver = SourceResolver(project_builder.context())

    assert resolver.resolve_source_location("   ", "p") is None
    assert resolver.resolve_source_location("Completely different", "p") is None


def test_image_resolves_through_srcset(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "src/components/Hero.astro": '<section>\n  <img src="/images/hero.png" alt="" />\n</section>\n',
        }
    )
    resolver = SourceResolver(project_builder.context())

    direct = resolver.resolve_image_source_location("/images/hero.png")
    via_srcset = resolver.resolve_image_source_location(
        "/_astro/hero.hash.webp", "/images/hero.png 1x, /images/hero@2x.png 2x"
    )

    assert direct is not None
    assert direct.line == 2
    assert via_srcset is not None
    assert via_srcset.file == "src/components/Hero.astro"
    assert resolver.resolve_image_source_location("/none.png") is None
