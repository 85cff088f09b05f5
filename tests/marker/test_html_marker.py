"""Tests for marking rendered HTML and building page entries."""

from __future__ import annotations

from bs4 import BeautifulSoup

from cmsmark.config import MarkerOptions
from cmsmark.models import FrontmatterField
from cmsmark.marker.html import (
    BG_IMAGE_ATTR,
    COMPONENT_ID_ATTR,
    STYLED_ATTR,
    component_name_from_path,
    placeholder_ids,
    process_html,
    sequential_ids,
)
from cmsmark.source.collections import CollectionInfo, MarkdownContent

CARD = "src/components/Card.astro"
BUTTON = "src/components/Button.astro"


def _options(**overrides: object) -> MarkerOptions:
    options = MarkerOptions(mark_components=False, mark_styled_spans=False)
    for key, value in overrides.items():
        setattr(options, key, value)
    return options


def test_nested_entries_use_placeholders() -> None:
    html = "<p>Start <span>before <strong>bold</strong> after</span> end</p>"

    result = process_html(html, "index.html", _options(include_tags=["p", "strong"]), sequential_ids())

    assert list(result.entries) == ["cms-0", "cms-1"]
    parent = result.entries["cms-0"]
    assert parent.text == "Start before {{cms:cms-1}} after end"
    assert parent.child_cms_ids == ["cms-1"]
    assert result.entries["cms-1"].text == "bold"
    assert 'data-cms-id="cms-0"' in result.html


def test_empty_inline_child_keeps_surrounding_whitespace() -> None:
    result = process_html("<p>Start <span></span> end</p>", "index.html", _options(), sequential_ids())

    assert list(result.entries) == ["cms-0"]
    assert result.entries["cms-0"].text == "Start  end"


def test_inner_whitespace_is_preserved() -> None:
    result = process_html("<p>  Start  end  </p>", "index.html", _options(), sequential_ids())

    assert result.entries["cms-0"].text == "Start  end"


def test_pure_containers_are_flattened() -> None:
    html = "<div>Intro <section><p>Hello</p></section></div>"

    result = process_html(html, "index.html", _options(), sequential_ids())

    assert list(result.entries) == ["cms-0", "cms-2"]
    assert result.entries["cms-0"].text == "Intro {{cms:cms-2}}"
    assert result.entries["cms-0"].child_cms_ids == ["cms-2"]
    for entry in result.entries.values():
        assert all(child in result.entries for child in entry.child_cms_ids)
        assert entry.child_cms_ids == placeholder_ids(entry.text)
    section = BeautifulSoup(result.html, "html.parser").find("section")
    assert section.get("data-cms-id") is None


def test_component_roots_and_parent_ids() -> None:
    html = (
        f'<div data-astro-source-file="{CARD}" data-astro-source-line="3">'
        f'<h2 data-astro-source-file="{CARD}" data-astro-source-line="4">Title</h2>'
        f'<button data-astro-source-file="{BUTTON}" data-astro-source-loc="2:5">Go</button>'
        "</div>"
    )

    result = process_html(html, "index.html", MarkerOptions(), sequential_ids())

    assert list(result.components) == ["cms-0", "cms-1"]
    card = result.components["cms-0"]
    assert (card.component_name, card.source_path, card.source_line, card.file) == (
        "Card",
        CARD,
        3,
        "index.html",
    )
    assert result.components["cms-1"].component_name == "Button"
    assert result.components["cms-1"].source_line == 2

    title = next(entry for entry in result.entries.values() if entry.tag == "h2")
    button = next(entry for entry in result.entries.values() if entry.tag == "button")
    assert title.parent_component_id == "cms-0"
    assert (title.source_path, title.source_line) == (CARD, 4)
    assert button.parent_component_id == "cms-0"
    assert "data-astro-source" not in result.html
    assert f'{COMPONENT_ID_ATTR}="cms-0"' in result.html


def test_each_component_instance_gets_its_own_root() -> None:
    instance = (
        f'<div data-astro-source-file="{CARD}" data-astro-source-line="3">'
        f'<h2 data-astro-source-file="{CARD}" data-astro-source-line="4">{{title}}</h2></div>'
    )
    html = "<main>" + instance.format(title="One") + instance.format(title="Two") + "</main>"

    result = process_html(html, "index.html", MarkerOptions(), sequential_ids())

    assert len(result.components) == 2
    parents = {entry.text: entry.parent_component_id for entry in result.entries.values() if entry.tag == "h2"}
    assert parents == {"One": "cms-0", "Two": "cms-1"}


def test_pages_and_layouts_are_not_component_roots() -> None:
    html = '<main data-astro-source-file="src/pages/index.astro" data-astro-source-line="5">Hi</main>'

    result = process_html(html, "index.html", MarkerOptions(), sequential_ids())

    assert result.components == {}
    assert result.entries["cms-0"].source_path == "src/pages/index.astro"


def test_text_style_spans_are_flagged() -> None:
    html = (
        '<p>Hello <span class="font-bold text-red-500">world</span>'
        '<span class="flex">x</span><span class="text-center">y</span></p>'
    )

    result = process_html(html, "index.html", _options(mark_styled_spans=True), sequential_ids())

    spans = BeautifulSoup(result.html, "html.parser").find_all("span")
    assert [span.get(STYLED_ATTR) for span in spans] == ["true", None, None]


def test_background_images_are_marked_without_text() -> None:
    html = "<div class=\"bg-[url('/hero.jpg')] bg-cover bg-center\"></div><div></div>"

    result = process_html(html, "index.html", _options(), sequential_ids())

    entry = result.entries["cms-0"]
    assert entry.background_image is not None
    assert entry.background_image.image_url == "/hero.jpg"
    assert entry.background_image.bg_size == "bg-cover"
    assert entry.background_image.bg_position == "bg-center"
    assert len(result.entries) == 1
    assert f'{BG_IMAGE_ATTR}="true"' in result.html


def test_images_are_marked_with_metadata() -> None:
    html = '<figure><img src="/a.png" alt="A" srcset="/a.png 1x, /a@2x.png 2x"></figure>'

    result = process_html(html, "index.html", _options(), sequential_ids())

    entry = result.entries["cms-0"]
    assert entry.tag == "img"
    assert entry.source_type == "image"
    assert entry.image is not None
    assert (entry.image.src, entry.image.alt, entry.image.srcset) == ("/a.png", "A", "/a.png 1x, /a@2x.png 2x")


def test_markdown_content_can_be_skipped() -> None:
    html = (
        '<p data-astro-source-file="src/content/blog/post.md" data-astro-source-line="1">Text</p>'
        '<p data-astro-source-file="src/pages/index.astro" data-astro-source-line="2">Kept</p>'
    )

    result = process_html(html, "index.html", _options(skip_markdown_content=True), sequential_ids())

    assert [entry.text for entry in result.entries.values()] == ["Kept"]


def test_fallback_source_path_and_custom_attribute() -> None:
    result = process_html(
        "<h1>Hi</h1>",
        "index.html",
        _options(attribute_name="data-edit"),
        sequential_ids(),
        source_path="src/pages/index.astro",
    )

    entry = result.entries["cms-0"]
    assert entry.source_path == "src/pages/index.astro"
    assert entry.source_line is None
    assert entry.stable_id is not None and len(entry.stable_id) == 12
    assert 'data-edit="cms-0"' in result.html


def test_ids_continue_across_pages() -> None:
    next_id = sequential_ids()

    first = process_html("<p>One</p>", "a.html", _options(), next_id)
    second = process_html("<p>Two</p>", "b.html", _options(), next_id)

    assert list(first.entries) == ["cms-0"]
    assert list(second.entries) == ["cms-1"]


def test_manifest_generation_can_be_disabled() -> None:
    result = process_html("<p>One</p>", "a.html", _options(generate_manifest=False), sequential_ids())

    assert result.entries == {}
    assert 'data-cms-id="cms-0"' in result.html


def test_component_name_from_path() -> None:
    assert component_name_from_path("src\\components\\Hero.astro") == "Hero"
    assert component_name_from_path("src/components/ui/Button.astro") == "Button"


def test_collection_body_is_marked_as_one_entry() -> None:
    collection = MarkdownContent(
        info=CollectionInfo("blog", "first-post", "src/content/blog/first-post.md"),
        lines=["---", "title: First Post", "---", "## Hello world", "", "Some *intro* text."],
        frontmatter={"title": FrontmatterField("First Post", 2)},
        body="## Hello world\n\nSome *intro* text.",
        body_start_line=4,
    )
    html = (
        "<main><h1>First Post</h1>"
        '<div class="prose"><h2>Hello world</h2><p>Some <em>intro</em> text.</p></div></main>'
    )

    result = process_html(html, "blog/first-post/index.html", _options(), sequential_ids(), collection=collection)

    assert list(result.entries) == ["cms-1", "cms-2"]
    assert result.collection_wrapper_id == "cms-2"
    wrapper = result.entries["cms-2"]
    assert (wrapper.tag, wrapper.source_type) == ("div", "collection")
    assert (wrapper.source_path, wrapper.source_line) == ("src/content/blog/first-post.md", 4)
    assert (wrapper.collection_name, wrapper.collection_slug) == ("blog", "first-post")
    assert wrapper.content_path == "src/content/blog/first-post.md"
    assert wrapper.child_cms_ids == []
    assert result.entries["cms-1"].collection_name is None

    soup = BeautifulSoup(result.html, "html.parser")
    assert soup.find("p").get("data-cms-id") is None
    assert soup.find("main").get("data-cms-id") is None
