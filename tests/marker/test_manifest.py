"""Tests for manifest output."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cmsmark.marker.manifest import MANIFEST_VERSION, ManifestWriter, load_manifest
from cmsmark.models import (
    CollectionEntry,
    ComponentDefinition,
    ComponentInstance,
    FrontmatterField,
    ManifestEntry,
)


def _entry(cms_id: str, text: str, **kwargs: object) -> ManifestEntry:
    return ManifestEntry(id=cms_id, tag="p", text=text, **kwargs)  # type: ignore[arg-type]


def test_add_page_writes_page_manifest(tmp_path: Path) -> None:
    writer = ManifestWriter(tmp_path, component_definitions={"Card": ComponentDefinition("Card", "src/components/Card.astro")})
    component = ComponentInstance("cms-0", "Card", "index.html", "src/components/Card.astro", 3)

    writer.add_page(
        "/",
        {"cms-1": _entry("cms-1", "Hello {{cms:cms-2}}", child_cms_ids=["cms-2"]), "cms-2": _entry("cms-2", "world")},
        {"cms-0": component},
    )
    writer.add_page("/blog/post", {"cms-3": _entry("cms-3", "Post", source_path="src/pages/blog.astro")}, {})

    index = json.loads((tmp_path / "index.json").read_text(encoding="utf-8"))
    assert index["page"] == "/"
    assert index["metadata"]["version"] == MANIFEST_VERSION
    assert index["metadata"]["generatedBy"] == "cmsmark"
    assert index["metadata"]["generatedAt"].endswith("Z")
    assert index["entries"]["cms-1"]["childCmsIds"] == ["cms-2"]
    assert index["components"]["cms-0"]["componentName"] == "Card"
    assert index["componentDefinitions"]["Card"]["file"] == "src/components/Card.astro"

    post = json.loads((tmp_path / "blog" / "post.json").read_text(encoding="utf-8"))
    assert post["entries"]["cms-3"]["sourcePath"] == "src/pages/blog.astro"
    assert post["metadata"]["sourceFileHashes"].keys() == {"src/pages/blog.astro"}


def test_finalize_writes_global_manifest(tmp_path: Path) -> None:
    writer = ManifestWriter(tmp_path, "manifest.json")
    writer.add_page("/b", {"cms-1": _entry("cms-1", "B")}, {})
    writer.add_page("/a", {"cms-0": _entry("cms-0", "A")}, {})

    stats = writer.finalize()

    data = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))
    assert data["pages"] == [{"pathname": "/a"}, {"pathname": "/b"}]
    assert set(data["entries"]) == {"cms-0", "cms-1"}
    assert "collections" not in data
    assert (stats.total_entries, stats.total_pages, stats.total_components) == (2, 2, 0)


def test_writer_without_output_dir_only_aggregates(tmp_path: Path) -> None:
    writer = ManifestWriter()
    writer.add_page("/", {"cms-0": _entry("cms-0", "A")}, {})

    stats = writer.finalize()

    assert stats.total_entries == 1
    assert list(tmp_path.iterdir()) == []
    with pytest.raises(ValueError):
        writer.page_manifest_path("/")

    writer.reset()
    assert writer.finalize().total_pages == 0


def test_load_manifest_checks_version(tmp_path: Path) -> None:
    writer = ManifestWriter(tmp_path)
    writer.add_page("/", {"cms-0": _entry("cms-0", "A")}, {})
    writer.finalize()

    loaded = load_manifest(tmp_path / "cms-manifest.json")
    assert loaded is not None
    assert loaded["entries"]["cms-0"]["text"] == "A"

    (tmp_path / "old.json").write_text(json.dumps({"metadata": {"version": "0.1"}}), encoding="utf-8")
    (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
    assert load_manifest(tmp_path / "old.json") is None
    assert load_manifest(tmp_path / "bad.json") is None
    assert load_manifest(tmp_path / "missing.json") is None


def test_collection_pages_are_recorded(tmp_path: Path) -> None:
    writer = ManifestWriter(tmp_path)
    collection = CollectionEntry(
        collection_name="blog",
        collection_slug="first-post",
        source_path="src/content/blog/first-post.md",
        frontmatter={"title": FrontmatterField("First Post", 2)},
        body="Hello there.",
        body_start_line=5,
        wrapper_id="cms-3",
    )
    writer.add_page("/blog/first-post", {"cms-3": _entry("cms-3", "Hello there.")}, {}, collection)
    writer.add_page("/", {"cms-0": _entry("cms-0", "Home")}, {})
    writer.finalize()

    page = json.loads((tmp_path / "blog" / "first-post.json").read_text(encoding="utf-8"))
    assert page["collection"]["collectionName"] == "blog"
    assert page["collection"]["frontmatter"]["title"] == {"value": "First Post", "line": 2}
    assert page["collection"]["wrapperId"] == "cms-3"
    assert "collection" not in json.loads((tmp_path / "index.json").read_text(encoding="utf-8"))

    data = json.loads((tmp_path / "cms-manifest.json").read_text(encoding="utf-8"))
    assert set(data["collections"]) == {"blog/first-post"}
    assert data["collections"]["blog/first-post"]["bodyStartLine"] == 5

    writer.reset()
    assert writer.collections == {}
