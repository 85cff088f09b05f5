"""Tests for stable ids and manifest hashes."""

from __future__ import annotations

from cmsmark.marker.hashing import (
    generate_manifest_content_hash,
    generate_source_file_hashes,
    generate_source_hash,
    generate_stable_id,
    sha256,
)
from cmsmark.models import ManifestEntry


def test_stable_id_depends_on_tag_text_prefix_and_source() -> None:
    base = generate_stable_id("p", "Hello", "src/pages/index.astro")

    assert len(base) == 12
    assert base == generate_stable_id("p", "Hello", "src/pages/index.astro")
    assert base != generate_stable_id("h1", "Hello", "src/pages/index.astro")
    assert base != generate_stable_id("p", "Hello", None)
    assert generate_stable_id("p", "a" * 50 + "X") == generate_stable_id("p", "a" * 50 + "Y")
    assert base == sha256("p|Hello|src/pages/index.astro")[:12]


def test_source_hash_is_sha256_of_snippet() -> None:
    assert generate_source_hash("<h1>Hi</h1>") == sha256("<h1>Hi</h1>")
    assert len(generate_source_hash("")) == 64


def test_manifest_content_hash_ignores_insertion_order() -> None:
    a = ManifestEntry(id="a", tag="p", text="One")
    b = ManifestEntry(id="b", tag="h1", text="Two", source_path="src/pages/index.astro")

    assert generate_manifest_content_hash({"a": a, "b": b}) == generate_manifest_content_hash({"b": b, "a": a})
    changed = ManifestEntry(id="b", tag="h1", text="Changed", source_path="src/pages/index.astro")
    assert generate_manifest_content_hash({"a": a, "b": b}) != generate_manifest_content_hash(
        {"a": a, "b": changed}
    )


def test_source_file_hashes_group_by_file_in_line_order() -> None:
    first = ManifestEntry(id="a", tag="p", text="One", source_path="src/a.astro", source_line=9)
    second = ManifestEntry(id="b", tag="p", text="Two", source_path="src/a.astro", source_line=2)
    other = ManifestEntry(id="c", tag="p", text="Three", source_path="src/b.astro", source_line=1)
    orphan = ManifestEntry(id="d", tag="p", text="Four")

    hashes = generate_source_file_hashes({"a": first, "b": second, "c": other, "d": orphan})

    assert set(hashes) == {"src/a.astro", "src/b.astro"}
    assert hashes["src/a.astro"] == sha256("2|Two|\n9|One|")
