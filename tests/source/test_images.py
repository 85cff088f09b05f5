"""Tests for image element lookup."""

from __future__ import annotations

from cmsmark.source.images import find_image_element, find_image_element_near_line, parse_srcset
from cmsmark.template.markup import parse_template

SOURCE = """<div>
  <img src="/a.png" alt="A" />
  <p>text</p>
  <Image src="/b.png" />
</div>
"""


def test_find_image_element_matches_src() -> None:
    lines = SOURCE.split("\n")

    match = find_image_element(parse_template(SOURCE), "/b.png", lines)

    assert match is not None
    assert match.line == 4
    assert match.snippet == '  <Image src="/b.png" />'
    assert find_image_element(parse_template(SOURCE), "/c.png", lines) is None


def test_find_image_element_near_line_prefers_closest() -> None:
    ast = parse_template(SOURCE)
    lines = SOURCE.split("\n")

    assert find_image_element_near_line(ast, lines, 3).src == "/a.png"
    assert find_image_element_near_line(ast, lines, 5).src == "/b.png"
    assert find_image_element_near_line(ast, lines, 3, src="/b.png").line == 4
    assert find_image_element_near_line(ast, lines, 40) is None


def test_parse_srcset_drops_descriptors() -> None:
    assert parse_srcset("/a.png 1x, /a@2x.png 2x,") == ["/a.png", "/a@2x.png"]
    assert parse_srcset("") == []
