"""Content collection pages backed by markdown files.

A page at ``/<collection>/<slug>`` is a collection page when the content
directory holds ``<collection>/<slug>.md`` (or ``.mdx``, or an ``index``
file inside ``<slug>/``). Its frontmatter values are matched before any
template lookup; the markdown body is edited as one unit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from ..logging import get_logger
from ..models import CollectionEntry, FrontmatterField, SourceLocation
from .text import normalize_text

_LOGGER = get_logger("source.collections")

MARKDOWN_SUFFIXES = (".md", ".mdx")

_BLOCK_MARKER = re.compile(r"^(?:#{1,6}\s+|>\s*|[-*+]\s+|\d+\.\s+)")
_LINK = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_EMPHASIS = re.compile(r"[*_`~]+")


@dataclass
class CollectionInfo:
    name: str
    slug: str
    file: str  # project-relative


@dataclass
class MarkdownContent:
    info: CollectionInfo
    lines: List[str]
    frontmatter: Dict[str, FrontmatterField] = field(default_factory=dict)
    body: str = ""
    body_start_line: int = 1

    def body_bounds(self) -> Optional[tuple[str, str]]:
        """Normalized plain text of the first and last non-empty body lines."""
        plain = [plain_markdown_line(line) for line in self.body.split("\n")]
        plain = [line for line in plain if line]
        if not plain:
            return None
        return plain[0], plain[-1]

    def to_entry(self, wrapper_id: Optional[str] = None) -> CollectionEntry:
        return CollectionEntry(
            collection_name=self.info.name,
            collection_slug=self.info.slug,
            source_path=self.info.file,
            frontmatter=dict(self.frontmatter),
            body=self.body,
            body_start_line=self.body_start_line,
            wrapper_id=wrapper_id,
        )


def find_collection_source(root: Path, page_path: str, content_dir: str) -> Optional[CollectionInfo]:
    """Markdown file behind ``page_path``; ``None`` for pages outside a collection."""
    parts = [part for part in page_path.strip("/").split("/") if part]
    if len(parts) < 2:
        return None
    name, slug = parts[0], "/".join(parts[1:])
    collection_dir = Path(root) / content_dir / name
    if not collection_dir.is_dir():
        return None

    candidates = [collection_dir / f"{slug}{suffix}" for suffix in MARKDOWN_SUFFIXES]
    candidates += [collection_dir / slug / f"index{suffix}" for suffix in MARKDOWN_SUFFIXES]
    for candidate in candidates:
        if candidate.is_file():
            relative = candidate.relative_to(root).as_posix()
            return CollectionInfo(name=name, slug=slug, file=relative)
    return None


def parse_markdown_content(root: Path, info: CollectionInfo) -> Optional[MarkdownContent]:
    """Split a collection file into frontmatter fields (with their lines) and body."""
    path = Path(root) / info.file
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.warning("Failed to read collection file %s: %s", info.file, exc)
        return None

    lines = text.split("\n")
    content = MarkdownContent(info=info, lines=lines)
    end = _frontmatter_end(lines)
    if end is not None:
        content.frontmatter = _frontmatter_fields(lines[1:end], info.file)
    body_start = end + 1 if end is not None else 0
    content.body = "\n".join(lines[body_start:]).strip()
    content.body_start_line = body_start + 1
    return content


def find_markdown_source_location(text: str, content: MarkdownContent) -> Optional[SourceLocation]:
    """Frontmatter field whose value equals ``text``; body lines are never matched one by one."""
    normalized = normalize_text(text)
    if not normalized:
        return None
    for key, item in content.frontmatter.items():
        if normalize_text(item.value) == normalized:
            return SourceLocation(
                file=content.info.file,
                line=item.line,
                snippet=content.lines[item.line - 1],
                type="collection",
                variable_name=key,
            )
    return None


def plain_markdown_line(line: str) -> str:
    """Rough rendered form of one markdown line, normalized for comparison."""
    stripped = _BLOCK_MARKER.sub("", line.strip())
    stripped = _LINK.sub(r"\1", stripped)
    return normalize_text(_EMPHASIS.sub("", stripped))


# ------------------------------------------------------------------
# Internal helpers


def _frontmatter_end(lines: List[str]) -> Optional[int]:
    if not lines or lines[0].strip() != "---":
        return None
    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            return index
    return None


def _frontmatter_fields(lines: List[str], file: str) -> Dict[str, FrontmatterField]:
    """Top-level scalar fields; line numbers count the opening ``---`` as line 1."""
    try:
        node = yaml.compose("\n".join(lines))
    except yaml.YAMLError as exc:
        _LOGGER.warning("Ignoring malformed frontmatter in %s: %s", file, exc)
        return {}
    if not isinstance(node, yaml.MappingNode):
        return {}

    fields: Dict[str, FrontmatterField] = {}
    for key_node, value_node in node.value:
        if not isinstance(value_node, yaml.ScalarNode) or not str(value_node.value).strip():
            continue
        fields[str(key_node.value)] = FrontmatterField(
            value=str(value_node.value), line=key_node.start_mark.line + 2
        )
    return fields


__all__ = [
    "MARKDOWN_SUFFIXES",
    "CollectionInfo",
    "MarkdownContent",
    "find_collection_source",
    "find_markdown_source_location",
    "parse_markdown_content",
    "plain_markdown_line",
]
