"""Stamp rendered HTML with CMS ids and collect the page's editable regions.

:func:`process_html` runs four passes over one page:

1. component roots: the outermost element rendered from each component
   instance gets ``data-cms-component-id``;
2. styled spans: spans whose classes only style text get ``data-cms-styled``;
3. ids: every qualifying element gets the marker attribute, and its
   provenance attributes are moved into a side table;
4. manifest: each marked element becomes a :class:`ManifestEntry` whose text
   embeds ``{{cms:<id>}}`` for marked descendants.

Elements without the expected metadata are simply left unmarked.
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Script, Stylesheet, Tag, TemplateString

from ..config import MarkerOptions
from ..logging import get_logger
from ..models import BackgroundImageMetadata, ComponentInstance, ImageMetadata, ManifestEntry
from ..source.collections import MARKDOWN_SUFFIXES, MarkdownContent
from ..source.text import normalize_text
from .classes import extract_background_image, has_only_text_style_classes
from .hashing import generate_stable_id

_LOGGER = get_logger("marker.html")

SOURCE_FILE_ATTR = "data-astro-source-file"
SOURCE_LINE_ATTR = "data-astro-source-line"
SOURCE_LOC_ATTR = "data-astro-source-loc"
PROVENANCE_ATTRS = (SOURCE_FILE_ATTR, SOURCE_LINE_ATTR, SOURCE_LOC_ATTR)

COMPONENT_ID_ATTR = "data-cms-component-id"
STYLED_ATTR = "data-cms-styled"
BG_IMAGE_ATTR = "data-cms-bg-img"

_PLACEHOLDER = re.compile(r"\{\{cms:([^}]+)\}\}")

_SKIPPED_STRINGS = (PreformattedString, Script, Stylesheet, TemplateString)


@dataclass
class ProcessResult:
    html: str
    entries: Dict[str, ManifestEntry] = field(default_factory=dict)
    components: Dict[str, ComponentInstance] = field(default_factory=dict)
    collection_wrapper_id: Optional[str] = None


def placeholder(cms_id: str) -> str:
    return "{{cms:" + cms_id + "}}"


def placeholder_ids(text: str) -> List[str]:
    return _PLACEHOLDER.findall(text)


def sequential_ids(prefix: str = "cms-", start: int = 0) -> Callable[[], str]:
    """Id generator shared by every page of one build."""
    counter = itertools.count(start)
    return lambda: f"{prefix}{next(counter)}"


def component_name_from_path(source_file: str) -> str:
    return PurePosixPath(source_file.replace("\\", "/")).stem


def process_html(
    html: str,
    file_id: str,
    options: MarkerOptions,
    next_id: Callable[[], str],
    source_path: Optional[str] = None,
    collection: Optional[MarkdownContent] = None,
) -> ProcessResult:
    """Mark one rendered page; ``source_path`` is the fallback source for every entry.

    On a collection page the element wrapping the rendered markdown body
    becomes a single entry pointing at the markdown file, and nothing inside
    it is marked.
    """
    soup = BeautifulSoup(html, "html.parser")
    result = ProcessResult(html="")
    roots: Set[int] = set()

    if options.mark_components:
        _mark_component_roots(soup, file_id, options, next_id, result, roots)
    if options.mark_styled_spans:
        _mark_styled_spans(soup)
    wrapper = _find_collection_wrapper(soup, collection, options) if collection is not None else None
    skipped = {id(node) for node in wrapper.find_all(True)} if wrapper is not None else set()
    skip_markdown = options.skip_markdown_content or collection is not None
    provenance, images, backgrounds = _assign_ids(soup, options, next_id, roots, skipped, skip_markdown)
    if wrapper is not None:
        result.collection_wrapper_id = wrapper.get(options.attribute_name) or None
    if options.generate_manifest:
        _build_entries(soup, file_id, options, source_path, provenance, images, backgrounds, result)
        wrapper_entry = result.entries.get(result.collection_wrapper_id or "")
        if collection is not None and wrapper_entry is not None:
            _attach_collection(wrapper_entry, collection)

    for node in soup.find_all(True):
        _strip_provenance(node)

    result.html = str(soup)
    _LOGGER.debug(
        "Marked %s: %d entries, %d components", file_id, len(result.entries), len(result.components)
    )
    return result


# ------------------------------------------------------------------
# Internal helpers


def _in_dirs(source_file: str, dirs: Iterable[str]) -> bool:
    path = source_file.replace("\\", "/")
    for directory in dirs:
        normalized = directory.replace("\\", "/").strip("/")
        if not normalized:
            continue
        if path.startswith(normalized + "/") or f"/{normalized}/" in path:
            return True
    return False


def _source_line(node: Tag) -> Optional[int]:
    """Line from ``data-astro-source-line`` or ``-loc`` (``"20:21"`` -> 20)."""
    raw = node.get(SOURCE_LINE_ATTR) or node.get(SOURCE_LOC_ATTR)
    if not isinstance(raw, str):
        return None
    head = raw.split(":", 1)[0].strip()
    return int(head) if head.isdigit() else None


def _class_attr(node: Tag) -> str:
    value = node.get("class")
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def _strip_provenance(node: Tag) -> None:
    for name in PROVENANCE_ATTRS:
        if name in node.attrs:
            del node[name]


def _mark_component_roots(
    soup: BeautifulSoup,
    file_id: str,
    options: MarkerOptions,
    next_id: Callable[[], str],
    result: ProcessResult,
    roots: Set[int],
) -> None:
    for node in soup.find_all(attrs={SOURCE_FILE_ATTR: True}):
        source_file = node.get(SOURCE_FILE_ATTR)
        if not isinstance(source_file, str) or not source_file:
            continue
        if _in_dirs(source_file, options.exclude_component_dirs):
            continue
        if options.component_dirs and not _in_dirs(source_file, options.component_dirs):
            continue
        # Only the outermost element of a component instance is its root.
        if any(parent.get(SOURCE_FILE_ATTR) == source_file for parent in node.parents):
            continue

        cms_id = next_id()
        node[COMPONENT_ID_ATTR] = cms_id
        roots.add(id(node))
        result.components[cms_id] = ComponentInstance(
            id=cms_id,
            component_name=component_name_from_path(source_file),
            file=file_id,
            source_path=source_file,
            source_line=_source_line(node) or 1,
        )


def _mark_styled_spans(soup: BeautifulSoup) -> None:
    for node in soup.find_all("span"):
        if node.get(STYLED_ATTR):
            continue
        if has_only_text_style_classes(_class_attr(node)):
            node[STYLED_ATTR] = "true"


def _is_markdown_source(source_file: Optional[str], options: MarkerOptions) -> bool:
    if not source_file:
        return False
    path = source_file.replace("\\", "/")
    return path.endswith(MARKDOWN_SUFFIXES) or _in_dirs(path, [options.content_dir])


def _markable_tag(tag: str, options: MarkerOptions) -> bool:
    if tag in {name.lower() for name in options.exclude_tags}:
        return False
    return not options.include_tags or tag in {name.lower() for name in options.include_tags}


def _find_collection_wrapper(
    soup: BeautifulSoup, collection: MarkdownContent, options: MarkerOptions
) -> Optional[Tag]:
    """Deepest markable element whose text holds the first and last body lines."""
    bounds = collection.body_bounds()
    if bounds is None:
        return None
    first, last = bounds
    best: Optional[Tag] = None
    best_depth = -1
    for node in soup.find_all(True):
        if not _markable_tag(node.name.lower(), options):
            continue
        text = normalize_text(node.get_text())
        if first in text and last in text:
            depth = len(list(node.parents))
            if depth > best_depth:
                best, best_depth = node, depth
    return best


def _attach_collection(entry: ManifestEntry, collection: MarkdownContent) -> None:
    info = collection.info
    entry.source_type = "collection"
    entry.source_path = info.file
    entry.source_line = collection.body_start_line
    entry.collection_name = info.name
    entry.collection_slug = info.slug
    entry.content_path = info.file


def _assign_ids(
    soup: BeautifulSoup,
    options: MarkerOptions,
    next_id: Callable[[], str],
    roots: Set[int],
    skipped: Set[int],
    skip_markdown: bool,
) -> Tuple[Dict[str, Tuple[str, int]], Dict[str, ImageMetadata], Dict[str, BackgroundImageMetadata]]:
    attribute = options.attribute_name

    provenance: Dict[str, Tuple[str, int]] = {}
    images: Dict[str, ImageMetadata] = {}
    backgrounds: Dict[str, BackgroundImageMetadata] = {}

    for node in soup.find_all(True):
        tag = node.name.lower()
        if not _markable_tag(tag, options) or id(node) in skipped:
            continue
        if node.get(attribute):
            continue
        source_file = node.get(SOURCE_FILE_ATTR)
        if skip_markdown and _is_markdown_source(source_file, options):
            continue

        background = extract_background_image(_class_attr(node))
        src = node.get("src") if tag == "img" else None
        text = node.get_text().strip()
        if not text and not options.include_empty_text and background is None and not src:
            continue

        cms_id = next_id()
        node[attribute] = cms_id
        if background is not None:
            node[BG_IMAGE_ATTR] = "true"
            backgrounds[cms_id] = background
        if src:
            srcset = node.get("srcset")
            images[cms_id] = ImageMetadata(
                src=src, alt=node.get("alt") or "", srcset=srcset if isinstance(srcset, str) else None
            )

        if isinstance(source_file, str) and source_file:
            line = _source_line(node)
            if line is not None:
                provenance[cms_id] = (source_file, line)
            if id(node) not in roots:
                _strip_provenance(node)
    return provenance, images, backgrounds


def _build_text(node: Tag, attribute: str, flattened: Dict[str, str]) -> str:
    """Text of ``node`` with marked descendants replaced by placeholders.

    Marked descendants that were dropped as pure containers are inlined
    through ``flattened`` so their own placeholders surface here instead.
    """
    parts: List[str] = []
    for child in node.children:
        if isinstance(child, Tag):
            child_id = child.get(attribute)
            if not child_id:
                parts.append(_build_text(child, attribute, flattened))
            elif child_id in flattened:
                parts.append(flattened[child_id])
            else:
                parts.append(placeholder(child_id))
        elif isinstance(child, NavigableString) and not isinstance(child, _SKIPPED_STRINGS):
            parts.append(str(child))
    return "".join(parts)


def _parent_component_id(node: Tag) -> Optional[str]:
    for parent in node.parents:
        value = parent.get(COMPONENT_ID_ATTR)
        if value:
            return value
    return None


def _build_entries(
    soup: BeautifulSoup,
    file_id: str,
    options: MarkerOptions,
    source_path: Optional[str],
    provenance: Dict[str, Tuple[str, int]],
    images: Dict[str, ImageMetadata],
    backgrounds: Dict[str, BackgroundImageMetadata],
    result: ProcessResult,
) -> None:
    attribute = options.attribute_name
    marked = soup.find_all(attrs={attribute: True})
    flattened: Dict[str, str] = {}
    built: Dict[str, ManifestEntry] = {}

    # Innermost first, so a child's container status is known before its parent.
    for node in reversed(marked):
        cms_id = node.get(attribute)
        raw = _build_text(node, attribute, flattened)
        children = placeholder_ids(raw)
        direct = _PLACEHOLDER.sub("", raw).strip()
        image = images.get(cms_id)
        background = backgrounds.get(cms_id)
        if not direct and children and image is None and background is None:
            flattened[cms_id] = raw
            continue

        text = raw.strip()
        tag = node.name.lower()
        source_file, line = provenance.get(cms_id, (source_path, None))
        built[cms_id] = ManifestEntry(
            id=cms_id,
            tag=tag,
            text=text,
            file=file_id,
            source_path=source_file,
            source_line=line,
            source_type="image" if image is not None else "static",
            child_cms_ids=children,
            parent_component_id=_parent_component_id(node),
            stable_id=generate_stable_id(tag, text, source_file),
            image=image,
            background_image=background,
        )

    for node in marked:
        cms_id = node.get(attribute)
        if cms_id in built:
            result.entries[cms_id] = built[cms_id]
        else:
            del node[attribute]


__all__ = [
    "BG_IMAGE_ATTR",
    "COMPONENT_ID_ATTR",
    "PROVENANCE_ATTRS",
    "ProcessResult",
    "STYLED_ATTR",
    "component_name_from_path",
    "placeholder",
    "placeholder_ids",
    "process_html",
    "sequential_ids",
]
