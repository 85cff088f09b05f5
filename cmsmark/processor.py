"""Post-build pass: mark every rendered page and write the manifests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import time
from typing import Callable, Dict, List, Optional, Tuple

from .config import CmsConfig
from .logging import get_logger
from .marker.components import ComponentRegistry
from .marker.hashing import generate_source_hash, generate_stable_id
from .marker.html import placeholder, process_html, sequential_ids
from .marker.manifest import ManifestWriter
from .models import ManifestEntry, SourceLocation
from .source.collections import (
    MarkdownContent,
    find_collection_source,
    find_markdown_source_location,
    parse_markdown_content,
)
from .source.context import BuildContext
from .source.images import find_image_element_near_line
from .source.parser import get_parsed_file
from .source.resolver import SourceResolver
from .source.snippets import extract_complete_tag_snippet


@dataclass
class BuildReport:
    pages: int = 0
    entries: int = 0
    components: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)


def get_page_path(html_file: Path, out_dir: Path) -> str:
    """``about/index.html`` -> ``/about``, ``index.html`` -> ``/``, ``blog/post.html`` -> ``/blog/post``."""
    parts = list(html_file.relative_to(out_dir).parts)
    if parts and parts[-1] == "index.html":
        parts.pop()
    elif parts:
        parts[-1] = parts[-1][: -len(".html")] if parts[-1].endswith(".html") else parts[-1]
    return "/" + "/".join(parts)


def plain_text(entry: ManifestEntry, entries: Dict[str, ManifestEntry], depth: int = 0) -> str:
    """Entry text with every ``{{cms:<id>}}`` replaced by that child's own plain text."""
    text = entry.text
    for child_id in entry.child_cms_ids:
        child = entries.get(child_id)
        replacement = plain_text(child, entries, depth + 1) if child is not None and depth < 20 else ""
        text = text.replace(placeholder(child_id), replacement)
    return text


class BuildProcessor:
    """Runs the content marker over a build output directory.

    One processor may run several builds; every :meth:`process` call starts
    from a fresh context so no cached parse outlives its build.
    """

    def __init__(self, config: CmsConfig) -> None:
        self.config = config
        self.context = BuildContext(config.root, layout=config.layout)
        self.resolver = SourceResolver(self.context)
        self.registry = ComponentRegistry(config.root, config.marker.component_dirs)
        self.logger = get_logger("processor")

    def process(self, dist_dir: Path) -> BuildReport:
        out_dir = Path(dist_dir).resolve()
        started = time.monotonic()
        self.context.reset()

        writer = ManifestWriter(
            out_dir if self.config.manifest.enabled else None,
            self.config.manifest.file,
            self.registry.scan(),
        )
        html_files = sorted(out_dir.rglob("*.html")) if out_dir.is_dir() else []
        report = BuildReport()
        if not html_files:
            self.logger.info("No HTML files found in %s", out_dir)
            return report

        self.resolver.build_index()
        next_id = sequential_ids()
        for html_file in html_files:
            relative = html_file.relative_to(out_dir).as_posix()
            try:
                self._process_file(html_file, out_dir, writer, next_id)
            except OSError as exc:
                self.logger.error("Failed to process %s: %s", relative, exc)
                report.errors.append((relative, str(exc)))

        stats = writer.finalize()
        report.pages = len(html_files) - len(report.errors)
        report.entries = stats.total_entries
        report.components = stats.total_components
        message = "Processed %d/%d pages with %d entries and %d components in %.0fms"
        args = (
            report.pages,
            len(html_files),
            report.entries,
            report.components,
            (time.monotonic() - started) * 1000,
        )
        if report.errors:
            self.logger.warning(message, *args)
        else:
            self.logger.info(message, *args)
        return report

    # ------------------------------------------------------------------
    # Internal helpers

    def _process_file(
        self, html_file: Path, out_dir: Path, writer: ManifestWriter, next_id: Callable[[], str]
    ) -> None:
        relative = html_file.relative_to(out_dir).as_posix()
        page_path = get_page_path(html_file, out_dir)
        html = html_file.read_text(encoding="utf-8")
        collection = self._collection_for(page_path)
        result = process_html(html, relative, self.config.marker, next_id, collection=collection)
        for entry in result.entries.values():
            self._resolve_entry(entry, result.entries, collection)
        html_file.write_text(result.html, encoding="utf-8")
        writer.add_page(
            page_path,
            result.entries,
            result.components,
            collection.to_entry(result.collection_wrapper_id) if collection is not None else None,
        )
        self.logger.debug("Marked %s with %d entries", relative, len(result.entries))

    def _collection_for(self, page_path: str) -> Optional[MarkdownContent]:
        info = find_collection_source(self.config.root, page_path, self.config.marker.content_dir)
        if info is None:
            return None
        self.logger.debug("%s is collection entry %s/%s", page_path, info.name, info.slug)
        return parse_markdown_content(self.config.root, info)

    def _resolve_entry(
        self,
        entry: ManifestEntry,
        entries: Dict[str, ManifestEntry],
        collection: Optional[MarkdownContent] = None,
    ) -> None:
        # Collection wrappers already point at their markdown file.
        if entry.collection_name is None:
            self._locate(entry, entries, collection)
        if entry.source_snippet:
            entry.source_hash = generate_source_hash(entry.source_snippet)
        entry.stable_id = generate_stable_id(entry.tag, entry.text, entry.source_path)

    def _locate(
        self,
        entry: ManifestEntry,
        entries: Dict[str, ManifestEntry],
        collection: Optional[MarkdownContent],
    ) -> None:
        if entry.image is not None:
            location = None
            if entry.source_path and entry.source_line and not entry.source_path.endswith(".html"):
                location = self._image_near_line(entry.source_path, entry.source_line, entry.image.src)
            if location is None:
                location = self.resolver.resolve_image_source_location(entry.image.src, entry.image.srcset)
            if location is not None:
                entry.source_path = location.file
                entry.source_line = location.line
                entry.source_snippet = location.snippet
            return

        if entry.source_path and not entry.source_path.endswith(".html"):
            if entry.source_snippet is None and entry.source_line:
                entry.source_snippet = self._snippet_at(entry.source_path, entry.source_line, entry.tag)
            return

        if collection is not None and self._resolve_in_collection(entry, entries, collection):
            return

        location = self.resolver.resolve_source_location(plain_text(entry, entries), entry.tag)
        if location is None:
            entry.source_path = None
            return
        entry.source_path = location.file
        entry.source_line = location.line
        entry.source_snippet = location.snippet
        entry.source_type = location.type
        entry.variable_name = location.variable_name

    def _resolve_in_collection(
        self, entry: ManifestEntry, entries: Dict[str, ManifestEntry], collection: MarkdownContent
    ) -> bool:
        location = find_markdown_source_location(plain_text(entry, entries), collection)
        if location is None:
            return False
        entry.source_path = location.file
        entry.source_line = location.line
        entry.source_snippet = location.snippet
        entry.source_type = location.type
        entry.variable_name = location.variable_name
        entry.collection_name = collection.info.name
        entry.collection_slug = collection.info.slug
        return True

    def _snippet_at(self, source_path: str, line: int, tag: str) -> Optional[str]:
        parsed = get_parsed_file(self.context, self.config.root / source_path)
        if parsed is None:
            return None
        return extract_complete_tag_snippet(parsed.lines, line - 1, tag)

    def _image_near_line(self, source_path: str, line: int, src: str) -> Optional[SourceLocation]:
        parsed = get_parsed_file(self.context, self.config.root / source_path)
        if parsed is None:
            return None
        match = find_image_element_near_line(parsed.ast, parsed.lines, line, src)
        if match is None:
            return None
        return SourceLocation(file=source_path, line=match.line, snippet=match.snippet)


__all__ = ["BuildProcessor", "BuildReport", "get_page_path", "plain_text"]
