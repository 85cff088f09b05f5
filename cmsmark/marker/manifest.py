"""Per-page and site-wide manifest files."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Set

from ..locks import file_lock
from ..logging import get_logger
from ..models import CollectionEntry, ComponentDefinition, ComponentInstance, ManifestEntry
from .hashing import generate_manifest_content_hash, generate_source_file_hashes

_LOGGER = get_logger("marker.manifest")

MANIFEST_VERSION = "1.0"
GENERATED_BY = "cmsmark"


@dataclass
class ManifestStats:
    total_entries: int
    total_pages: int
    total_components: int


class ManifestWriter:
    """Collects page results and writes their manifests under ``out_dir``.

    Page manifests are written as pages are added; the global manifest is
    written once by :meth:`finalize`. With ``out_dir`` unset nothing touches
    the disk and the writer only aggregates.
    """

    def __init__(
        self,
        out_dir: Optional[Path] = None,
        manifest_file: str = "cms-manifest.json",
        component_definitions: Optional[Dict[str, ComponentDefinition]] = None,
    ) -> None:
        self.out_dir = out_dir
        self.manifest_file = manifest_file
        self.component_definitions: Dict[str, ComponentDefinition] = component_definitions or {}
        self.collections: Dict[str, CollectionEntry] = {}
        self._pages: Set[str] = set()
        self._entries: Dict[str, ManifestEntry] = {}
        self._components: Dict[str, ComponentInstance] = {}

    def page_manifest_path(self, page_path: str) -> Path:
        if self.out_dir is None:
            raise ValueError("ManifestWriter has no output directory")
        clean = page_path.strip("/")
        if not clean:
            return self.out_dir / "index.json"
        return self.out_dir / f"{clean}.json"

    def add_page(
        self,
        page_path: str,
        entries: Dict[str, ManifestEntry],
        components: Dict[str, ComponentInstance],
        collection: Optional[CollectionEntry] = None,
    ) -> None:
        self._pages.add(page_path)
        if collection is not None:
            self.collections[collection.key] = collection
        self._entries.update(entries)
        self._components.update(components)
        if self.out_dir is None:
            return
        try:
            self._write_page(page_path, entries, components, collection)
        except OSError as exc:
            _LOGGER.warning("Failed to write manifest for %s: %s", page_path, exc)

    def global_manifest(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "metadata": self._metadata(self._entries),
            "entries": _serialise(self._entries),
            "components": _serialise(self._components),
            "componentDefinitions": _serialise(self.component_definitions),
            "pages": [{"pathname": path} for path in sorted(self._pages)],
        }
        if self.collections:
            data["collections"] = _serialise(self.collections)
        return data

    def finalize(self) -> ManifestStats:
        if self.out_dir is not None:
            target = self.out_dir / self.manifest_file
            target.parent.mkdir(parents=True, exist_ok=True)
            with file_lock(target):
                target.write_text(json.dumps(self.global_manifest(), indent=2), encoding="utf-8")
            _LOGGER.debug("Wrote global manifest %s", target)
        return ManifestStats(
            total_entries=len(self._entries),
            total_pages=len(self._pages),
            total_components=len(self._components),
        )

    def reset(self) -> None:
        self._pages.clear()
        self.collections.clear()
        self._entries.clear()
        self._components.clear()

    # ------------------------------------------------------------------
    # Internal helpers

    def _metadata(self, entries: Mapping[str, ManifestEntry]) -> Dict[str, Any]:
        return {
            "version": MANIFEST_VERSION,
            "generatedAt": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "generatedBy": GENERATED_BY,
            "contentHash": generate_manifest_content_hash(entries),
            "sourceFileHashes": generate_source_file_hashes(entries),
        }

    def _write_page(
        self,
        page_path: str,
        entries: Dict[str, ManifestEntry],
        components: Dict[str, ComponentInstance],
        collection: Optional[CollectionEntry],
    ) -> None:
        target = self.page_manifest_path(page_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "metadata": self._metadata(entries),
            "page": page_path,
            "entries": _serialise(entries),
            "components": _serialise(components),
            "componentDefinitions": _serialise(self.component_definitions),
        }
        if collection is not None:
            payload["collection"] = collection.to_dict()
        target.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def load_manifest(path: Path) -> Optional[Dict[str, Any]]:
    """Previously written manifest, or ``None`` when missing or unreadable."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as exc:
        _LOGGER.warning("Ignoring unreadable manifest %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        return None
    metadata = data.get("metadata")
    if not isinstance(metadata, dict) or metadata.get("version") != MANIFEST_VERSION:
        return None
    return data


def _serialise(items: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value.to_dict() for key, value in items.items()}


__all__ = [
    "GENERATED_BY",
    "MANIFEST_VERSION",
    "ManifestStats",
    "ManifestWriter",
    "load_manifest",
]
