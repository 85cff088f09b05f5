"""Content hashes used for stable ids and drift detection between builds."""

from __future__ import annotations

import hashlib
from typing import Dict, List, Mapping, Optional

from ..models import ManifestEntry

STABLE_ID_LENGTH = 12
STABLE_TEXT_PREFIX = 50


def sha256(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def generate_stable_id(tag: str, text: str, source_path: Optional[str] = None) -> str:
    """Id that survives rebuilds while tag, text prefix and source file stay the same."""
    parts = [tag, text[:STABLE_TEXT_PREFIX].strip(), source_path or ""]
    return sha256("|".join(parts))[:STABLE_ID_LENGTH]


def generate_source_hash(snippet: str) -> str:
    return sha256(snippet)


def generate_manifest_content_hash(entries: Mapping[str, ManifestEntry]) -> str:
    """Hash of every entry's content fields, independent of insertion order."""
    content = "\n".join(
        f"{entry.tag}|{entry.text}|{entry.html or ''}|{entry.source_path or ''}"
        for entry in (entries[key] for key in sorted(entries))
    )
    return sha256(content)


def generate_source_file_hashes(entries: Mapping[str, ManifestEntry]) -> Dict[str, str]:
    """One hash per source file over its entries ordered by line."""
    grouped: Dict[str, List[ManifestEntry]] = {}
    for entry in entries.values():
        if entry.source_path:
            grouped.setdefault(entry.source_path, []).append(entry)
    hashes: Dict[str, str] = {}
    for path, items in grouped.items():
        items.sort(key=lambda entry: entry.source_line or 0)
        content = "\n".join(
            f"{entry.source_line or 0}|{entry.text}|{entry.source_snippet or ''}" for entry in items
        )
        hashes[path] = sha256(content)
    return hashes


__all__ = [
    "generate_manifest_content_hash",
    "generate_source_file_hashes",
    "generate_source_hash",
    "generate_stable_id",
    "sha256",
]
