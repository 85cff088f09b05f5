"""Content marking of rendered HTML and manifest output."""

from .components import ComponentRegistry
from .html import ProcessResult, process_html, sequential_ids
from .manifest import ManifestWriter, load_manifest
from .transform import inject_source_attributes

__all__ = [
    "ComponentRegistry",
    "ManifestWriter",
    "ProcessResult",
    "inject_source_attributes",
    "load_manifest",
    "process_html",
    "sequential_ids",
]
