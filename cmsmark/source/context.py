"""Per-build state shared by the source-lookup functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from ..config import ProjectLayout
from ..logging import get_logger
from ..models import ImageIndexEntry, SearchIndexEntry, VariableDefinition

if TYPE_CHECKING:  # pragma: no cover
    from .parser import ParsedFile

_LOGGER = get_logger("source.context")

TEMPLATE_SUFFIXES = (".astro", ".tsx", ".jsx")


@dataclass
class BuildContext:
    """Caches populated lazily during one build and cleared before the next.

    The parsed-file cache is keyed by absolute path, the directory cache by
    directory. Lookups run one at a time, so none of this is locked.
    """

    root: Path
    layout: ProjectLayout = field(default_factory=ProjectLayout)
    parsed_files: Dict[Path, "ParsedFile"] = field(default_factory=dict)
    directories: Dict[Path, List[Path]] = field(default_factory=dict)
    exports: Dict[Path, List[VariableDefinition]] = field(default_factory=dict)
    text_index: List[SearchIndexEntry] = field(default_factory=list)
    image_index: List[ImageIndexEntry] = field(default_factory=list)
    index_ready: bool = False

    def __post_init__(self) -> None:
        self.root = Path(self.root).resolve()

    def reset(self) -> None:
        _LOGGER.debug(
            "Resetting build context (%d parsed files, %d index entries)",
            len(self.parsed_files),
            len(self.text_index),
        )
        self.parsed_files.clear()
        self.directories.clear()
        self.exports.clear()
        self.text_index.clear()
        self.image_index.clear()
        self.index_ready = False

    def relative(self, path: Path) -> str:
        """Project-relative POSIX path, or the absolute path for files outside the root."""
        try:
            return path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    def search_dirs(self) -> List[Path]:
        return self.layout.search_dirs(self.root)

    def index_dirs(self) -> List[Path]:
        return self.layout.index_dirs(self.root)

    def collect_template_files(self, directory: Path) -> List[Path]:
        """Template files under ``directory`` (recursive, sorted), cached per build."""
        directory = directory.resolve()
        cached = self.directories.get(directory)
        if cached is not None:
            return cached
        files: List[Path] = []
        if directory.is_dir():
            files = sorted(
                path
                for path in directory.rglob("*")
                if path.suffix in TEMPLATE_SUFFIXES and path.is_file()
            )
        self.directories[directory] = files
        return files

    def find_component_file(self, component_name: str) -> Optional[Path]:
        for directory in self.search_dirs():
            for path in self.collect_template_files(directory):
                if path.suffix == ".astro" and path.stem == component_name:
                    return path
        return None


__all__ = ["BuildContext", "TEMPLATE_SUFFIXES"]
