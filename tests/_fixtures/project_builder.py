"""Helper utilities for constructing temporary site projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from cmsmark.config import CmsConfig, load_config
from cmsmark.source.context import BuildContext


class ProjectBuilder:
    """Utility for writing template and build files into a throwaway project."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def read(self, relative: str) -> str:
        return (self.root / relative).read_text(encoding="utf-8")

    def context(self) -> BuildContext:
        """Return a fresh build context rooted at the project."""
        return BuildContext(self.root)

    def config(self) -> CmsConfig:
        return load_config(self.root)

    def path(self) -> Path:
        """Return the project root path."""
        return self.root


__all__ = ["ProjectBuilder"]
