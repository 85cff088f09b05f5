"""Configuration loading for cmsmark (.cmsmark.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".cmsmark.yml"

DEFAULT_EXCLUDE_TAGS = ["html", "head", "body", "script", "style"]
DEFAULT_COMPONENT_DIRS = ["src/components"]
DEFAULT_EXCLUDE_COMPONENT_DIRS = ["src/pages", "src/layouts", "src/layout"]


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ProjectLayout:
    """Directory names searched for template sources, relative to the project root."""

    src_dir: str = "src"
    components: str = "components"
    pages: str = "pages"
    layouts: str = "layouts"
    content: str = "content"

    def directory(self, root: Path, name: str) -> Path:
        return root / self.src_dir / getattr(self, name)

    def search_dirs(self, root: Path) -> List[Path]:
        """Directories scanned when following props across files."""
        return [self.directory(root, key) for key in ("pages", "components", "layouts")]

    def index_dirs(self, root: Path) -> List[Path]:
        """Directories scanned when building the search index."""
        return [self.directory(root, key) for key in ("components", "pages", "layouts")]


@dataclass
class MarkerOptions:
    """Settings for the content marker."""

    attribute_name: str = "data-cms-id"
    include_tags: Optional[List[str]] = None
    exclude_tags: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_TAGS))
    include_empty_text: bool = False
    generate_manifest: bool = True
    mark_components: bool = True
    component_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_COMPONENT_DIRS))
    exclude_component_dirs: List[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_COMPONENT_DIRS)
    )
    mark_styled_spans: bool = True
    skip_markdown_content: bool = False
    content_dir: str = "src/content"


@dataclass
class ManifestConfig:
    """Where and whether manifests are written."""

    enabled: bool = True
    file: str = "cms-manifest.json"


@dataclass
class CmsConfig:
    """Represents the settings defined in .cmsmark.yml."""

    root: Path
    layout: ProjectLayout = field(default_factory=ProjectLayout)
    marker: MarkerOptions = field(default_factory=MarkerOptions)
    manifest: ManifestConfig = field(default_factory=ManifestConfig)


def load_config(config_path: Path) -> CmsConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CmsConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    layout = ProjectLayout()
    layout_data = _as_dict(data.get("layout"))
    for key in ("src_dir", "components", "pages", "layouts", "content"):
        value = _as_str(layout_data.get(key))
        if value:
            setattr(layout, key, value.strip("/"))

    marker = MarkerOptions(content_dir=f"{layout.src_dir}/{layout.content}")
    marker_data = _as_dict(data.get("marker"))
    if marker_data:
        attribute = _as_str(marker_data.get("attribute"))
        if attribute:
            marker.attribute_name = attribute
        if "include_tags" in marker_data:
            include = _as_str_list(marker_data.get("include_tags"))
            marker.include_tags = [tag.lower() for tag in include] or None
        if "exclude_tags" in marker_data:
            marker.exclude_tags = [tag.lower() for tag in _as_str_list(marker_data.get("exclude_tags"))]
        if "component_dirs" in marker_data:
            marker.component_dirs = _as_str_list(marker_data.get("component_dirs"))
        if "exclude_component_dirs" in marker_data:
            marker.exclude_component_dirs = _as_str_list(marker_data.get("exclude_component_dirs"))
        for flag in (
            "include_empty_text",
            "mark_components",
            "mark_styled_spans",
            "skip_markdown_content",
        ):
            value = _as_bool(marker_data.get(flag))
            if value is not None:
                setattr(marker, flag, value)

    manifest = ManifestConfig()
    manifest_data = _as_dict(data.get("manifest"))
    if manifest_data:
        enabled = _as_bool(manifest_data.get("enabled"))
        if enabled is not None:
            manifest.enabled = enabled
        manifest.file = _as_str(manifest_data.get("file")) or manifest.file
    marker.generate_manifest = manifest.enabled

    return CmsConfig(root=root, layout=layout, marker=marker, manifest=manifest)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CmsConfig",
    "ConfigError",
    "ManifestConfig",
    "MarkerOptions",
    "ProjectLayout",
    "load_config",
]
