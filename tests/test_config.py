"""Tests for cmsmark.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from cmsmark.config import CmsConfig, ConfigError, MarkerOptions, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, CmsConfig)
    assert config.root == tmp_path.resolve()
    assert config.layout.src_dir == "src"
    assert config.marker == MarkerOptions()
    assert config.manifest.enabled is True
    assert config.manifest.file == "cms-manifest.json"
    assert config.layout.index_dirs(config.root) == [
        config.root / "src" / "components",
        config.root / "src" / "pages",
        config.root / "src" / "layouts",
    ]


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".cmsmark.yml"
    config_file.write_text(
        """
layout:
  src_dir: "app/"
  layouts: "shells"
  content: "posts"
marker:
  attribute: "data-edit-id"
  include_tags: "H1, p"
  exclude_tags: [script]
  include_empty_text: "yes"
  mark_components: false
  component_dirs:
    - "app/components"
  exclude_component_dirs: ["app/pages"]
  skip_markdown_content: true
manifest:
  enabled: "off"
  file: "site-manifest.json"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.layout.src_dir == "app"
    assert config.layout.directory(config.root, "layouts") == tmp_path.resolve() / "app" / "shells"
    assert config.marker.attribute_name == "data-edit-id"
    assert config.marker.include_tags == ["h1", "p"]
    assert config.marker.exclude_tags == ["script"]
    assert config.marker.include_empty_text is True
    assert config.marker.mark_components is False
    assert config.marker.mark_styled_spans is True
    assert config.marker.component_dirs == ["app/components"]
    assert config.marker.exclude_component_dirs == ["app/pages"]
    assert config.marker.skip_markdown_content is True
    assert config.marker.content_dir == "app/posts"
    assert config.manifest.enabled is False
    assert config.marker.generate_manifest is False
    assert config.manifest.file == "site-manifest.json"


def test_load_config_ignores_malformed_values(tmp_path: Path) -> None:
    (tmp_path / ".cmsmark.yml").write_text(
        "layout: nope\nmarker:\n  include_empty_text: maybe\n  exclude_tags: 3\n",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.layout.pages == "pages"
    assert config.marker.include_empty_text is False
    assert config.marker.exclude_tags == []


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".cmsmark.yml").write_text("marker: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_requires_mapping_root(tmp_path: Path) -> None:
    (tmp_path / ".cmsmark.yml").write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / ".cmsmark.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).marker.attribute_name == "data-cms-id"
