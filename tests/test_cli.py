"""CLI parser and command tests."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from cmsmark.cli import _build_parser, main
from cmsmark.logging import configure_logging
from tests._fixtures.project_builder import ProjectBuilder


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "build", "dist"])
    assert args.verbose is True
    assert args.command == "build"
    assert args.dist == "dist"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["locate", "Hello", "--tag", "h1", "--verbose"])
    assert args.verbose is True
    assert args.command == "locate"
    assert (args.text, args.tag, args.root) == ("Hello", "h1", ".")


def test_cli_verbose_defaults_to_false() -> None:
    args = _build_parser().parse_args(["inject", "src/pages/index.astro"])
    assert args.verbose is False
    assert args.file == "src/pages/index.astro"


def test_cli_quiet_flag_sets_warning_level(
    project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _build_parser().parse_args(["build", "dist"]).quiet is False
    assert _build_parser().parse_args(["build", "dist", "-q"]).quiet is True

    project_builder.write({"src/pages/index.astro": "<h1>Hello</h1>\n"})
    main(["--quiet", "locate", "Hello", "--tag", "h1", "--root", str(project_builder.path())])

    assert logging.getLogger("cmsmark").level == logging.WARNING
    capsys.readouterr()
    configure_logging()


def test_cli_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args([])


def test_locate_prints_location(project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    project_builder.write({"src/pages/index.astro": "<main>\n  <h1>Hello World</h1>\n</main>\n"})

    main(["locate", "Hello World", "--tag", "h1", "--root", str(project_builder.path())])

    location = json.loads(capsys.readouterr().out)
    assert location["file"] == "src/pages/index.astro"
    assert location["line"] == 2


def test_locate_exits_when_not_found(project_builder: ProjectBuilder) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["locate", "Nothing", "--tag", "p", "--root", str(project_builder.path())])
    assert excinfo.value.code == 1


def test_build_reports_summary(project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]) -> None:
    project_builder.write({"dist/index.html": "<p>Hello</p>"})

    main(["build", str(project_builder.path() / "dist"), "--root", str(project_builder.path())])

    assert "Marked 1 pages: 1 entries, 0 components" in capsys.readouterr().out


def test_build_rejects_bad_config(project_builder: ProjectBuilder) -> None:
    project_builder.write({".cmsmark.yml": "- nope\n", "dist/index.html": "<p>x</p>"})

    with pytest.raises(SystemExit) as excinfo:
        main(["build", str(project_builder.path() / "dist"), "--root", str(project_builder.path())])
    assert excinfo.value.code == 1


def test_inject_prints_annotated_template(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    template = tmp_path / "Page.astro"
    template.write_text("<section>\n  <h1>Hi</h1>\n</section>\n", encoding="utf-8")

    main(["inject", str(template)])

    out = capsys.readouterr().out
    assert 'data-astro-source-line="2"' in out
    assert out.endswith("</section>\n")


def test_inject_exits_on_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["inject", str(tmp_path / "missing.astro")])
    assert excinfo.value.code == 1
