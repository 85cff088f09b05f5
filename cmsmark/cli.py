"""CLI entrypoints for cmsmark commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .logging import configure_logging
from .marker.transform import inject_source_attributes
from .processor import BuildProcessor
from .source.context import BuildContext
from .source.resolver import SourceResolver
from .template.markup import MarkupParseError


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Log debug output, including skipped templates.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_quiet_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Only log warnings and errors.",
    )


def _add_root_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root",
        default=".",
        help="Project root holding .cmsmark.yml and src/ (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmsmark",
        description="Mark rendered pages with CMS ids and trace content back to its template.",
    )
    _add_verbose_option(parser)
    _add_quiet_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Mark every HTML page of a build output and write manifests.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_quiet_option(build_parser, suppress_default=True)
    _add_root_option(build_parser)
    build_parser.add_argument("dist", help="Build output directory containing HTML pages.")

    locate_parser = subparsers.add_parser(
        "locate",
        help="Print the template location that renders a piece of text.",
    )
    _add_verbose_option(locate_parser, suppress_default=True)
    _add_quiet_option(locate_parser, suppress_default=True)
    _add_root_option(locate_parser)
    locate_parser.add_argument("text", help="Rendered text to look up.")
    locate_parser.add_argument("--tag", required=True, help="Tag of the rendered element (h1, p, ...).")

    inject_parser = subparsers.add_parser(
        "inject",
        help="Print a template with source file/line attributes on its elements.",
    )
    _add_verbose_option(inject_parser, suppress_default=True)
    _add_quiet_option(inject_parser, suppress_default=True)
    inject_parser.add_argument("file", help="Template file to annotate.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for cmsmark commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(getattr(args, "verbose", False)),
        quiet=bool(getattr(args, "quiet", False)),
    )

    if args.command == "build":
        try:
            config = load_config(Path(args.root))
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
        dist = Path(args.dist)
        if not dist.is_dir():
            parser.exit(1, f"Build output directory not found: {dist}\n")
        report = BuildProcessor(config).process(dist)
        print(
            f"Marked {report.pages} pages: {report.entries} entries, "
            f"{report.components} components"
        )
        if report.errors:
            parser.exit(1, f"{len(report.errors)} page(s) failed; run with --verbose for details.\n")
    elif args.command == "locate":
        try:
            config = load_config(Path(args.root))
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
        resolver = SourceResolver(BuildContext(config.root, layout=config.layout))
        location = resolver.resolve_source_location(args.text, args.tag)
        if location is None:
            parser.exit(1, f"No source found for <{args.tag}> {args.text!r}\n")
        print(json.dumps(location.to_dict(), indent=2))
    elif args.command == "inject":
        path = Path(args.file)
        try:
            code = path.read_text(encoding="utf-8")
            print(inject_source_attributes(code, _relativize(path)), end="")
        except (OSError, UnicodeDecodeError) as exc:
            parser.exit(1, f"Cannot read {path}: {exc}\n")
        except MarkupParseError as exc:
            parser.exit(1, f"Cannot parse {path}: {exc}\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return path.resolve().relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


if __name__ == "__main__":
    main(sys.argv[1:])
