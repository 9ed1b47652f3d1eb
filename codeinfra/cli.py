"""CLI entrypoints for codeinfra commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import re
import sys
from datetime import date
from pathlib import Path

import httpx
import soupsieve

from .changelog import ChangelogGenerator
from .config import load_changelog_config
from .errors import ConfigError
from .links import CrawlOptions, crawl
from .links.models import LinkStructure
from .links.parser import links_selector
from .links.targets import read_link_structure
from .logging import configure_logging

DEFAULT_CONFIG = Path(".changelog.yml")


def _add_logging_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    # Subcommand copies must not overwrite a value given before the subcommand.
    verbose_default: object = argparse.SUPPRESS if suppress_default else False
    log_file_default: object = argparse.SUPPRESS if suppress_default else None
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=verbose_default,
        help="Log debug output, including HTTP requests.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=log_file_default,
        help="Also write the log to this file.",
    )


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from exc


def _regex(value: str) -> re.Pattern:
    try:
        return re.compile(value)
    except re.error as exc:
        raise argparse.ArgumentTypeError(f"invalid regular expression {value!r}: {exc}") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeinfra",
        description="Release-notes generation and broken-link checks for the monorepo.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    changelog_parser = subparsers.add_parser(
        "changelog",
        help="Generate release notes from the pull requests merged since the last release.",
    )
    _add_logging_options(changelog_parser, suppress_default=True)
    changelog_parser.add_argument("--repo", required=True, help="Repository name, e.g. material-ui.")
    changelog_parser.add_argument("--org", default="mui", help="GitHub organization (default: mui).")
    changelog_parser.add_argument(
        "--last-release",
        help="Ref of the previous release (defaults to the latest v* tag).",
    )
    changelog_parser.add_argument("--release", required=True, help="Ref of the new release.")
    changelog_parser.add_argument("--version", required=True, help="Version being released.")
    changelog_parser.add_argument(
        "--date", type=_iso_date, help="Release date as YYYY-MM-DD (defaults to today)."
    )
    changelog_parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Changelog configuration file (default: .changelog.yml).",
    )
    changelog_parser.add_argument(
        "--output", type=Path, help="Write the changelog to this file instead of stdout."
    )
    changelog_parser.add_argument(
        "--cwd", type=Path, default=Path("."), help="Repository checkout used for git and pnpm."
    )

    links_parser = subparsers.add_parser(
        "broken-links",
        help="Crawl a documentation site and report broken links and anchors.",
    )
    _add_logging_options(links_parser, suppress_default=True)
    links_parser.add_argument("--host", required=True, help="Base URL, e.g. http://localhost:3000.")
    links_parser.add_argument(
        "--start-command", help="Shell command that starts the site before crawling."
    )
    links_parser.add_argument("--out-path", type=Path, help="Write discovered targets as JSON.")
    links_parser.add_argument(
        "--ignored-path",
        dest="ignored_paths",
        action="append",
        type=_regex,
        default=[],
        help="Regular expression of page paths to skip (repeatable).",
    )
    links_parser.add_argument(
        "--ignored-content",
        action="append",
        default=[],
        help="CSS selector whose nested links are ignored (repeatable).",
    )
    links_parser.add_argument(
        "--ignored-target",
        dest="ignored_targets",
        action="append",
        help="Element id never reported as a link target (repeatable).",
    )
    links_parser.add_argument(
        "--known-targets",
        dest="known_targets_files",
        action="append",
        type=Path,
        default=[],
        help="Local known-targets JSON file (repeatable).",
    )
    links_parser.add_argument(
        "--known-targets-url",
        dest="known_targets_urls",
        action="append",
        default=[],
        help="URL of a known-targets JSON file to download (repeatable).",
    )
    links_parser.add_argument(
        "--concurrency", type=int, default=4, help="Number of pages fetched in parallel."
    )
    links_parser.add_argument(
        "--seed",
        dest="seeds",
        action="append",
        help="Starting URL path (repeatable, defaults to /).",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_logging_options(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codeinfra commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "changelog":
        _run_changelog(parser, args)
    elif args.command == "broken-links":
        _run_broken_links(parser, args)
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_changelog(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        config = load_changelog_config(args.config)
        result = ChangelogGenerator().run(
            config,
            repo=args.repo,
            org=args.org,
            last_release=args.last_release,
            release=args.release,
            version=args.version,
            release_date=args.date,
            cwd=args.cwd,
        )
    except ConfigError as exc:
        parser.exit(1, f"Invalid changelog configuration: {exc}\n")
    except RuntimeError as exc:
        parser.exit(1, f"codeinfra changelog failed: {exc}\nRun with --verbose for more details.\n")

    if args.output:
        args.output.write_text(result.markdown + "\n", encoding="utf-8")
        print(f"Changelog written to {_relativize(args.output)}")
    else:
        print(result.markdown)


def _run_broken_links(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    options = CrawlOptions(
        host=args.host,
        start_command=args.start_command,
        out_path=args.out_path,
        ignored_paths=args.ignored_paths,
        ignored_content=args.ignored_content,
        known_targets_download_url=args.known_targets_urls,
        concurrency=args.concurrency,
    )
    if args.ignored_targets:
        options.ignored_targets = set(args.ignored_targets)
    if args.seeds:
        options.seed_urls = args.seeds
    try:
        soupsieve.compile(links_selector(options.ignored_content))
    except soupsieve.SelectorSyntaxError as exc:
        parser.exit(1, f"Invalid --ignored-content selector: {exc}\n")
    try:
        for path in args.known_targets_files:
            options.known_targets.update(_read_targets_file(path))
    except (OSError, ValueError) as exc:
        parser.exit(1, f"Could not read known targets: {exc}\n")

    try:
        result = asyncio.run(crawl(options))
    except (RuntimeError, OSError, ValueError, httpx.HTTPError) as exc:
        parser.exit(1, f"codeinfra broken-links failed: {exc}\n")

    if result.issues:
        parser.exit(1, f"Found {len(result.issues)} broken link(s).\n")
    print(f"No broken links found across {len(result.pages)} page(s).")


def _read_targets_file(path: Path) -> LinkStructure:
    return read_link_structure(json.loads(path.read_text(encoding="utf-8")))


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
