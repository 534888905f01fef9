"""Command-line interface implementation for the review tooling."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from ..config import ReviewOptions, load_options
from ..errors import CatalogError, ConfigError, RunCancelled
from ..models import Severity
from ..reporting import OUTPUT_FORMATS
from ..rules import CatalogManager
from ..service import ReviewService, RunResult, run as run_review


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="heuristic-review", description="Apply heuristic rule catalogs to source files."
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )
    subparsers = parser.add_subparsers(dest="command")

    review_parser = subparsers.add_parser(
        "review", help="Review source files and report severity-ranked findings."
    )
    review_parser.add_argument(
        "paths",
        type=Path,
        nargs="+",
        metavar="PATH",
        help="Source files to review. Paths are used as given; directories are not expanded.",
    )
    review_parser.add_argument(
        "--catalog",
        dest="catalogs",
        action="append",
        default=None,
        metavar="ID",
        help="Catalog identifier (name or name@version). Defaults to every enabled catalog.",
    )
    review_parser.add_argument(
        "--force-catalog",
        dest="force_catalogs",
        action="append",
        default=None,
        metavar="ID",
        help="Apply this catalog to every file regardless of detected imports.",
    )
    review_parser.add_argument(
        "--manifest",
        dest="manifests",
        action="append",
        type=Path,
        default=None,
        help="Additional catalog manifest YAML file describing available catalogs.",
    )
    review_parser.add_argument(
        "--options",
        dest="options_file",
        type=Path,
        default=None,
        help="YAML file with review options; command-line flags take precedence.",
    )
    review_parser.add_argument(
        "--format",
        choices=list(OUTPUT_FORMATS),
        default=None,
        help="Output format for review results (default: structured).",
    )
    review_parser.add_argument(
        "--fail-on",
        choices=[severity.value for severity in Severity],
        default=None,
        help="Fail the run when findings at or above the provided severity are present (default: fail).",
    )
    review_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of files reviewed concurrently.",
    )
    review_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed for reviewing a single file before it is skipped.",
    )

    catalogs_parser = subparsers.add_parser("catalogs", help="List available catalogs and their rules.")
    catalogs_parser.add_argument(
        "--manifest",
        dest="manifests",
        action="append",
        type=Path,
        default=None,
        help="Additional catalog manifest YAML file describing available catalogs.",
    )
    for sub in subparsers.choices.values():
        sub.add_argument(
            "-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help=argparse.SUPPRESS
        )

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def create_service() -> ReviewService:
    """Create a review service using the packaged catalog manifest."""

    return ReviewService(catalog_manager=CatalogManager())


def _build_options(args: argparse.Namespace) -> ReviewOptions:
    base = load_options(args.options_file) if args.options_file else ReviewOptions()
    return base.with_overrides(
        force_catalogs=tuple(args.force_catalogs) if args.force_catalogs else None,
        output_format=args.format,
        fail_on=args.fail_on,
        max_workers=args.workers,
        unit_timeout=args.timeout,
    )


def _handle_review(args: argparse.Namespace) -> int:
    try:
        options = _build_options(args)
        result: RunResult = run_review(
            args.paths,
            args.catalogs,
            options,
            manifests=args.manifests,
            service=create_service(),
        )
    except (CatalogError, ConfigError, RunCancelled) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    print(result.output)
    return result.exit_code


def _handle_catalogs(args: argparse.Namespace) -> int:
    try:
        catalogs = CatalogManager().load(manifests=args.manifests)
    except CatalogError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    for catalog in catalogs:
        triggers = ", ".join(sorted(catalog.trigger_signatures)) or "-"
        print(f"{catalog.identifier}  ({len(catalog)} rules; triggers: {triggers})")
        for rule in sorted(catalog.rules, key=lambda rule: rule.id):
            print(f"  {rule.id}  {rule.severity.value:<4}  {rule.title}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(getattr(args, "verbose", False))

    if args.command == "review":
        return _handle_review(args)
    if args.command == "catalogs":
        return _handle_catalogs(args)

    parser.print_help()
    return 0


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
