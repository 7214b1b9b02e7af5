"""Command-line interface: ``sprintdoc FILE [options]``."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.logging import RichHandler

from sprintdoc.config import ParserConfig, parse_pairs
from sprintdoc.errors import ConfigError, SprintDocError
from sprintdoc.parser import get_assignments_for_engineer, parse_document
from sprintdoc.reporter import (
    MarkdownReportRenderer,
    find_engineer,
    print_document_summary,
    print_engineer_tasks,
    summarize_by_engineer,
    summarize_document,
)
from sprintdoc.utils import (
    console,
    err_console,
    print_error,
    print_summary_table,
    print_success,
    print_warning,
    read_document,
    to_json,
    write_text,
)

logger = logging.getLogger("sprintdoc")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sprintdoc",
        description="Extract engineer assignments from a sprint-planning document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  sprintdoc sprint-42.html\n"
            "  sprintdoc sprint-42.html --engineer AnhL --format markdown -o anhl.md\n"
            "  sprintdoc sprint-42.txt --roster Android=Hung,iOS=Hai --format json\n"
        ),
    )
    parser.add_argument("document", help="Path to the sprint document (HTML or plain text)")
    parser.add_argument("--engineer", "-e", default=None, help="Only report this engineer")
    parser.add_argument(
        "--config", "-c", default=None,
        help="Config file (JSON or YAML); defaults to SPRINTDOC_* environment variables",
    )
    parser.add_argument(
        "--roster", default=None,
        help="Platform -> engineer defaults, e.g. 'Android=Hung,iOS=Hai'",
    )
    parser.add_argument("--tracker-url", default=None, help="Issue tracker base URL for links")
    parser.add_argument(
        "--today", default=None,
        help="Reference date (YYYY-MM-DD) for dates written without a year",
    )
    parser.add_argument(
        "--format", "-f", choices=("table", "json", "markdown"), default="table",
        help="Output format (default: table)",
    )
    parser.add_argument("--output", "-o", default=None, help="Write the report to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config(args: argparse.Namespace) -> ParserConfig:
    config = ParserConfig.load(Path(args.config)) if args.config else ParserConfig.from_env()
    updates: dict[str, object] = {}
    if args.roster:
        updates["roster"] = {**config.roster, **parse_pairs(args.roster)}
    if args.tracker_url:
        updates["tracker_base_url"] = args.tracker_url
    if updates:
        try:
            config = ParserConfig.model_validate({**config.model_dump(), **updates})
        except ValidationError as exc:
            raise ConfigError(f"Invalid command-line settings: {exc}") from exc
    return config


def _reference_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise SprintDocError(f"Invalid --today value {value!r}; expected YYYY-MM-DD") from exc


def _emit(content: str, output: Optional[str]) -> None:
    if output:
        path = write_text(content, output)
        print_success(f"Report written to {path}")
    else:
        console.print(content, markup=False, highlight=False, soft_wrap=True)


def run(args: argparse.Namespace) -> int:
    """Execute one CLI invocation; returns the process exit code."""
    config = _load_config(args)
    today = _reference_date(args.today)
    markup = read_document(args.document)
    logger.debug("Read %d characters from %s", len(markup), args.document)

    result = parse_document(markup, config, reference_date=today)
    if not result.success:
        print_error(f"Error: {result.error}")
        return 1

    if args.engineer:
        summary = find_engineer(summarize_by_engineer(result.assignments, config), args.engineer)
        if args.format == "json":
            buckets = get_assignments_for_engineer(markup, args.engineer, config, reference_date=today)
            _emit(to_json(buckets.model_dump(mode="json", by_alias=True)), args.output)
        elif summary is None:
            print_warning(f"No assignments found for {args.engineer}")
        elif args.format == "markdown":
            _emit(MarkdownReportRenderer().render_engineer(summary), args.output)
        else:
            buckets = get_assignments_for_engineer(markup, args.engineer, config, reference_date=today)
            print_engineer_tasks(summary)
            print_summary_table(
                {
                    "As PIC": len(buckets.as_pic),
                    "As support": len(buckets.as_support),
                    "Techdebt": len(buckets.techdebt),
                },
                title=f"{summary.engineer} by bucket",
            )
        return 0

    if args.format == "json":
        _emit(to_json(result.model_dump(mode="json", by_alias=True)), args.output)
    elif args.format == "markdown":
        _emit(MarkdownReportRenderer().render_document(summarize_document(result, config)), args.output)
    else:
        print_document_summary(summarize_document(result, config))
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``sprintdoc`` / ``python -m sprintdoc.cli``."""
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    try:
        code = run(args)
    except (SprintDocError, FileNotFoundError) as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
