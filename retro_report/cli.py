"""CLI entry point for the audio retro report.

Orchestrates the full pipeline: file discovery, region table loading,
exchange rate lookup, aggregation, rendering, QA validation, and
optional publishing to Confluence.

Usage::

    # Build the report for a folder of exports and print it
    python -m retro_report.cli report data/2025-08/ --regions data/regions.csv

    # Use the region tab of a Google Sheet and write to a file
    python -m retro_report.cli report data/2025-08/ \\
        --config config/report.yaml \\
        --output output/2025-08.txt

    # Also publish the report as a Confluence page
    python -m retro_report.cli report data/2025-08/ \\
        --config config/report.yaml \\
        --publish --page-title "Audio Monthly Retro - August 2025"

    # Show how a CSV's columns are resolved
    python -m retro_report.cli inspect data/2025-08/podscribe.csv

    # QA-check a saved report
    python -m retro_report.cli validate output/2025-08.txt

    # Print the exchange rate a run would use
    python -m retro_report.cli rate
"""

import argparse
import logging
import sys
from dataclasses import fields
from pathlib import Path

from retro_report.connectors.confluence import ConfluenceClient, publish_report
from retro_report.connectors.files import list_folder, read_table_csv, read_text
from retro_report.errors import ConfigurationError
from retro_report.generator.report import ReportRenderer, render_raw_files
from retro_report.processor.aggregate import SpendAggregator
from retro_report.processor.currency import CurrencyConverter, RateClient
from retro_report.processor.ingestion import (
    classify_files,
    read_csv_rows,
    resolve_columns,
)
from retro_report.processor.regions import build_region_map
from retro_report.qa.validator import ReportValidator
from retro_report.schema.loader import load_config
from retro_report.schema.models import UNRESOLVED


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------

class StageError(Exception):
    """A fatal failure, tagged with the pipeline stage it happened in."""

    def __init__(self, stage, message):
        super().__init__(message)
        self.stage = stage


def _load_config(args):
    try:
        return load_config(getattr(args, "config", None))
    except ConfigurationError as exc:
        raise StageError("config", str(exc)) from exc


def _renderer(config):
    return ReportRenderer(
        title=config.title,
        source_currency=config.source_currency,
        target_currency=config.target_currency,
        source_symbol=config.source_symbol,
        target_symbol=config.target_symbol,
    )


def _converter(config, offline=False):
    client = None if offline else RateClient(config.rate_service)
    return CurrencyConverter(
        client=client,
        fallback_rate=config.fallback_rate,
        source=config.source_currency,
        target=config.target_currency,
    )


def _load_region_map(args, config):
    """Region map from --regions (local CSV) or the configured sheet tab."""
    try:
        if args.regions:
            _info(f"Reading region table from {args.regions}")
            table = read_table_csv(args.regions)
        else:
            # Imported here so local runs do not need Google credentials
            from retro_report.connectors.sheets import SheetsClient
            sheet = config.region_sheet
            _info(f"Reading region table from sheet tab '{sheet.tab_name}'")
            table = SheetsClient().read_table(sheet.spreadsheet_id, sheet.tab_name)
        return build_region_map(table)
    except ConfigurationError as exc:
        raise StageError("regions", str(exc)) from exc


def _select_files(args, config):
    try:
        files = list_folder(args.folder)
    except ConfigurationError as exc:
        raise StageError("files", str(exc)) from exc
    selection = classify_files(files, config.vendor_keyword)
    if selection.metrics is None:
        raise StageError(
            "files",
            f"No CSV with impression/visitor or geo/spend columns in {args.folder}",
        )
    _info(f"Metrics file: {selection.metrics.name}")
    return selection


def build_report(args, config):
    """Run the pipeline and return ``(text, snapshot, renderer)``."""
    selection = _select_files(args, config)
    region_map = _load_region_map(args, config)
    _info(f"Region map: {len(region_map)} code(s)")

    converter = _converter(config, offline=args.offline)
    rate = converter.rate()
    source = "fallback" if converter.cache.from_fallback else "rate service"
    _info(f"{config.source_currency} to {config.target_currency} rate: {rate} ({source})")

    aggregator = SpendAggregator(region_map, converter)
    try:
        header, rows = read_csv_rows(selection.metrics.content, selection.metrics.name)
    except ConfigurationError as exc:
        raise StageError("aggregate", str(exc)) from exc
    if not header:
        raise StageError("aggregate", f"{selection.metrics.name} is empty")
    aggregator.ingest_table(header, rows, source_name=selection.metrics.name)
    snapshot = aggregator.snapshot()
    _info(f"Rows: {snapshot.rows_ingested} ingested, {snapshot.rows_skipped} skipped")

    renderer = _renderer(config)
    text = renderer.render(snapshot)
    if args.include_others and selection.others:
        text = text + "\n\n" + render_raw_files(selection.others, config.raw_appendix_limit)
    return text, snapshot, renderer


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_report(args):
    """Build the report, QA it, then write and optionally publish it."""
    config = _load_config(args)
    client = None
    if args.publish:
        if not args.page_title:
            raise StageError("publish", "--publish requires --page-title")
        try:
            client = ConfluenceClient(config.confluence)
        except ConfigurationError as exc:
            raise StageError("publish", str(exc)) from exc

    text, snapshot, renderer = build_report(args, config)

    if not args.skip_qa:
        qa_result = ReportValidator(renderer).validate(text, snapshot)
        if qa_result.passed:
            _info(qa_result.summary())
        else:
            _warn(qa_result.summary())
            if args.verbose:
                print(qa_result.report(), file=sys.stderr)
            if not args.force:
                raise StageError(
                    "qa",
                    "QA validation failed. Use --force to write anyway, "
                    "or --skip-qa to skip validation.",
                )
    else:
        _info("QA validation skipped (--skip-qa)")

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        _info(f"Written: {output} ({len(text):,} characters)")
    else:
        sys.stdout.write(text)

    if client is not None:
        try:
            url = publish_report(client, args.page_title, text)
        except (ValueError, RuntimeError) as exc:
            raise StageError("publish", str(exc)) from exc
        if url:
            _info(f"Published: {url}")
        else:
            _warn(f"Page '{args.page_title}' already exists; not published")


def cmd_inspect(args):
    """Show how a CSV's header resolves to column roles."""
    path = Path(args.csv)
    if not path.exists():
        raise StageError("inspect", f"CSV file not found: {path}")
    try:
        header, rows = read_csv_rows(read_text(path), path.name)
    except ConfigurationError as exc:
        raise StageError("inspect", str(exc)) from exc
    index = resolve_columns(header)

    print(f"File:    {path.name}")
    print(f"Columns: {len(header)}")
    print(f"Rows:    {len(rows)}")
    print()
    for f in fields(index):
        idx = getattr(index, f.name)
        name = header[idx] if idx != UNRESOLVED else "(not found)"
        print(f"  {f.name:<12} {idx:>3}  {name}")

    missing = index.missing()
    if missing:
        print()
        print(f"Missing: {', '.join(missing)}")


def cmd_validate(args):
    """QA-check a saved report file."""
    config = _load_config(args)
    path = Path(args.report_file)
    if not path.exists():
        raise StageError("validate", f"Report file not found: {path}")

    _info(f"Validating {path}")
    qa_result = ReportValidator(_renderer(config)).validate(
        path.read_text(encoding="utf-8")
    )
    print(qa_result.report())
    sys.exit(0 if qa_result.passed else 1)


def cmd_rate(args):
    """Print the exchange rate a run would use."""
    config = _load_config(args)
    converter = _converter(config, offline=args.offline)
    rate = converter.rate()
    source = "fallback" if converter.cache.from_fallback else "rate service"
    print(f"{config.source_currency} -> {config.target_currency}: {rate} ({source})")


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="retro-report",
        description="Aggregate podcast ad spend exports into a performance report.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- report ----
    rep = subparsers.add_parser(
        "report",
        help="Build the performance report for a folder of CSV exports.",
    )
    rep.add_argument(
        "folder",
        help="Folder holding the month's CSV exports.",
    )
    _add_common_args(rep)
    rep.add_argument(
        "--regions",
        help="Local CSV with 2-ISO and Region columns "
             "(default: the configured Google Sheet tab).",
    )
    rep.add_argument(
        "-o", "--output",
        help="Output file path (default: stdout).",
    )
    rep.add_argument(
        "--include-others",
        action="store_true",
        default=False,
        help="Append the folder's other CSV files verbatim.",
    )
    rep.add_argument(
        "--offline",
        action="store_true",
        default=False,
        help="Do not call the rate service; use the fallback rate.",
    )
    rep.add_argument(
        "--skip-qa",
        action="store_true",
        default=False,
        help="Skip QA validation of the rendered report.",
    )
    rep.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Write output even if QA validation fails.",
    )
    rep.add_argument(
        "--publish",
        action="store_true",
        default=False,
        help="Publish the report as a Confluence page.",
    )
    rep.add_argument(
        "--page-title",
        help="Confluence page title (required with --publish).",
    )
    rep.set_defaults(func=cmd_report)

    # ---- inspect ----
    insp = subparsers.add_parser(
        "inspect",
        help="Show how a CSV's columns resolve to metric roles.",
    )
    insp.add_argument("csv", help="Path to a CSV export.")
    _add_common_args(insp)
    insp.set_defaults(func=cmd_inspect)

    # ---- validate ----
    val = subparsers.add_parser(
        "validate",
        help="QA-check a saved report file.",
    )
    val.add_argument("report_file", help="Path to a rendered report.")
    _add_common_args(val)
    val.set_defaults(func=cmd_validate)

    # ---- rate ----
    rate = subparsers.add_parser(
        "rate",
        help="Print the exchange rate a run would use.",
    )
    _add_common_args(rate)
    rate.add_argument(
        "--offline",
        action="store_true",
        default=False,
        help="Do not call the rate service; use the fallback rate.",
    )
    rate.set_defaults(func=cmd_rate)

    return parser


def _add_common_args(parser):
    """Add --config / --verbose args to a subparser."""
    parser.add_argument(
        "-c", "--config",
        help="Path to a YAML run configuration (default: built-in defaults).",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Show debug logging and the full QA report on failure.",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except StageError as exc:
        _error(f"{exc.stage}: {exc}")


if __name__ == "__main__":
    main()
