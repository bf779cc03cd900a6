"""Command-line entry point: ``readiness report|convert|demo``."""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from readiness.adapters.apple_health import parse_export, write_export
from readiness.core.config import get_settings
from readiness.core.exceptions import ImportFormatError, ReadinessError
from readiness.models.daily import DailyExport, DailyRecord
from readiness.observability import configure_logging
from readiness.services.demo_data import generate_demo_health_data
from readiness.services.engine import ReadinessEngine, ReadinessReport

logger = logging.getLogger(__name__)

_record_list = TypeAdapter(list[DailyRecord])


def load_records(path: Path) -> list[DailyRecord]:
    """Load ``{"daily": [...]}`` or a bare JSON list of daily records."""
    try:
        raw = path.read_text()
    except OSError as e:
        raise ImportFormatError(f"Cannot read {path}: {e}") from e

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"{path} is not valid JSON: {e}") from e

    if isinstance(payload, list):
        return _record_list.validate_python(payload)
    return DailyExport.model_validate(payload).daily


def render_text(report: ReadinessReport) -> str:
    readiness = f"{report.readiness}%" if report.readiness is not None else "--"
    change = f" ({report.change:+d}%)" if report.change else ""

    lines = [
        f"Readiness: {readiness}{change}  [{report.mode}]",
        report.status,
    ]
    if report.limiting_factor:
        lines.append(f"Limiting factor: {report.limiting_factor}")
    if report.trend_caption:
        lines.append(report.trend_caption)
    lines.append("")
    for insight in report.insights:
        lines.append(f"[{insight.kind.value}] {insight.text}")
    if report.weekly_summary and report.weekly_summary.reliability:
        lines.append("")
        lines.append(report.weekly_summary.reliability.text)
    return "\n".join(lines)


def _parse_moment(value: Optional[str]) -> datetime:
    if value is None:
        return datetime.now()
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid --now value: {value}") from e


def cmd_report(args: argparse.Namespace) -> int:
    records = load_records(Path(args.input))
    report = ReadinessEngine().evaluate(
        records,
        current_moment=_parse_moment(args.now),
        mode=args.mode,
        days_to_show=args.days,
    )

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(render_text(report))
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    records = parse_export(args.export)
    output = write_export(records, args.output)
    print(f"Wrote {len(records)} days to {output}")
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    settings = get_settings()
    days = args.days if args.days is not None else settings.demo_days
    records = generate_demo_health_data(
        days,
        current_moment=_parse_moment(args.now),
        seed=args.seed if args.seed is not None else settings.demo_seed,
    )

    if args.output:
        write_export(records, args.output)
        print(f"Wrote {len(records)} demo days to {args.output}")
    else:
        print(json.dumps({"daily": [r.to_export_dict() for r in records]}, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="readiness",
        description="Readiness scores and training insights from daily health data",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    report = subparsers.add_parser("report", help="Evaluate a daily data file")
    report.add_argument("input", help='JSON file with {"daily": [...]} records')
    report.add_argument("--mode", choices=["daily", "rolling"], help="View mode (default: by weekday)")
    report.add_argument("--days", type=int, help="Number of processed points to analyse")
    report.add_argument("--now", help="ISO timestamp to evaluate at (default: now)")
    report.add_argument("--format", choices=["json", "text"], default="text")
    report.set_defaults(handler=cmd_report)

    convert = subparsers.add_parser("convert", help="Convert an Apple Health export")
    convert.add_argument("export", help="export.xml or export .zip")
    convert.add_argument("output", nargs="?", default="health-data.json", help="Output JSON path")
    convert.set_defaults(handler=cmd_convert)

    demo = subparsers.add_parser("demo", help="Generate synthetic demo data")
    demo.add_argument("--days", type=int, help="Number of days (default: settings.demo_days)")
    demo.add_argument("--seed", type=int, help="Random seed")
    demo.add_argument("--now", help="ISO timestamp the series ends before")
    demo.add_argument("--output", help="Write to this path instead of stdout")
    demo.set_defaults(handler=cmd_demo)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the ``readiness`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()

    try:
        return args.handler(args)
    except (ReadinessError, ValidationError, argparse.ArgumentTypeError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
