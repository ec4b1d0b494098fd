"""Command-line entry point for claims exports (``claims-report``)."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, List, Sequence

from pydantic import ValidationError
from rich.console import Console

from claims_analytics.observability import configure_logging
from claims_analytics.services.claims import (
    ClaimsAnalyticsService,
    ClaimsExporter,
    DateRange,
    FilterCriteria,
    SortSpec,
)
from claims_analytics.services.claims.service import REPORT_KINDS
from claims_analytics.settings import get_settings

LOGGER = logging.getLogger(__name__)

console = Console()

_REFERENCE_FLAGS = ("employees", "hr", "agents", "policies")


def _load_records(path: Path) -> List[Any]:
    """Read a JSON array, or a paged envelope carrying one under content/data."""

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if isinstance(payload, dict):
        for key in ("content", "data", "items"):
            if isinstance(payload.get(key), list):
                return payload[key]
        raise ValueError(f"{path} does not contain a JSON array")
    if not isinstance(payload, list):
        raise ValueError(f"{path} does not contain a JSON array")
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export claims listings and admin reports as CSV/PDF.")
    parser.add_argument("--claims", type=Path, required=True, help="JSON file with raw claim records.")
    parser.add_argument("--employees", type=Path, help="JSON file with employee records.")
    parser.add_argument("--hr", type=Path, help="JSON file with HR staff records.")
    parser.add_argument("--agents", type=Path, help="JSON file with agent records.")
    parser.add_argument("--policies", type=Path, help="JSON file with policy records.")
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        choices=("csv", "pdf"),
        help="Artifact format; repeat for several (default from settings).",
    )
    parser.add_argument("--report", choices=REPORT_KINDS, default="listing", help="Report layout.")
    parser.add_argument("--output", type=Path, help="Directory for artifacts (default reporting.reports_dir).")
    parser.add_argument("--search", help="Case-insensitive text search.")
    parser.add_argument("--status", help="Status filter (Pending, Approved, Rejected, Other).")
    parser.add_argument("--assignee", help="Assigned HR or agent name/id.")
    parser.add_argument(
        "--date-range",
        default="all",
        help="One of: " + ", ".join(member.value for member in DateRange),
    )
    parser.add_argument("--sort-key", help="Claim field to sort by (e.g. date, amount, employeeName).")
    parser.add_argument("--sort-direction", default="asc", help="asc or desc.")
    parser.add_argument("--summary", action="store_true", help="Print headline statistics.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    try:
        claims = _load_records(args.claims)
        references = {}
        for name in _REFERENCE_FLAGS:
            path = getattr(args, name)
            if path is None:
                console.print(f"[yellow]No --{name} file given; treating it as empty.[/yellow]")
                references[name] = []
            else:
                references[name] = _load_records(path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Failed to read input:[/red] {exc}")
        return 2

    try:
        criteria = FilterCriteria(
            search_text=args.search,
            status_filter=args.status,
            assignee_filter=args.assignee,
            date_range=args.date_range,
        )
        sort = SortSpec(key=args.sort_key, direction=args.sort_direction) if args.sort_key else None
    except ValidationError as exc:
        console.print(f"[red]Invalid filter arguments:[/red] {exc}")
        return 2

    exporter = ClaimsExporter(settings=settings, base_dir=args.output)
    service = ClaimsAnalyticsService(settings=settings, exporter=exporter)
    snapshot = service.build_snapshot(claims, **references)

    if args.summary:
        stats = service.statistics(snapshot, criteria)
        console.print(
            f"[bold]Claims:[/bold] {stats.total}  approved {stats.approved}  pending {stats.pending}  "
            f"rejected {stats.rejected}  amount {stats.total_amount:,.2f}  approval rate {stats.approval_rate:.1f}%"
        )

    artifacts, warnings = service.export(snapshot, args.formats, report=args.report, criteria=criteria, sort=sort)
    for warning in warnings:
        console.print(f"[yellow]{warning}[/yellow]")
    for fmt, location in artifacts.items():
        console.print(f"[green]{fmt.upper()}[/green] written to {location}")
    if not artifacts:
        LOGGER.error("No artifacts were produced")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
