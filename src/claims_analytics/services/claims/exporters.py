"""CSV and PDF exporters for claims and related admin datasets."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from claims_analytics.normalization import reference_data as ref
from claims_analytics.normalization.normalizer import first_present, normalize_id, parse_amount, parse_date
from claims_analytics.settings import Settings, get_settings

from .aggregation import claims_per_employee, fraud_summary
from .models import DateRange, EnrichedClaim, SortSpec, StatisticsSnapshot
from .queries import sort_claims

LOGGER = logging.getLogger(__name__)

FOOTER_TEXT = "Generated by Claims Management System"


@dataclass(frozen=True)
class ExportColumn:
    """One CSV/PDF column: header label plus a value accessor."""

    header: str
    getter: Callable[[Any], Any]
    fallback: str = ""


def _attr(name: str) -> Callable[[Any], Any]:
    return lambda record: getattr(record, name)


def _field(*aliases: str) -> Callable[[Any], Any]:
    return lambda record: first_present(record, aliases)


def _date_field(*aliases: str) -> Callable[[Any], Any]:
    def getter(record: Mapping[str, Any]) -> Any:
        raw = first_present(record, aliases)
        parsed = parse_date(raw)
        return parsed.date().isoformat() if parsed else raw

    return getter


def _claim_date(claim: EnrichedClaim) -> str | None:
    return claim.date.date().isoformat() if claim.date else None


def _money(value: Any) -> str:
    return f"{parse_amount(value):.2f}"


CSV_COLUMNS: Dict[str, tuple[ExportColumn, ...]] = {
    "claims": (
        ExportColumn("Claim ID", _attr("id")),
        ExportColumn("Employee Name", _attr("employee_name"), ref.UNKNOWN_EMPLOYEE),
        ExportColumn("Employee ID", _attr("employee_id_display"), ref.NOT_AVAILABLE),
        ExportColumn("Policy Name", _attr("policy_name"), ref.NOT_AVAILABLE),
        ExportColumn("Amount", lambda claim: _money(claim.amount), "0.00"),
        ExportColumn("Assigned HR", _attr("assigned_hr_name"), ref.NOT_ASSIGNED),
        ExportColumn("Status", lambda claim: claim.raw_status or claim.status_bucket.value),
        ExportColumn("Submitted Date", _claim_date, ref.NOT_AVAILABLE),
        ExportColumn("Remarks", _attr("remarks")),
    ),
    "fraud_claims": (
        ExportColumn("ID", _attr("id")),
        ExportColumn("Type", _attr("title")),
        ExportColumn("Employee", _attr("employee_name"), ref.UNKNOWN_EMPLOYEE),
        ExportColumn("HR", _attr("assigned_hr_name"), ref.NOT_ASSIGNED),
        ExportColumn("Claim Date", _claim_date, ref.NOT_AVAILABLE),
        ExportColumn("Amount", lambda claim: _money(claim.amount), "0.00"),
        ExportColumn("Status", lambda claim: claim.raw_status or claim.status_bucket.value),
        ExportColumn("Fraud Reason", _attr("fraud_reason")),
    ),
    "users": (
        ExportColumn("User ID", _field("id")),
        ExportColumn("Name", _field(*ref.PERSON_NAME_ALIASES), ref.NOT_AVAILABLE),
        ExportColumn("Email", _field("email")),
        ExportColumn("Role", _field("role"), "Employee"),
        ExportColumn("Employee ID", _field(*ref.EMPLOYEE_CODE_ALIASES), ref.NOT_AVAILABLE),
        ExportColumn("Department", _field("department")),
        ExportColumn("Phone", _field("phone", "phoneNumber")),
        ExportColumn("Status", _field("status"), "Active"),
        ExportColumn("Joined", _date_field("createdAt", "created_at", "joiningDate")),
    ),
    "policies": (
        ExportColumn("Policy Number", _field("policyNumber")),
        ExportColumn("Policy Name", _field(*ref.POLICY_NAME_ALIASES), ref.NOT_AVAILABLE),
        ExportColumn("Type", _field(*ref.POLICY_TYPE_ALIASES), ref.NOT_AVAILABLE),
        ExportColumn("Provider", _field("providerName")),
        ExportColumn("Coverage", _field("coverageAmount")),
        ExportColumn("Premium", _field("monthlyPremium")),
        ExportColumn("Status", _field("policyStatus")),
        ExportColumn("Start Date", _date_field("startDate")),
        ExportColumn("Renewal Date", _date_field("renewalDate")),
    ),
    "audit_logs": (
        ExportColumn("Timestamp", _field("timestamp", "createdAt")),
        ExportColumn("User", _field("userName", "user")),
        ExportColumn("Role", _field("role")),
        ExportColumn("Action", _field("action")),
        ExportColumn("Details", _field("details")),
    ),
}

_REDACTED_DATASETS = frozenset({"users"})


def columns_for(dataset: str) -> tuple[ExportColumn, ...]:
    """Return the column catalog for ``dataset``; unknown names raise ``KeyError``."""

    try:
        return CSV_COLUMNS[dataset]
    except KeyError:
        raise KeyError(f"Unknown export dataset: {dataset}") from None


def redact_record(record: Any) -> Any:
    """Drop credential fields from a user record."""

    if not isinstance(record, Mapping):
        return record
    return {key: value for key, value in record.items() if key not in ref.SENSITIVE_USER_FIELDS}


def _cell(column: ExportColumn, record: Any) -> str:
    try:
        value = column.getter(record)
    except Exception:  # malformed rows fall back instead of aborting the export
        LOGGER.debug("Column %s unreadable for record; using fallback", column.header, exc_info=True)
        return column.fallback
    if value is None:
        return column.fallback
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or column.fallback


def table_rows(dataset: str, records: Iterable[Any]) -> tuple[list[str], list[list[str]]]:
    """Project ``records`` onto the dataset's columns as header and body rows."""

    columns = columns_for(dataset)
    redact = dataset in _REDACTED_DATASETS
    rows = []
    for record in records:
        if redact:
            record = redact_record(record)
        rows.append([_cell(column, record) for column in columns])
    return [column.header for column in columns], rows


def export_csv(dataset: str, records: Iterable[Any]) -> str:
    """Serialize ``records`` to CSV text with every cell quoted.

    The header row is always written, so an empty collection yields a
    header-only document.
    """

    header, rows = table_rows(dataset, records)
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


# ----------------------------------------------------------------------
# PDF rendering
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class ReportSection:
    """Titled table in a PDF report. Summary sections render first."""

    title: str
    headers: Sequence[str]
    rows: Sequence[Sequence[Any]] = ()
    summary: bool = False


def order_sections(sections: Iterable[ReportSection]) -> list[ReportSection]:
    """Place summary sections ahead of itemized ones, otherwise keeping order."""

    return sorted(sections, key=lambda section: not section.summary)


class _NumberedCanvas(canvas.Canvas):
    """Canvas that defers footers until the page count is known."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._saved_page_states: List[dict] = []

    def showPage(self) -> None:
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, page_count: int) -> None:
        width = self._pagesize[0]
        self.saveState()
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawCentredString(width / 2, 0.55 * inch, f"Page {self._pageNumber} of {page_count}")
        self.drawCentredString(width / 2, 0.4 * inch, FOOTER_TEXT)
        self.restoreState()


def render_pdf(
    sections: Iterable[ReportSection],
    *,
    title: str,
    subtitle_lines: Sequence[str] = (),
) -> bytes:
    """Render titled table sections into PDF bytes.

    Tables repeat their header row on every page they span. A section without
    rows renders a header-only table.
    """

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=LETTER,
        title=title,
        leftMargin=0.6 * inch,
        rightMargin=0.6 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.9 * inch,
    )
    styles = getSampleStyleSheet()
    cell_style = ParagraphStyle("ReportCell", parent=styles["BodyText"], fontSize=8, leading=10)
    head_style = ParagraphStyle(
        "ReportHead", parent=cell_style, fontName="Helvetica-Bold", textColor=colors.white
    )
    section_style = ParagraphStyle(
        "ReportSection", parent=styles["Heading3"], textColor=colors.HexColor("#8B0086")
    )

    story: list[Any] = [Paragraph(escape(title), styles["Title"])]
    for line in subtitle_lines:
        story.append(Paragraph(escape(line), styles["Normal"]))
    story.append(Spacer(1, 12))

    for section in order_sections(sections):
        story.append(Paragraph(escape(section.title.upper()), section_style))
        data = [[Paragraph(escape(str(header)), head_style) for header in section.headers]]
        for row in section.rows:
            data.append([Paragraph(escape("" if cell is None else str(cell)), cell_style) for cell in row])
        col_width = doc.width / max(len(section.headers), 1)
        table = Table(data, colWidths=[col_width] * len(section.headers), repeatRows=1, hAlign="LEFT")
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#8B0086")),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
                ]
            )
        )
        story.append(table)
        story.append(Spacer(1, 14))

    doc.build(story, canvasmaker=_NumberedCanvas)
    return buffer.getvalue()


# ----------------------------------------------------------------------
# Report builders
# ----------------------------------------------------------------------


def _currency(amount: float, symbol: str) -> str:
    return f"{symbol}{amount:,.2f}"


def date_range_label(date_range: DateRange) -> str:
    if date_range is DateRange.ALL:
        return "All Time"
    return date_range.value.replace("_", " ").title()


def listing_section(dataset: str, records: Iterable[Any], *, title: str | None = None) -> ReportSection:
    """Itemized section using the dataset's CSV column catalog."""

    header, rows = table_rows(dataset, records)
    return ReportSection(title=title or dataset.replace("_", " "), headers=header, rows=rows)


def build_admin_report_sections(
    claims: Sequence[EnrichedClaim],
    statistics: StatisticsSnapshot,
    *,
    employees: Sequence[Mapping[str, Any]] = (),
    hr: Sequence[Mapping[str, Any]] = (),
    agents: Sequence[Mapping[str, Any]] = (),
    policies: Sequence[Mapping[str, Any]] = (),
    recent_limit: int = 15,
    employee_limit: int = 10,
    currency_symbol: str = "Rs.",
) -> list[ReportSection]:
    """Sections of the comprehensive admin report."""

    amount_header = f"Amount ({currency_symbol})"
    summary = ReportSection(
        title="Executive Summary",
        headers=("Metric", "Count", amount_header),
        rows=(
            ("Total Employees", len(employees), "-"),
            ("Total HR Users", len(hr), "-"),
            ("Total Agents", len(agents), "-"),
            ("Total Policies", len(policies), "-"),
            ("Total Claims", statistics.total, _currency(statistics.total_amount, currency_symbol)),
            ("Approved Claims", statistics.approved, "-"),
            ("Pending Claims", statistics.pending, "-"),
            ("Rejected Claims", statistics.rejected, "-"),
            ("Approval Rate", f"{statistics.approval_rate:.1f}%", "-"),
        ),
        summary=True,
    )

    counts = claims_per_employee(claims)
    employee_rows = []
    for employee in list(employees)[:employee_limit]:
        if not isinstance(employee, Mapping):
            continue
        employee_id = normalize_id(first_present(employee, ref.REFERENCE_ID_ALIASES))
        employee_rows.append(
            (
                first_present(employee, ref.PERSON_NAME_ALIASES) or ref.NOT_AVAILABLE,
                employee.get("role") or "Employee",
                counts.get(employee_id, 0) if employee_id is not None else 0,
                employee.get("status") or "Active",
            )
        )

    recent = sort_claims(claims, SortSpec(key="date", direction="desc"))[:recent_limit]
    recent_rows = [
        (
            claim.employee_name,
            claim.policy_name,
            _currency(claim.amount, currency_symbol),
            _claim_date(claim) or ref.NOT_AVAILABLE,
            claim.raw_status or claim.status_bucket.value,
            claim.assigned_hr_name,
        )
        for claim in recent
    ]

    usage_rows = [
        (
            usage.policy_name,
            usage.policy_type,
            usage.claim_count,
            _currency(usage.total_amount, currency_symbol),
            _currency(usage.avg_per_claim, currency_symbol),
        )
        for usage in statistics.policy_usage
    ]

    workload_rows = [
        (row.name, row.approved, row.rejected, row.pending, row.total, f"{row.approval_rate:.1f}%")
        for row in statistics.assignee_workload
    ]

    return [
        summary,
        ReportSection("Employee Summary", ("Employee Name", "Role", "Claims Count", "Status"), employee_rows),
        ReportSection(
            "Recent Claims Activity",
            ("Employee", "Policy", amount_header, "Date", "Status", "Assigned HR"),
            recent_rows,
        ),
        ReportSection(
            "Policy Usage Summary",
            ("Policy Name", "Type", "Claims", f"Total Amount ({currency_symbol})", f"Avg/Claim ({currency_symbol})"),
            usage_rows,
        ),
        ReportSection(
            "HR Workload",
            ("HR Name", "Approved", "Rejected", "Pending", "Total", "Approval Rate"),
            workload_rows,
        ),
    ]


def build_fraud_report_sections(
    claims: Sequence[EnrichedClaim],
    *,
    currency_symbol: str = "Rs.",
) -> list[ReportSection]:
    """Fraud summary followed by the itemized fraud listing."""

    summary = fraud_summary(claims)
    flagged = [claim for claim in claims if claim.fraud]
    return [
        ReportSection(
            "Fraud Summary",
            ("Metric", "Count", f"Amount ({currency_symbol})"),
            (
                ("Fraud Claims", summary.total_count, _currency(summary.total_amount, currency_symbol)),
                ("Pending Review", summary.pending_count, _currency(summary.pending_amount, currency_symbol)),
                ("Resolved", summary.resolved_count, _currency(summary.resolved_amount, currency_symbol)),
            ),
            summary=True,
        ),
        listing_section("fraud_claims", flagged, title="Fraud Claims"),
    ]


def export_filename(dataset: str, suffix: str, *, today: date | None = None) -> str:
    today = today or date.today()
    return f"{dataset}_export_{today.isoformat()}.{suffix}"


class ClaimsExporter:
    """Write CSV and PDF artifacts for claims datasets."""

    def __init__(self, *, settings: Settings | None = None, base_dir: Path | None = None) -> None:
        self.settings = settings or get_settings()
        self.base_dir = base_dir or self.settings.reporting.reports_dir
        self._content_types = {"csv": "text/csv", "pdf": "application/pdf"}

    def content_type(self, fmt: str) -> str:
        return self._content_types.get(fmt.lower(), "application/octet-stream")

    def export(
        self,
        dataset: str,
        records: Sequence[Any],
        formats: Iterable[str],
        *,
        sections: Sequence[ReportSection] | None = None,
        title: str | None = None,
        subtitle_lines: Sequence[str] = (),
        today: date | None = None,
    ) -> tuple[Dict[str, str], List[str]]:
        """Write artifacts for the requested formats and return their paths/warnings.

        ``sections`` replaces the default single listing section in PDF output.
        Unknown datasets raise ``KeyError`` before anything is written.
        """

        columns_for(dataset)
        artifacts: Dict[str, str] = {}
        warnings: List[str] = []
        for fmt in formats:
            normalized = fmt.lower().strip()
            if not normalized:
                continue
            handler = getattr(self, f"_export_{normalized}", None)
            if handler is None:
                LOGGER.warning("Unsupported claims artifact format: %s", normalized)
                warnings.append(f"Unsupported artifact format skipped: {normalized}")
                continue
            path = self.base_dir / export_filename(dataset, normalized, today=today)
            try:
                handler(
                    path,
                    dataset,
                    records,
                    sections=sections,
                    title=title,
                    subtitle_lines=subtitle_lines,
                )
                artifacts[normalized] = str(path)
            except Exception as exc:
                LOGGER.exception("Failed to generate %s artifact", normalized)
                warnings.append(f"{normalized.upper()} artifact generation failed: {exc}")
        return artifacts, warnings

    # ------------------------------------------------------------------
    # Individual format handlers
    # ------------------------------------------------------------------

    def _export_csv(self, path: Path, dataset: str, records: Sequence[Any], **_: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="", encoding="utf-8") as handle:
            handle.write(export_csv(dataset, records))
        return path

    def _export_pdf(
        self,
        path: Path,
        dataset: str,
        records: Sequence[Any],
        *,
        sections: Sequence[ReportSection] | None = None,
        title: str | None = None,
        subtitle_lines: Sequence[str] = (),
        **_: Any,
    ) -> Path:
        if sections is None:
            sections = [listing_section(dataset, records)]
        payload = render_pdf(
            sections,
            title=title or dataset.replace("_", " ").title(),
            subtitle_lines=subtitle_lines,
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
        return path


__all__ = [
    "CSV_COLUMNS",
    "ClaimsExporter",
    "ExportColumn",
    "ReportSection",
    "build_admin_report_sections",
    "build_fraud_report_sections",
    "columns_for",
    "date_range_label",
    "export_csv",
    "export_filename",
    "listing_section",
    "order_sections",
    "redact_record",
    "render_pdf",
    "table_rows",
]
