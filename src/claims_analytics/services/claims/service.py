"""High-level orchestration for claims analytics and reporting."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Sequence
from uuid import uuid4

from claims_analytics.normalization import normalize_claims
from claims_analytics.observability import Observability, get_observability
from claims_analytics.settings import Settings, get_settings

from .aggregation import build_statistics
from .enrichment import REQUIRED_REFERENCES, enrich_claims
from .exporters import (
    ClaimsExporter,
    build_admin_report_sections,
    build_fraud_report_sections,
    date_range_label,
)
from .loader import CLAIMS, ReferenceLoader
from .models import (
    EnrichedClaim,
    EnrichmentState,
    FilterCriteria,
    Page,
    PageRequest,
    SortSpec,
    StatisticsSnapshot,
)
from .queries import filter_claims, paginate, sort_claims

LOGGER = logging.getLogger(__name__)

REPORT_KINDS = ("listing", "admin", "fraud")


@dataclass(frozen=True)
class ClaimsSnapshot:
    """Enriched claims and their reference collections at one point in time."""

    snapshot_id: str
    state: EnrichmentState
    claims: tuple[EnrichedClaim, ...] = ()
    references: Mapping[str, tuple[Mapping[str, Any], ...]] = field(default_factory=dict)
    missing: tuple[str, ...] = ()

    @property
    def is_ready(self) -> bool:
        return self.state is EnrichmentState.READY

    def reference(self, name: str) -> tuple[Mapping[str, Any], ...]:
        return self.references.get(name, ())


class _MemoCache:
    """Bounded LRU map shared by concurrent readers."""

    def __init__(self, max_size: int) -> None:
        self._max_size = max_size
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> tuple[Any, bool]:
        if self._max_size <= 0:
            return compute(), False
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                return self._entries[key], True
        value = compute()
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)
        return value, False

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ClaimsAnalyticsService:
    """Coordinates normalization, enrichment, queries, rollups, and exports."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        exporter: ClaimsExporter | None = None,
        observability: Observability | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.exporter = exporter or ClaimsExporter(settings=self.settings)
        self.observability = observability or get_observability(component="claims", settings=self.settings)
        self._clock = clock or datetime.now
        self._cache = _MemoCache(self.settings.reporting.cache_size)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def build_snapshot(
        self,
        claims: Iterable[Mapping[str, Any]] | None,
        *,
        employees: Sequence[Mapping[str, Any]] | None,
        hr: Sequence[Mapping[str, Any]] | None,
        agents: Sequence[Mapping[str, Any]] | None,
        policies: Sequence[Mapping[str, Any]] | None,
    ) -> ClaimsSnapshot:
        """Normalize and enrich raw claims into a new snapshot.

        A missing reference collection yields a ``loading`` snapshot with no
        claims rather than one enriched against partial data.
        """

        snapshot_id = f"claims-snap-{uuid4().hex[:8]}"
        with self.observability.timed("claims.snapshot.duration"):
            normalized = normalize_claims(claims)
            result = enrich_claims(normalized, employees=employees, hr=hr, agents=agents, policies=policies)
        references = {
            name: tuple(records)
            for name, records in zip(REQUIRED_REFERENCES, (employees, hr, agents, policies))
            if records is not None
        }
        snapshot = ClaimsSnapshot(
            snapshot_id=snapshot_id,
            state=result.state,
            claims=result.claims,
            references=references,
            missing=result.missing,
        )
        self.observability.emit_event(
            "claims.snapshot.built",
            snapshot_id=snapshot_id,
            state=snapshot.state.value,
            claim_count=len(snapshot.claims),
            missing=list(snapshot.missing),
        )
        self.observability.increment("claims.snapshot", tags={"state": snapshot.state.value})
        return snapshot

    def snapshot_from_loader(self, loader: ReferenceLoader) -> ClaimsSnapshot:
        """Build a snapshot from whatever the loader holds.

        Claims that have not arrived yet also keep the snapshot in ``loading``.
        """

        collections = loader.snapshot()
        if collections[CLAIMS] is None:
            missing = loader.missing
            LOGGER.debug("Claims not yet delivered; snapshot stays loading (missing %s)", ", ".join(missing))
            return ClaimsSnapshot(
                snapshot_id=f"claims-snap-{uuid4().hex[:8]}",
                state=EnrichmentState.LOADING,
                missing=missing,
            )
        return self.build_snapshot(
            collections[CLAIMS],
            employees=collections["employees"],
            hr=collections["hr"],
            agents=collections["agents"],
            policies=collections["policies"],
        )

    # ------------------------------------------------------------------
    # Queries and rollups
    # ------------------------------------------------------------------

    def filtered_claims(
        self,
        snapshot: ClaimsSnapshot,
        criteria: FilterCriteria | None = None,
        sort: SortSpec | None = None,
        *,
        now: datetime | None = None,
    ) -> List[EnrichedClaim]:
        """Filtered and sorted claims, memoized per snapshot and criteria."""

        if not snapshot.is_ready:
            return []
        now = now or self._clock()
        criteria = criteria or FilterCriteria()
        key = ("rows", snapshot.snapshot_id, criteria, sort, now.date())

        def compute() -> tuple[EnrichedClaim, ...]:
            return tuple(sort_claims(filter_claims(snapshot.claims, criteria, now=now), sort))

        rows, hit = self._cache.get_or_compute(key, compute)
        self.observability.increment("claims.query.cache", tags={"result": "hit" if hit else "miss"})
        return list(rows)

    def query(
        self,
        snapshot: ClaimsSnapshot,
        criteria: FilterCriteria | None = None,
        sort: SortSpec | None = None,
        page: PageRequest | None = None,
        *,
        now: datetime | None = None,
    ) -> Page[EnrichedClaim]:
        """Filter, sort, and paginate the snapshot's claims."""

        page = page or PageRequest(page_size=self.settings.reporting.default_page_size)
        rows = self.filtered_claims(snapshot, criteria, sort, now=now)
        return paginate(rows, page)

    def statistics(
        self,
        snapshot: ClaimsSnapshot,
        criteria: FilterCriteria | None = None,
        *,
        now: datetime | None = None,
    ) -> StatisticsSnapshot:
        """Rollups over the filtered claims; all zero while the snapshot is loading."""

        now = now or self._clock()
        criteria = criteria or FilterCriteria()
        key = ("stats", snapshot.snapshot_id, criteria, now.date())

        def compute() -> StatisticsSnapshot:
            rows = self.filtered_claims(snapshot, criteria, now=now)
            with self.observability.timed("claims.statistics.duration"):
                return build_statistics(
                    rows,
                    now=now,
                    trend_months=self.settings.reporting.trend_months,
                    hr_roster=snapshot.reference("hr") or None,
                    agent_roster=snapshot.reference("agents") or None,
                    policies=snapshot.reference("policies") or None,
                )

        stats, _ = self._cache.get_or_compute(key, compute)
        return stats

    def clear_cache(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def export(
        self,
        snapshot: ClaimsSnapshot,
        formats: Iterable[str] | None = None,
        *,
        report: str = "listing",
        criteria: FilterCriteria | None = None,
        sort: SortSpec | None = None,
        now: datetime | None = None,
    ) -> tuple[Dict[str, str], List[str]]:
        """Write claim artifacts and return their paths plus warnings.

        ``report`` selects the plain claim listing, the comprehensive admin
        report, or the fraud report. The latter two only differ in PDF output.
        """

        if report not in REPORT_KINDS:
            raise ValueError(f"Unknown report kind: {report}")
        formats = list(formats or self.settings.reporting.default_formats)
        if not snapshot.is_ready:
            warning = f"Reference data not yet available: {', '.join(snapshot.missing)}"
            LOGGER.warning(warning)
            return {}, [warning]

        now = now or self._clock()
        criteria = criteria or FilterCriteria()
        rows = self.filtered_claims(snapshot, criteria, sort, now=now)
        reporting = self.settings.reporting
        subtitle = [
            f"Generated on: {now.date().isoformat()}",
            f"Date Filter: {date_range_label(criteria.date_range)}",
        ]

        dataset = "claims"
        title: str | None = None
        sections = None
        if report == "admin":
            title = reporting.report_title
            sections = build_admin_report_sections(
                rows,
                self.statistics(snapshot, criteria, now=now),
                employees=snapshot.reference("employees"),
                hr=snapshot.reference("hr"),
                agents=snapshot.reference("agents"),
                policies=snapshot.reference("policies"),
                recent_limit=reporting.recent_claims_limit,
                employee_limit=reporting.employee_summary_limit,
                currency_symbol=reporting.currency_symbol,
            )
        elif report == "fraud":
            dataset = "fraud_claims"
            title = "FRAUD CLAIMS REPORT"
            sections = build_fraud_report_sections(rows, currency_symbol=reporting.currency_symbol)
            rows = [claim for claim in rows if claim.fraud]

        with self.observability.timed("claims.export.duration", tags={"report": report}):
            artifacts, warnings = self.exporter.export(
                dataset,
                rows,
                formats,
                sections=sections,
                title=title,
                subtitle_lines=subtitle,
                today=now.date(),
            )
        self.observability.emit_event(
            "claims.export.completed",
            snapshot_id=snapshot.snapshot_id,
            report=report,
            row_count=len(rows),
            formats=sorted(artifacts),
            warnings=len(warnings),
        )
        return artifacts, warnings


__all__ = ["ClaimsAnalyticsService", "ClaimsSnapshot", "REPORT_KINDS"]
