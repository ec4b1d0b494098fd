"""Claims analytics service primitives."""

from .aggregation import build_statistics
from .enrichment import ReferenceIndex, enrich_claims
from .exporters import ClaimsExporter, ReportSection, export_csv, render_pdf
from .loader import ReferenceLoader
from .models import (
    AuditLogFilter,
    DateRange,
    EnrichedClaim,
    EnrichmentResult,
    EnrichmentState,
    FilterCriteria,
    FraudFilter,
    Page,
    PageRequest,
    PolicyFilter,
    SortSpec,
    StatisticsSnapshot,
    UserFilter,
)
from .queries import query_claims
from .service import ClaimsAnalyticsService, ClaimsSnapshot

__all__ = [
    "AuditLogFilter",
    "ClaimsAnalyticsService",
    "ClaimsExporter",
    "ClaimsSnapshot",
    "DateRange",
    "EnrichedClaim",
    "EnrichmentResult",
    "EnrichmentState",
    "FilterCriteria",
    "FraudFilter",
    "Page",
    "PageRequest",
    "PolicyFilter",
    "ReferenceIndex",
    "ReferenceLoader",
    "ReportSection",
    "SortSpec",
    "StatisticsSnapshot",
    "UserFilter",
    "build_statistics",
    "enrich_claims",
    "export_csv",
    "query_claims",
    "render_pdf",
]
