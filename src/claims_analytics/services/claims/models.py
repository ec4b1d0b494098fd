"""Pydantic models supporting the claims analytics workflow."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Generic, List, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from claims_analytics.normalization import reference_data as ref
from claims_analytics.normalization.schema import NormalizedClaim, StatusBucket

T = TypeVar("T")


class EnrichedClaim(NormalizedClaim):
    """Normalized claim joined with reference display names."""

    employee_name: str = ref.UNKNOWN_EMPLOYEE
    employee_id_display: str = ref.NOT_AVAILABLE
    assigned_hr_name: str = ref.NOT_ASSIGNED
    assigned_agent_name: str = ref.NOT_ASSIGNED
    policy_name: str = ref.NOT_AVAILABLE
    policy_type: str = ref.NOT_AVAILABLE


class EnrichmentState(str, Enum):
    """Readiness of an enrichment run."""

    READY = "ready"
    LOADING = "loading"


class EnrichmentResult(BaseModel):
    """Outcome of joining claims against reference data.

    ``claims`` is empty while ``state`` is ``loading``; ``missing`` names the
    reference collections that have not arrived yet.
    """

    model_config = ConfigDict(frozen=True)

    state: EnrichmentState
    claims: tuple[EnrichedClaim, ...] = ()
    missing: tuple[str, ...] = ()

    @property
    def is_ready(self) -> bool:
        return self.state is EnrichmentState.READY


class DateRange(str, Enum):
    """Date window presets offered by the claims and reports screens."""

    ALL = "all"
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_YEAR = "last_year"

    @classmethod
    def _missing_(cls, value: object) -> "DateRange | None":
        if not isinstance(value, str):
            return None
        key = value.strip().lower().replace(" ", "_").replace("-", "_")
        aliases = {
            "": cls.ALL,
            "all_time": cls.ALL,
            "week": cls.LAST_7_DAYS,
            "month": cls.LAST_30_DAYS,
            "year": cls.LAST_YEAR,
        }
        if key in aliases:
            return aliases[key]
        for member in cls:
            if member.value == key:
                return member
        return None


class FilterCriteria(BaseModel):
    """Claim list constraints; ``None`` or ``"All"`` means no constraint."""

    model_config = ConfigDict(frozen=True)

    search_text: str | None = None
    status_filter: str | None = None
    assignee_filter: str | None = None
    date_range: DateRange = DateRange.ALL

    @field_validator("search_text", "status_filter", "assignee_filter", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("date_range", mode="before")
    @classmethod
    def _default_range(cls, value: object) -> object:
        return DateRange.ALL if value is None else value


class FraudFilter(BaseModel):
    """Fraud dashboard constraints: free text plus pending/resolved split."""

    model_config = ConfigDict(frozen=True)

    search_text: str | None = None
    status: Literal["All", "Pending", "Resolved"] = "All"


class UserFilter(BaseModel):
    """User management constraints."""

    model_config = ConfigDict(frozen=True)

    search_text: str | None = None
    role: str | None = None
    status: str | None = None


class PolicyFilter(BaseModel):
    """Policy catalog constraints."""

    model_config = ConfigDict(frozen=True)

    search_text: str | None = None
    status: str | None = None
    policy_type: str | None = None


class AuditLogFilter(BaseModel):
    """Audit log constraints; ``days`` keeps entries from the trailing window."""

    model_config = ConfigDict(frozen=True)

    search_text: str | None = None
    role: str | None = None
    action: str | None = None
    days: int | None = Field(default=None, ge=1)


class SortSpec(BaseModel):
    """Sort key and direction."""

    model_config = ConfigDict(frozen=True)

    key: str
    direction: Literal["asc", "desc"] = "asc"

    @field_validator("direction", mode="before")
    @classmethod
    def _lower_direction(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class PageRequest(BaseModel):
    """1-based page selection."""

    model_config = ConfigDict(frozen=True)

    page_size: int = Field(default=10, ge=1)
    page_index: int = Field(default=1, ge=1)


class Page(BaseModel, Generic[T]):
    """One page of a filtered and sorted collection."""

    items: List[T] = Field(default_factory=list)
    page_index: int
    page_size: int
    total_items: int
    total_pages: int


class StatusCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: StatusBucket
    count: int = 0
    percentage: float = 0.0


class MonthlyTrendPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    year: int
    month_number: int
    total_count: int = 0
    approved_count: int = 0
    pending_count: int = 0
    amount: float = 0.0


class AssigneeWorkload(BaseModel):
    model_config = ConfigDict(frozen=True)

    assignee_id: str
    name: str = ref.NOT_ASSIGNED
    approved: int = 0
    rejected: int = 0
    pending: int = 0
    total: int = 0
    approval_rate: float = 0.0


class PolicyUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    policy_id: str
    policy_name: str = ref.NOT_AVAILABLE
    policy_type: str = ref.NOT_AVAILABLE
    claim_count: int = 0
    total_amount: float = 0.0
    avg_per_claim: float = 0.0


class FraudSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_count: int = 0
    pending_count: int = 0
    resolved_count: int = 0
    total_amount: float = 0.0
    pending_amount: float = 0.0
    resolved_amount: float = 0.0


class FraudMonthlyPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    year: int
    month_number: int
    fraud_amount: float = 0.0
    amount_saved: float = 0.0


class EmployeeRollup(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_employees: int = 0
    employees_with_claims: int = 0
    avg_claims_per_employee: float = 0.0
    avg_amount_per_employee: float = 0.0


class UserRollup(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_users: int = 0
    by_role: Dict[str, int] = Field(default_factory=dict)
    active: int = 0
    inactive: int = 0


class PolicyRollup(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_policies: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    total_coverage: float = 0.0
    total_premium: float = 0.0


class StatisticsSnapshot(BaseModel):
    """Immutable result of one aggregation run over a claim collection."""

    model_config = ConfigDict(frozen=True)

    generated_at: datetime
    total: int = 0
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    other: int = 0
    total_amount: float = 0.0
    approval_rate: float = 0.0
    status_distribution: tuple[StatusCount, ...] = ()
    monthly_trend: tuple[MonthlyTrendPoint, ...] = ()
    assignee_workload: tuple[AssigneeWorkload, ...] = ()
    agent_workload: tuple[AssigneeWorkload, ...] = ()
    policy_usage: tuple[PolicyUsage, ...] = ()
    fraud_summary: FraudSummary = Field(default_factory=FraudSummary)
