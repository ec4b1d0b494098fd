"""Statistical rollups over enriched claims and reference collections.

Each rollup is an independent pure function. :func:`build_statistics` combines
the claim rollups into one immutable :class:`StatisticsSnapshot`. Amount sums
always use the already-normalized ``amount``; raw payloads are never re-parsed
here, except for policy coverage/premium fields that only exist on reference
records.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from claims_analytics.normalization import reference_data as ref
from claims_analytics.normalization.normalizer import first_present, normalize_id, parse_amount
from claims_analytics.normalization.schema import StatusBucket

from .models import (
    AssigneeWorkload,
    EmployeeRollup,
    EnrichedClaim,
    FraudMonthlyPoint,
    FraudSummary,
    MonthlyTrendPoint,
    PolicyRollup,
    PolicyUsage,
    StatisticsSnapshot,
    StatusCount,
    UserRollup,
)

_MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
DEFAULT_TREND_MONTHS = 6


def round_half_up(value: float, ndigits: int = 0) -> float:
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def _percentage(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return part / total * 100


def month_window(now: datetime, months: int = DEFAULT_TREND_MONTHS) -> List[tuple[int, int]]:
    """Return ``(year, month)`` pairs for the trailing window, oldest first."""

    window: List[tuple[int, int]] = []
    for offset in range(months - 1, -1, -1):
        index = now.year * 12 + (now.month - 1) - offset
        window.append((index // 12, index % 12 + 1))
    return window


def _month_label(year: int, month: int) -> str:
    return f"{_MONTH_LABELS[month - 1]} {year}"


def status_distribution(claims: Sequence[EnrichedClaim]) -> tuple[StatusCount, ...]:
    """Count per bucket; every bucket is present, percentages are 0 on empty input."""

    counts = Counter(claim.status_bucket for claim in claims)
    total = len(claims)
    return tuple(
        StatusCount(status=bucket, count=counts[bucket], percentage=_percentage(counts[bucket], total))
        for bucket in StatusBucket
    )


def monthly_trend(
    claims: Iterable[EnrichedClaim],
    *,
    now: datetime,
    months: int = DEFAULT_TREND_MONTHS,
) -> tuple[MonthlyTrendPoint, ...]:
    """Fixed-width monthly series; claims without a date are left out."""

    window = month_window(now, months)
    buckets: Dict[tuple[int, int], Dict[str, Any]] = {
        key: {"total": 0, "approved": 0, "pending": 0, "amount": 0.0} for key in window
    }
    for claim in claims:
        if claim.date is None:
            continue
        bucket = buckets.get((claim.date.year, claim.date.month))
        if bucket is None:
            continue
        bucket["total"] += 1
        bucket["amount"] += claim.amount
        if claim.status_bucket is StatusBucket.APPROVED:
            bucket["approved"] += 1
        elif claim.status_bucket is StatusBucket.PENDING:
            bucket["pending"] += 1
    return tuple(
        MonthlyTrendPoint(
            month=_month_label(year, month),
            year=year,
            month_number=month,
            total_count=buckets[(year, month)]["total"],
            approved_count=buckets[(year, month)]["approved"],
            pending_count=buckets[(year, month)]["pending"],
            amount=buckets[(year, month)]["amount"],
        )
        for year, month in window
    )


def assignee_workload(
    claims: Iterable[EnrichedClaim],
    *,
    roster: Iterable[Mapping[str, Any]] | None = None,
    assignee: str = "hr",
) -> tuple[AssigneeWorkload, ...]:
    """Per-assignee outcome counts and approval rate.

    Without a roster, one row per assignee id present in ``claims`` (first-seen
    order). With a roster, one row per roster member, including members with no
    claims; claims assigned to ids outside the roster are ignored.
    """

    id_attr, name_attr = (
        ("assigned_agent_id", "assigned_agent_name") if assignee == "agent" else ("assigned_hr_id", "assigned_hr_name")
    )
    rows: Dict[str, Dict[str, Any]] = {}
    if roster is not None:
        for member in roster:
            if not isinstance(member, Mapping):
                continue
            member_id = normalize_id(first_present(member, ref.REFERENCE_ID_ALIASES))
            if member_id is None:
                continue
            name = first_present(member, ref.PERSON_NAME_ALIASES)
            rows.setdefault(member_id, _workload_row(str(name).strip() if name else ref.NOT_ASSIGNED))

    for claim in claims:
        assignee_id = getattr(claim, id_attr)
        if assignee_id is None:
            continue
        row = rows.get(assignee_id)
        if row is None:
            if roster is not None:
                continue
            row = rows.setdefault(assignee_id, _workload_row(getattr(claim, name_attr)))
        row["total"] += 1
        if claim.status_bucket is StatusBucket.APPROVED:
            row["approved"] += 1
        elif claim.status_bucket is StatusBucket.REJECTED:
            row["rejected"] += 1
        elif claim.status_bucket is StatusBucket.PENDING:
            row["pending"] += 1

    return tuple(
        AssigneeWorkload(
            assignee_id=assignee_id,
            name=row["name"],
            approved=row["approved"],
            rejected=row["rejected"],
            pending=row["pending"],
            total=row["total"],
            approval_rate=round_half_up(_percentage(row["approved"], row["total"]), 1),
        )
        for assignee_id, row in rows.items()
    )


def _workload_row(name: str) -> Dict[str, Any]:
    return {"name": name, "approved": 0, "rejected": 0, "pending": 0, "total": 0}


def policy_usage(
    claims: Iterable[EnrichedClaim],
    *,
    policies: Iterable[Mapping[str, Any]] | None = None,
) -> tuple[PolicyUsage, ...]:
    """Claim count, amount total, and average per policy id."""

    rows: Dict[str, Dict[str, Any]] = {}
    if policies is not None:
        for policy in policies:
            if not isinstance(policy, Mapping):
                continue
            policy_id = normalize_id(first_present(policy, ref.REFERENCE_ID_ALIASES))
            if policy_id is None:
                continue
            name = first_present(policy, ref.POLICY_NAME_ALIASES)
            policy_type = first_present(policy, ref.POLICY_TYPE_ALIASES)
            rows.setdefault(
                policy_id,
                _usage_row(
                    str(name).strip() if name else ref.NOT_AVAILABLE,
                    str(policy_type).strip() if policy_type else ref.NOT_AVAILABLE,
                ),
            )

    for claim in claims:
        if claim.policy_id is None:
            continue
        row = rows.setdefault(claim.policy_id, _usage_row(claim.policy_name, claim.policy_type))
        row["count"] += 1
        row["amount"] += claim.amount

    return tuple(
        PolicyUsage(
            policy_id=policy_id,
            policy_name=row["name"],
            policy_type=row["type"],
            claim_count=row["count"],
            total_amount=row["amount"],
            avg_per_claim=row["amount"] / row["count"] if row["count"] else 0.0,
        )
        for policy_id, row in rows.items()
    )


def _usage_row(name: str, policy_type: str) -> Dict[str, Any]:
    return {"name": name, "type": policy_type, "count": 0, "amount": 0.0}


def fraud_summary(claims: Iterable[EnrichedClaim], *, flagged_only: bool = True) -> FraudSummary:
    """Counts and amounts over fraud-flagged claims, split pending vs resolved."""

    subset = [claim for claim in claims if claim.fraud or not flagged_only]
    pending = [claim for claim in subset if claim.status_bucket is StatusBucket.PENDING]
    total_amount = sum(claim.amount for claim in subset)
    pending_amount = sum(claim.amount for claim in pending)
    return FraudSummary(
        total_count=len(subset),
        pending_count=len(pending),
        resolved_count=len(subset) - len(pending),
        total_amount=total_amount,
        pending_amount=pending_amount,
        resolved_amount=total_amount - pending_amount,
    )


def fraud_monthly(
    claims: Iterable[EnrichedClaim],
    *,
    now: datetime,
    months: int = DEFAULT_TREND_MONTHS,
    flagged_only: bool = True,
) -> tuple[FraudMonthlyPoint, ...]:
    """Monthly fraud amount and resolved ("saved") amount over a fixed window."""

    window = month_window(now, months)
    totals = {key: [0.0, 0.0] for key in window}
    for claim in claims:
        if flagged_only and not claim.fraud:
            continue
        if claim.date is None:
            continue
        bucket = totals.get((claim.date.year, claim.date.month))
        if bucket is None:
            continue
        bucket[0] += claim.amount
        if claim.status_bucket is not StatusBucket.PENDING:
            bucket[1] += claim.amount
    return tuple(
        FraudMonthlyPoint(
            month=_month_label(year, month),
            year=year,
            month_number=month,
            fraud_amount=totals[(year, month)][0],
            amount_saved=totals[(year, month)][1],
        )
        for year, month in window
    )


def employee_rollup(
    claims: Sequence[EnrichedClaim],
    employees: Iterable[Mapping[str, Any]],
) -> EmployeeRollup:
    """Employee coverage of the claim set and per-employee averages."""

    employee_ids = {
        key
        for key in (
            normalize_id(first_present(employee, ref.REFERENCE_ID_ALIASES))
            for employee in employees
            if isinstance(employee, Mapping)
        )
        if key is not None
    }
    total = len(employee_ids)
    claimants = {claim.employee_id for claim in claims if claim.employee_id is not None}
    amount = sum(claim.amount for claim in claims)
    return EmployeeRollup(
        total_employees=total,
        employees_with_claims=len(employee_ids & claimants),
        avg_claims_per_employee=round_half_up(len(claims) / total, 1) if total else 0.0,
        avg_amount_per_employee=round_half_up(amount / total, 2) if total else 0.0,
    )


def claims_per_employee(claims: Iterable[EnrichedClaim]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for claim in claims:
        if claim.employee_id is not None:
            counts[claim.employee_id] = counts.get(claim.employee_id, 0) + 1
    return counts


def user_rollup(users: Iterable[Mapping[str, Any]]) -> UserRollup:
    """User totals by role and by active/inactive status."""

    by_role: Counter[str] = Counter()
    active = inactive = total = 0
    for user in users:
        if not isinstance(user, Mapping):
            continue
        total += 1
        role = user.get("role")
        by_role[str(role).strip().title() if role else "Employee"] += 1
        status = user.get("status")
        if status is not None and str(status).strip():
            is_active = str(status).strip().lower() == "active"
        else:
            is_active = user.get("active", True) is not False
        if is_active:
            active += 1
        else:
            inactive += 1
    return UserRollup(total_users=total, by_role=dict(by_role), active=active, inactive=inactive)


def policy_rollup(policies: Iterable[Mapping[str, Any]]) -> PolicyRollup:
    """Policy counts by status and type plus coverage and premium totals."""

    by_status: Counter[str] = Counter()
    by_type: Counter[str] = Counter()
    total = 0
    coverage = premium = 0.0
    for policy in policies:
        if not isinstance(policy, Mapping):
            continue
        total += 1
        by_status[str(policy.get("policyStatus") or "Active")] += 1
        by_type[str(first_present(policy, ref.POLICY_TYPE_ALIASES) or ref.NOT_AVAILABLE)] += 1
        coverage += parse_amount(policy.get("coverageAmount"))
        premium += parse_amount(policy.get("monthlyPremium"))
    return PolicyRollup(
        total_policies=total,
        by_status=dict(by_status),
        by_type=dict(by_type),
        total_coverage=coverage,
        total_premium=premium,
    )


def build_statistics(
    claims: Sequence[EnrichedClaim],
    *,
    now: datetime | None = None,
    trend_months: int = DEFAULT_TREND_MONTHS,
    hr_roster: Iterable[Mapping[str, Any]] | None = None,
    agent_roster: Iterable[Mapping[str, Any]] | None = None,
    policies: Iterable[Mapping[str, Any]] | None = None,
) -> StatisticsSnapshot:
    """Compute every claim rollup into one immutable snapshot.

    An empty ``claims`` sequence yields an all-zero snapshot (the monthly
    trend still carries ``trend_months`` zero entries).
    """

    now = now or datetime.now()
    distribution = status_distribution(claims)
    counts = {entry.status: entry.count for entry in distribution}
    total = len(claims)
    return StatisticsSnapshot(
        generated_at=now,
        total=total,
        approved=counts[StatusBucket.APPROVED],
        pending=counts[StatusBucket.PENDING],
        rejected=counts[StatusBucket.REJECTED],
        other=counts[StatusBucket.OTHER],
        total_amount=sum(claim.amount for claim in claims),
        approval_rate=round_half_up(_percentage(counts[StatusBucket.APPROVED], total), 1),
        status_distribution=distribution,
        monthly_trend=monthly_trend(claims, now=now, months=trend_months),
        assignee_workload=assignee_workload(claims, roster=hr_roster),
        agent_workload=assignee_workload(claims, roster=agent_roster, assignee="agent"),
        policy_usage=policy_usage(claims, policies=policies),
        fraud_summary=fraud_summary(claims),
    )


__all__ = [
    "assignee_workload",
    "build_statistics",
    "claims_per_employee",
    "employee_rollup",
    "fraud_monthly",
    "fraud_summary",
    "month_window",
    "monthly_trend",
    "policy_rollup",
    "policy_usage",
    "round_half_up",
    "status_distribution",
    "user_rollup",
]
