"""Filter, sort, and paginate helpers for claims, users, policies, and audit logs.

Every helper is a pure function of its inputs. Pipelines always run in the
order filter -> sort -> paginate.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, List, Mapping, Sequence, TypeVar

from dateutil.relativedelta import relativedelta

from claims_analytics.normalization import reference_data as ref
from claims_analytics.normalization.normalizer import parse_amount, parse_date, resolve_status
from claims_analytics.normalization.schema import StatusBucket

from .models import (
    AuditLogFilter,
    DateRange,
    EnrichedClaim,
    FilterCriteria,
    FraudFilter,
    Page,
    PageRequest,
    PolicyFilter,
    SortSpec,
    UserFilter,
)

T = TypeVar("T")

_ALL = "all"

# Sort keys accepted from the UI, mapped to EnrichedClaim attributes.
CLAIM_SORT_KEYS = {
    "id": "id",
    "claimid": "id",
    "date": "date",
    "claimdate": "date",
    "claim_date": "date",
    "created_at": "date",
    "amount": "amount",
    "status": "status_bucket",
    "status_bucket": "status_bucket",
    "employeename": "employee_name",
    "employee_name": "employee_name",
    "employeeiddisplay": "employee_id_display",
    "employee_id_display": "employee_id_display",
    "policyname": "policy_name",
    "policy_name": "policy_name",
    "assignedhrname": "assigned_hr_name",
    "assigned_hr_name": "assigned_hr_name",
    "assignedagentname": "assigned_agent_name",
    "assigned_agent_name": "assigned_agent_name",
    "title": "title",
    "fraudreason": "fraud_reason",
    "fraud_reason": "fraud_reason",
}
CLAIM_DATE_KEYS = frozenset({"date"})
CLAIM_NUMERIC_KEYS = frozenset({"id", "amount"})

RECORD_DATE_KEYS = frozenset(
    {"timestamp", "startDate", "renewalDate", "joinDate", "created_at", "createdAt", "claimDate"}
)
RECORD_NUMERIC_KEYS = frozenset({"id", "coverageAmount", "monthlyPremium", "amount"})


# ---------------------------------------------------------------------------
# Shared predicates
# ---------------------------------------------------------------------------


def _is_unconstrained(value: str | None) -> bool:
    return value is None or not value.strip() or value.strip().lower() == _ALL


def _contains(haystack: Any, needle: str) -> bool:
    if haystack is None:
        return False
    return needle in str(haystack).lower()


def _equals(value: Any, expected: str) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() == expected.strip().lower()


def date_in_range(value: datetime | None, date_range: DateRange, *, now: datetime) -> bool:
    """Return True when ``value`` falls inside the ``date_range`` preset.

    ``DateRange.ALL`` always passes. Every other range rejects a missing date;
    a missing date is never treated as "now". Windows are compared at day
    granularity so results only change when the calendar day changes.
    """

    if date_range is DateRange.ALL:
        return True
    if value is None:
        return False
    day = value.date()
    today = now.date()
    if date_range is DateRange.TODAY:
        return day == today
    if date_range is DateRange.THIS_WEEK:
        # Weeks start on Sunday.
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start <= day < start + timedelta(days=7)
    if date_range is DateRange.THIS_MONTH:
        return day.year == today.year and day.month == today.month
    if date_range is DateRange.LAST_7_DAYS:
        return day >= today - timedelta(days=7)
    if date_range is DateRange.LAST_30_DAYS:
        return day >= today - timedelta(days=30)
    if date_range is DateRange.LAST_YEAR:
        return day >= today - relativedelta(years=1)
    return True


def _status_target(status_filter: str) -> StatusBucket | None:
    """Bucket named by ``status_filter``; ``None`` when it names no bucket or synonym."""

    try:
        return StatusBucket(status_filter.strip().title())
    except ValueError:
        pass
    if status_filter.strip().lower() in ref.STATUS_SYNONYMS:
        return resolve_status(status_filter)
    return None


def status_matches(claim: EnrichedClaim, status_filter: str) -> bool:
    """Compare by bucket; an unrecognised filter only matches an identical raw status."""

    target = _status_target(status_filter)
    if target is None:
        return _equals(claim.raw_status, status_filter)
    return claim.status_bucket is target


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


def claim_search_fields(claim: EnrichedClaim) -> tuple[Any, ...]:
    return (claim.employee_name, claim.employee_id_display, claim.policy_name, claim.id)


def claim_matches(claim: EnrichedClaim, criteria: FilterCriteria, *, now: datetime) -> bool:
    """Apply the four ANDed claim predicates."""

    if criteria.search_text:
        needle = criteria.search_text.lower()
        if not any(_contains(field, needle) for field in claim_search_fields(claim)):
            return False
    if not _is_unconstrained(criteria.status_filter):
        if not status_matches(claim, criteria.status_filter):
            return False
    if not _is_unconstrained(criteria.assignee_filter):
        candidates = (
            claim.assigned_hr_name,
            claim.assigned_agent_name,
            claim.assigned_hr_id,
            claim.assigned_agent_id,
        )
        if not any(_equals(candidate, criteria.assignee_filter) for candidate in candidates):
            return False
    return date_in_range(claim.date, criteria.date_range, now=now)


def filter_claims(
    claims: Iterable[EnrichedClaim],
    criteria: FilterCriteria | None = None,
    *,
    now: datetime | None = None,
) -> List[EnrichedClaim]:
    """Return claims matching ``criteria`` in their original order."""

    criteria = criteria or FilterCriteria()
    now = now or datetime.now()
    return [claim for claim in claims if claim_matches(claim, criteria, now=now)]


def sort_claims(claims: Sequence[EnrichedClaim], spec: SortSpec | None) -> List[EnrichedClaim]:
    """Sort claims by a UI or attribute key; unknown keys leave order unchanged."""

    if spec is None:
        return list(claims)
    attribute = CLAIM_SORT_KEYS.get(spec.key.strip().lower()) or CLAIM_SORT_KEYS.get(spec.key.strip())
    if attribute is None:
        return list(claims)
    return sort_records(
        claims,
        spec.direction,
        getter=lambda claim: _claim_value(claim, attribute),
        kind=_value_kind(attribute, CLAIM_DATE_KEYS, CLAIM_NUMERIC_KEYS),
    )


def _claim_value(claim: EnrichedClaim, attribute: str) -> Any:
    value = getattr(claim, attribute)
    if isinstance(value, StatusBucket):
        return value.value
    return value


def query_claims(
    claims: Sequence[EnrichedClaim],
    criteria: FilterCriteria | None = None,
    sort: SortSpec | None = None,
    page: PageRequest | None = None,
    *,
    now: datetime | None = None,
) -> Page[EnrichedClaim]:
    """Run the full claim pipeline: filter, then sort, then paginate."""

    filtered = filter_claims(claims, criteria, now=now)
    ordered = sort_claims(filtered, sort)
    return paginate(ordered, page or PageRequest(page_size=max(len(ordered), 1)))


def assignee_options(claims: Iterable[EnrichedClaim]) -> List[str]:
    """Distinct assigned HR names in first-seen order, excluding the fallback."""

    seen: dict[str, None] = {}
    for claim in claims:
        name = claim.assigned_hr_name
        if name and name != ref.NOT_ASSIGNED:
            seen.setdefault(name, None)
    return list(seen)


def filter_fraud_claims(claims: Iterable[EnrichedClaim], criteria: FraudFilter | None = None) -> List[EnrichedClaim]:
    """Fraud dashboard filter: text search plus pending vs resolved."""

    criteria = criteria or FraudFilter()
    needle = (criteria.search_text or "").strip().lower()
    matched: List[EnrichedClaim] = []
    for claim in claims:
        if needle:
            fields = (
                claim.employee_name,
                claim.policy_name,
                claim.fraud_reason,
                claim.assigned_hr_name,
                claim.title,
            )
            if not any(_contains(field, needle) for field in fields):
                continue
        is_pending = claim.status_bucket is StatusBucket.PENDING
        if criteria.status == "Pending" and not is_pending:
            continue
        if criteria.status == "Resolved" and is_pending:
            continue
        matched.append(claim)
    return matched


# ---------------------------------------------------------------------------
# Users, policies, audit logs
# ---------------------------------------------------------------------------


def _user_status(user: Mapping[str, Any]) -> str:
    status = user.get("status")
    if status is not None and str(status).strip():
        return str(status).strip()
    active = user.get("active")
    if isinstance(active, bool):
        return "Active" if active else "Inactive"
    return "Active"


def filter_users(users: Iterable[Mapping[str, Any]], criteria: UserFilter | None = None) -> List[Mapping[str, Any]]:
    criteria = criteria or UserFilter()
    needle = (criteria.search_text or "").strip().lower()
    matched = []
    for user in users:
        if not isinstance(user, Mapping):
            continue
        if needle and not (_contains(user.get("name"), needle) or _contains(user.get("email"), needle)):
            continue
        if not _is_unconstrained(criteria.role) and not _equals(user.get("role"), criteria.role):
            continue
        if not _is_unconstrained(criteria.status) and not _equals(_user_status(user), criteria.status):
            continue
        matched.append(user)
    return matched


def filter_policies(
    policies: Iterable[Mapping[str, Any]], criteria: PolicyFilter | None = None
) -> List[Mapping[str, Any]]:
    criteria = criteria or PolicyFilter()
    needle = (criteria.search_text or "").strip().lower()
    matched = []
    for policy in policies:
        if not isinstance(policy, Mapping):
            continue
        if needle:
            fields = (policy.get("policyName"), policy.get("policyNumber"), policy.get("providerName"))
            if not any(_contains(field, needle) for field in fields):
                continue
        if not _is_unconstrained(criteria.status) and not _equals(policy.get("policyStatus"), criteria.status):
            continue
        if not _is_unconstrained(criteria.policy_type) and not _equals(
            policy.get("policyType"), criteria.policy_type
        ):
            continue
        matched.append(policy)
    return matched


def filter_audit_logs(
    logs: Iterable[Mapping[str, Any]],
    criteria: AuditLogFilter | None = None,
    *,
    now: datetime | None = None,
) -> List[Mapping[str, Any]]:
    criteria = criteria or AuditLogFilter()
    now = now or datetime.now()
    needle = (criteria.search_text or "").strip().lower()
    action = (criteria.action or "").strip().lower()
    cutoff = now - timedelta(days=criteria.days) if criteria.days else None
    matched = []
    for log in logs:
        if not isinstance(log, Mapping):
            continue
        if not _is_unconstrained(criteria.role) and not _equals(log.get("role"), criteria.role):
            continue
        if action and not _contains(log.get("action"), action):
            continue
        if needle and not (_contains(log.get("userName"), needle) or _contains(log.get("details"), needle)):
            continue
        if cutoff is not None:
            stamp = parse_date(log.get("timestamp"))
            if stamp is None or stamp < cutoff:
                continue
        matched.append(log)
    return matched


def sort_mappings(records: Sequence[Mapping[str, Any]], spec: SortSpec | None) -> List[Mapping[str, Any]]:
    """Sort plain records (users, policies, audit logs) by a field name."""

    if spec is None:
        return list(records)
    key = spec.key
    return sort_records(
        records,
        spec.direction,
        getter=lambda record: record.get(key) if isinstance(record, Mapping) else None,
        kind=_value_kind(key, RECORD_DATE_KEYS, RECORD_NUMERIC_KEYS),
    )


# ---------------------------------------------------------------------------
# Generic sort / paginate
# ---------------------------------------------------------------------------


def _value_kind(key: str, date_keys: frozenset[str], numeric_keys: frozenset[str]) -> str:
    if key in date_keys:
        return "date"
    if key in numeric_keys:
        return "number"
    return "text"


def _sort_value(value: Any, kind: str) -> Any:
    if kind == "date":
        return parse_date(value)
    if kind == "number":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return parse_amount(value)
    if value is None:
        return None
    text = str(value)
    return text.casefold() if text.strip() else None


def sort_records(
    records: Sequence[T],
    direction: str,
    *,
    getter: Callable[[T], Any],
    kind: str = "text",
) -> List[T]:
    """Stable sort by ``getter``; records without a value always sort last.

    ``sorted`` is stable in both directions, so ties keep input order.
    """

    keyed = [(_sort_value(getter(record), kind), record) for record in records]
    present = [item for item in keyed if item[0] is not None]
    missing = [record for value, record in keyed if value is None]
    present.sort(key=lambda item: item[0], reverse=direction == "desc")
    return [record for _, record in present] + missing


def paginate(records: Sequence[T], request: PageRequest) -> Page[T]:
    """Slice one 1-based page; an out-of-range page is empty, not an error."""

    total = len(records)
    total_pages = math.ceil(total / request.page_size) if total else 0
    start = (request.page_index - 1) * request.page_size
    items = list(records[start : start + request.page_size])
    return Page(
        items=items,
        page_index=request.page_index,
        page_size=request.page_size,
        total_items=total,
        total_pages=total_pages,
    )


__all__ = [
    "assignee_options",
    "claim_matches",
    "date_in_range",
    "filter_audit_logs",
    "filter_claims",
    "filter_fraud_claims",
    "filter_policies",
    "filter_users",
    "paginate",
    "query_claims",
    "sort_claims",
    "sort_mappings",
    "sort_records",
]
