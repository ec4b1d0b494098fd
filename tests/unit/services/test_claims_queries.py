"""Unit tests for the claims filter/sort/paginate pipeline."""

from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from claims_analytics.normalization import normalize_claims
from claims_analytics.services.claims.enrichment import enrich_claims
from claims_analytics.services.claims.models import (
    AuditLogFilter,
    DateRange,
    FilterCriteria,
    FraudFilter,
    PageRequest,
    PolicyFilter,
    SortSpec,
    UserFilter,
)
from claims_analytics.services.claims.queries import (
    assignee_options,
    date_in_range,
    filter_audit_logs,
    filter_claims,
    filter_fraud_claims,
    filter_policies,
    filter_users,
    paginate,
    query_claims,
    sort_claims,
    sort_mappings,
)

# Wednesday
NOW = datetime(2025, 10, 15, 12, 0)

EMPLOYEES = [
    {"id": 1, "name": "John Doe", "employeeId": "EMP-001"},
    {"id": 2, "name": "Asha Rao", "employeeId": "EMP-002"},
]
HR = [{"id": 9, "name": "Priya HR"}, {"id": 8, "name": "Ravi HR"}]
POLICIES = [{"id": 5, "policyName": "Health Plus"}, {"id": 6, "policyName": "Dental Basic"}]

RAW_CLAIMS = [
    {"id": 1, "status": "approved", "amount": 500, "claimDate": "2025-10-15", "employeeId": 1,
     "assignedHrId": 9, "policyId": 5},
    {"id": 2, "status": "Pending", "amount": 200, "claimDate": "2025-10-12", "employeeId": 2,
     "assignedHrId": 8, "policyId": 6},
    {"id": 3, "status": "rejected", "amount": 900, "claimDate": "2025-10-11", "employeeId": 1,
     "assignedHrId": 9, "policyId": 6, "fraud": True, "fraudReason": "Duplicate bill"},
    {"id": 4, "status": "in progress", "amount": 200, "claimDate": "2025-09-30", "employeeId": 2,
     "policyId": 5, "fraud": True, "fraudReason": "Forged receipt"},
    {"id": 5, "status": "closed", "amount": 50, "employeeId": 1, "assignedHrId": 8},
]


def _claims():
    result = enrich_claims(
        normalize_claims(RAW_CLAIMS), employees=EMPLOYEES, hr=HR, agents=[], policies=POLICIES
    )
    return list(result.claims)


def _ids(claims):
    return [claim.id for claim in claims]


def test_search_is_case_insensitive_substring():
    claims = _claims()

    assert _ids(filter_claims(claims, FilterCriteria(search_text="john"), now=NOW)) == [1, 3, 5]
    assert _ids(filter_claims(claims, FilterCriteria(search_text="JOHN DOE"), now=NOW)) == [1, 3, 5]
    assert filter_claims(claims, FilterCriteria(search_text="zzz"), now=NOW) == []


def test_search_covers_policy_name_employee_code_and_claim_id():
    claims = _claims()

    assert _ids(filter_claims(claims, FilterCriteria(search_text="dental"), now=NOW)) == [2, 3]
    assert _ids(filter_claims(claims, FilterCriteria(search_text="emp-002"), now=NOW)) == [2, 4]
    assert _ids(filter_claims(claims, FilterCriteria(search_text="4"), now=NOW)) == [4]


@pytest.mark.parametrize(
    "status,expected",
    [
        ("All", [1, 2, 3, 4, 5]),
        ("approved", [1, 5]),
        ("Pending", [2, 4]),
        ("REJECTED", [3]),
        (None, [1, 2, 3, 4, 5]),
        ("in progress", [2, 4]),
        ("foo", []),
    ],
)
def test_status_filter(status, expected):
    assert _ids(filter_claims(_claims(), FilterCriteria(status_filter=status), now=NOW)) == expected


def test_unrecognised_status_filter_matches_raw_status_only():
    raw = [{"id": 1, "status": "Escalated"}, {"id": 2, "status": "on hold"}, {"id": 3, "status": "approved"}]
    claims = list(enrich_claims(normalize_claims(raw), employees=[], hr=[], agents=[], policies=[]).claims)

    assert _ids(filter_claims(claims, FilterCriteria(status_filter="escalated"), now=NOW)) == [1]
    assert _ids(filter_claims(claims, FilterCriteria(status_filter="Other"), now=NOW)) == [1, 2]
    assert filter_claims(claims, FilterCriteria(status_filter="foo"), now=NOW) == []


def test_assignee_filter_matches_name_or_id():
    claims = _claims()

    assert _ids(filter_claims(claims, FilterCriteria(assignee_filter="priya hr"), now=NOW)) == [1, 3]
    assert _ids(filter_claims(claims, FilterCriteria(assignee_filter="8"), now=NOW)) == [2, 5]
    assert len(filter_claims(claims, FilterCriteria(assignee_filter="All"), now=NOW)) == 5


def test_predicates_are_anded():
    criteria = FilterCriteria(search_text="john", status_filter="Approved", assignee_filter="Ravi HR")
    assert _ids(filter_claims(_claims(), criteria, now=NOW)) == [5]


@pytest.mark.parametrize(
    "date_range,expected",
    [
        (DateRange.ALL, [1, 2, 3, 4, 5]),
        (DateRange.TODAY, [1]),
        (DateRange.THIS_WEEK, [1, 2]),
        (DateRange.THIS_MONTH, [1, 2, 3]),
        (DateRange.LAST_7_DAYS, [1, 2, 3]),
        (DateRange.LAST_30_DAYS, [1, 2, 3, 4]),
    ],
)
def test_date_range_presets(date_range, expected):
    assert _ids(filter_claims(_claims(), FilterCriteria(date_range=date_range), now=NOW)) == expected


def test_missing_date_never_matches_a_constrained_range():
    assert date_in_range(None, DateRange.ALL, now=NOW)
    for preset in DateRange:
        if preset is not DateRange.ALL:
            assert not date_in_range(None, preset, now=NOW)


def test_week_starts_on_sunday():
    sunday = datetime(2025, 10, 12)
    saturday_before = datetime(2025, 10, 11)

    assert date_in_range(sunday, DateRange.THIS_WEEK, now=NOW)
    assert not date_in_range(saturday_before, DateRange.THIS_WEEK, now=NOW)
    assert date_in_range(sunday, DateRange.THIS_WEEK, now=sunday)


def test_date_range_accepts_ui_labels():
    assert FilterCriteria(date_range="This Week").date_range is DateRange.THIS_WEEK
    assert FilterCriteria(date_range="month").date_range is DateRange.LAST_30_DAYS
    assert FilterCriteria(date_range=None).date_range is DateRange.ALL


def test_sort_by_amount_is_stable_in_both_directions():
    claims = _claims()

    ascending = sort_claims(claims, SortSpec(key="amount", direction="asc"))
    descending = sort_claims(claims, SortSpec(key="amount", direction="desc"))

    assert _ids(ascending) == [5, 2, 4, 1, 3]
    assert _ids(descending) == [3, 1, 2, 4, 5]


def test_sort_by_date_puts_missing_dates_last():
    claims = _claims()

    assert _ids(sort_claims(claims, SortSpec(key="claimDate"))) == [4, 3, 2, 1, 5]
    assert _ids(sort_claims(claims, SortSpec(key="date", direction="DESC"))) == [1, 2, 3, 4, 5]


def test_sort_by_text_is_case_folded():
    claims = _claims()
    ordered = sort_claims(claims, SortSpec(key="employeeName"))
    assert [claim.employee_name for claim in ordered] == ["Asha Rao", "Asha Rao", "John Doe", "John Doe", "John Doe"]
    assert _ids(ordered) == [2, 4, 1, 3, 5]


def test_unknown_sort_key_keeps_order():
    claims = _claims()
    assert _ids(sort_claims(claims, SortSpec(key="nonexistent"))) == _ids(claims)


def test_paginate_splits_into_expected_pages():
    records = list(range(5))
    pages = [paginate(records, PageRequest(page_size=2, page_index=index)) for index in (1, 2, 3)]

    assert [len(page.items) for page in pages] == [2, 2, 1]
    assert all(page.total_pages == 3 for page in pages)
    assert [item for page in pages for item in page.items] == records


def test_paginate_edge_cases():
    empty = paginate([], PageRequest(page_size=10))
    assert empty.items == []
    assert empty.total_pages == 0

    beyond = paginate([1, 2, 3], PageRequest(page_size=2, page_index=5))
    assert beyond.items == []
    assert beyond.total_pages == 2


@pytest.mark.parametrize("kwargs", [{"page_size": 0}, {"page_index": 0}])
def test_page_request_rejects_invalid_values(kwargs):
    with pytest.raises(ValidationError):
        PageRequest(**kwargs)


def test_sort_spec_rejects_unknown_direction():
    with pytest.raises(ValidationError):
        SortSpec(key="amount", direction="sideways")


def test_query_claims_runs_filter_sort_paginate():
    page = query_claims(
        _claims(),
        FilterCriteria(status_filter="Pending"),
        SortSpec(key="amount", direction="desc"),
        PageRequest(page_size=1, page_index=2),
        now=NOW,
    )

    assert page.total_items == 2
    assert page.total_pages == 2
    assert _ids(page.items) == [4]


def test_assignee_options_skip_fallback():
    assert assignee_options(_claims()) == ["Priya HR", "Ravi HR"]


def test_filter_fraud_claims():
    flagged = [claim for claim in _claims() if claim.fraud]

    assert _ids(filter_fraud_claims(flagged, FraudFilter(status="Pending"))) == [4]
    assert _ids(filter_fraud_claims(flagged, FraudFilter(status="Resolved"))) == [3]
    assert _ids(filter_fraud_claims(flagged, FraudFilter(search_text="forged"))) == [4]


def test_filter_users():
    users = [
        {"id": 1, "name": "John Doe", "email": "john@corp.test", "role": "EMPLOYEE", "status": "Active"},
        {"id": 2, "name": "Priya", "email": "priya@corp.test", "role": "HR", "active": False},
        {"id": 3, "name": "Sam", "email": "sam@corp.test", "role": "AGENT"},
    ]

    assert [u["id"] for u in filter_users(users, UserFilter(search_text="CORP.TEST"))] == [1, 2, 3]
    assert [u["id"] for u in filter_users(users, UserFilter(role="hr"))] == [2]
    assert [u["id"] for u in filter_users(users, UserFilter(status="Inactive"))] == [2]
    assert [u["id"] for u in filter_users(users, UserFilter(status="Active"))] == [1, 3]


def test_filter_and_sort_policies():
    policies = [
        {"policyName": "Health Plus", "policyNumber": "P-1", "policyStatus": "Active", "policyType": "Health",
         "coverageAmount": "500000"},
        {"policyName": "Dental Basic", "policyNumber": "P-2", "policyStatus": "Inactive", "policyType": "Dental",
         "coverageAmount": 20000},
    ]

    assert [p["policyNumber"] for p in filter_policies(policies, PolicyFilter(search_text="p-2"))] == ["P-2"]
    assert [p["policyNumber"] for p in filter_policies(policies, PolicyFilter(status="active"))] == ["P-1"]
    assert [p["policyNumber"] for p in filter_policies(policies, PolicyFilter(policy_type="Dental"))] == ["P-2"]
    ordered = sort_mappings(policies, SortSpec(key="coverageAmount"))
    assert [p["policyNumber"] for p in ordered] == ["P-2", "P-1"]


def test_filter_audit_logs():
    logs = [
        {"timestamp": "2025-10-14T09:00:00", "userName": "admin", "role": "ADMIN", "action": "USER_CREATED",
         "details": "Created Priya"},
        {"timestamp": "2025-09-01T09:00:00", "userName": "priya", "role": "HR", "action": "CLAIM_APPROVED",
         "details": "Claim 1"},
        {"timestamp": None, "userName": "ghost", "role": "HR", "action": "LOGIN", "details": ""},
    ]

    assert [log["userName"] for log in filter_audit_logs(logs, AuditLogFilter(role="hr"), now=NOW)] == [
        "priya",
        "ghost",
    ]
    assert [log["userName"] for log in filter_audit_logs(logs, AuditLogFilter(action="claim"), now=NOW)] == ["priya"]
    assert [log["userName"] for log in filter_audit_logs(logs, AuditLogFilter(days=7), now=NOW)] == ["admin"]
    assert [log["userName"] for log in filter_audit_logs(logs, AuditLogFilter(search_text="created"), now=NOW)] == [
        "admin"
    ]
