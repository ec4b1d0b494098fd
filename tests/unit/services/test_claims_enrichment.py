"""Unit tests for joining claims against reference collections."""

from __future__ import annotations

from claims_analytics.normalization import normalize_claims
from claims_analytics.services.claims.enrichment import ReferenceIndex, enrich_claims
from claims_analytics.services.claims.models import EnrichmentState

EMPLOYEES = [{"id": 1, "name": "John Doe", "employeeId": "EMP-001"}, {"id": "2", "name": "Asha Rao"}]
HR = [{"id": 9, "name": "Priya HR"}]
AGENTS = [{"id": 4, "name": "Agent Smith"}]
POLICIES = [{"id": 5, "policyName": "Health Plus", "policyType": "Health"}]


def test_enrich_claims_joins_display_names():
    claims = normalize_claims(
        [
            {"id": 1, "employeeId": "1", "assignedHrId": 9, "assignedAgentId": 4, "policyId": 5},
            {"id": 2, "employeeId": 2.0},
        ]
    )

    result = enrich_claims(claims, employees=EMPLOYEES, hr=HR, agents=AGENTS, policies=POLICIES)

    assert result.state is EnrichmentState.READY
    assert result.is_ready
    first, second = result.claims
    assert first.employee_name == "John Doe"
    assert first.employee_id_display == "EMP-001"
    assert first.assigned_hr_name == "Priya HR"
    assert first.assigned_agent_name == "Agent Smith"
    assert first.policy_name == "Health Plus"
    assert first.policy_type == "Health"
    assert second.employee_name == "Asha Rao"
    assert second.employee_id_display == "N/A"


def test_enrich_claims_uses_fallbacks_for_unknown_ids():
    claims = normalize_claims([{"id": 1, "employeeId": 99, "assignedHrId": 77, "policyId": 12}, {"id": 2}])

    result = enrich_claims(claims, employees=EMPLOYEES, hr=HR, agents=AGENTS, policies=POLICIES)

    for claim in result.claims:
        assert claim.employee_name == "Unknown"
        assert claim.employee_id_display == "N/A"
        assert claim.assigned_hr_name == "Not Assigned"
        assert claim.assigned_agent_name == "Not Assigned"
        assert claim.policy_name == "N/A"


def test_enrich_claims_waits_for_every_reference():
    claims = normalize_claims([{"id": 1, "employeeId": 1}])

    result = enrich_claims(claims, employees=EMPLOYEES, hr=None, agents=AGENTS, policies=None)

    assert result.state is EnrichmentState.LOADING
    assert result.claims == ()
    assert result.missing == ("hr", "policies")


def test_empty_reference_collection_counts_as_loaded():
    claims = normalize_claims([{"id": 1, "employeeId": 1}])

    result = enrich_claims(claims, employees=[], hr=[], agents=[], policies=[])

    assert result.is_ready
    assert result.claims[0].employee_name == "Unknown"


def test_reference_index_skips_records_without_ids():
    index = ReferenceIndex([{"id": 1, "name": "A"}, {"name": "no id"}, "junk", {"id": 1, "name": "B"}])

    assert len(index) == 1
    assert index["1"]["name"] == "B"
    assert index.resolve(None) is None
    assert ReferenceIndex.coerce(None) is None
    assert ReferenceIndex.coerce(index) is index
    assert ReferenceIndex.coerce({" ": {"id": 3}}).resolve("3") == {"id": 3}


def test_enrich_claims_accepts_maps_keyed_by_id():
    claims = normalize_claims([{"id": 1, "employeeId": 1, "assignedHrId": 9, "policyId": 5}])

    result = enrich_claims(
        claims,
        employees={"1": {"name": "John Doe", "employeeId": "EMP-001"}},
        hr={9.0: {"name": "Priya HR"}},
        agents={},
        policies={"5": {"policyName": "Health Plus"}},
    )

    claim = result.claims[0]
    assert result.is_ready
    assert claim.employee_name == "John Doe"
    assert claim.employee_id_display == "EMP-001"
    assert claim.assigned_hr_name == "Priya HR"
    assert claim.policy_name == "Health Plus"
    assert claim.assigned_agent_name == "Not Assigned"


def test_mapping_key_wins_over_record_id():
    index = ReferenceIndex.coerce({"7": {"id": 3, "name": "Keyed"}})

    assert index.resolve("7")["name"] == "Keyed"
    assert index.resolve("3") is None
