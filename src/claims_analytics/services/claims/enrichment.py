"""Join normalized claims against employee, HR, agent, and policy reference data."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Mapping, Sequence

from claims_analytics.normalization import reference_data as ref
from claims_analytics.normalization.normalizer import first_present, normalize_id
from claims_analytics.normalization.schema import NormalizedClaim

from .models import EnrichedClaim, EnrichmentResult, EnrichmentState

LOGGER = logging.getLogger(__name__)

REQUIRED_REFERENCES = ("employees", "hr", "agents", "policies")


class ReferenceIndex(Mapping[str, Mapping[str, Any]]):
    """Read-only map of reference records keyed by stringified id.

    Built once per snapshot so each claim join is a dict lookup rather than a
    scan of the reference collection. Later records win on duplicate ids.
    """

    def __init__(self, records: Iterable[Mapping[str, Any]] | None = None) -> None:
        self._index = self._build((None, record) for record in records or ())

    @classmethod
    def from_mapping(cls, records: Mapping[Any, Mapping[str, Any]]) -> "ReferenceIndex":
        """Index an id-keyed map; a record's own id is used only when its key is unusable."""

        index = cls()
        index._index = cls._build(records.items())
        return index

    @staticmethod
    def _build(pairs: Iterable[tuple[Any, Any]]) -> dict[str, Mapping[str, Any]]:
        index: dict[str, Mapping[str, Any]] = {}
        skipped = 0
        for raw_key, record in pairs:
            if not isinstance(record, Mapping):
                skipped += 1
                continue
            key = normalize_id(raw_key)
            if key is None:
                key = normalize_id(first_present(record, ref.REFERENCE_ID_ALIASES))
            if key is None:
                skipped += 1
                continue
            index[key] = record
        if skipped:
            LOGGER.debug("Skipped %d reference records without a usable id", skipped)
        return index

    @classmethod
    def coerce(
        cls, value: "ReferenceIndex | Mapping[Any, Mapping[str, Any]] | Iterable[Mapping[str, Any]] | None"
    ) -> "ReferenceIndex | None":
        """Return ``value`` as an index; ``None`` stays ``None`` (not yet loaded).

        A mapping is treated as already keyed by id, a sequence as records that
        carry their own id.
        """

        if value is None or isinstance(value, ReferenceIndex):
            return value
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        return cls(value)

    def __getitem__(self, key: str) -> Mapping[str, Any]:
        return self._index[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def resolve(self, key: str | None) -> Mapping[str, Any] | None:
        if key is None:
            return None
        return self._index.get(key)


def _display(record: Mapping[str, Any] | None, aliases: Sequence[str], fallback: str) -> str:
    if record is None:
        return fallback
    value = first_present(record, aliases)
    if value is None:
        return fallback
    return str(value).strip() or fallback


def enrich_claim(
    claim: NormalizedClaim,
    *,
    employees: ReferenceIndex,
    hr: ReferenceIndex,
    agents: ReferenceIndex,
    policies: ReferenceIndex,
) -> EnrichedClaim:
    """Attach reference display names to one claim, using fallbacks on misses."""

    employee = employees.resolve(claim.employee_id)
    policy = policies.resolve(claim.policy_id)
    return EnrichedClaim(
        **claim.model_dump(),
        employee_name=_display(employee, ref.PERSON_NAME_ALIASES, ref.UNKNOWN_EMPLOYEE),
        employee_id_display=_display(employee, ref.EMPLOYEE_CODE_ALIASES, ref.NOT_AVAILABLE),
        assigned_hr_name=_display(hr.resolve(claim.assigned_hr_id), ref.PERSON_NAME_ALIASES, ref.NOT_ASSIGNED),
        assigned_agent_name=_display(
            agents.resolve(claim.assigned_agent_id), ref.PERSON_NAME_ALIASES, ref.NOT_ASSIGNED
        ),
        policy_name=_display(policy, ref.POLICY_NAME_ALIASES, ref.NOT_AVAILABLE),
        policy_type=_display(policy, ref.POLICY_TYPE_ALIASES, ref.NOT_AVAILABLE),
    )


def enrich_claims(
    claims: Iterable[NormalizedClaim],
    *,
    employees: ReferenceIndex | Iterable[Mapping[str, Any]] | None,
    hr: ReferenceIndex | Iterable[Mapping[str, Any]] | None,
    agents: ReferenceIndex | Iterable[Mapping[str, Any]] | None,
    policies: ReferenceIndex | Iterable[Mapping[str, Any]] | None,
) -> EnrichmentResult:
    """Enrich claims once every reference collection is available.

    A ``None`` reference argument means the collection has not arrived. In that
    case nothing is enriched and a ``loading`` result names what is missing, so
    callers never see fallback names caused by partial data.
    """

    indexes = {
        "employees": ReferenceIndex.coerce(employees),
        "hr": ReferenceIndex.coerce(hr),
        "agents": ReferenceIndex.coerce(agents),
        "policies": ReferenceIndex.coerce(policies),
    }
    missing = tuple(name for name in REQUIRED_REFERENCES if indexes[name] is None)
    if missing:
        LOGGER.debug("Enrichment deferred; waiting for %s", ", ".join(missing))
        return EnrichmentResult(state=EnrichmentState.LOADING, missing=missing)

    enriched = tuple(
        enrich_claim(
            claim,
            employees=indexes["employees"],
            hr=indexes["hr"],
            agents=indexes["agents"],
            policies=indexes["policies"],
        )
        for claim in claims
    )
    return EnrichmentResult(state=EnrichmentState.READY, claims=enriched)


__all__ = ["REQUIRED_REFERENCES", "ReferenceIndex", "enrich_claim", "enrich_claims"]
