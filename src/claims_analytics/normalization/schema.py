"""Canonical schema definitions for normalized claims.

Every raw claim payload is reduced to :class:`NormalizedClaim` before any join,
filter, or aggregate touches it, so downstream code never reads aliased or
untyped fields.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from claims_analytics.normalization import reference_data


class StatusBucket(str, Enum):
    """Canonical claim outcome after synonym normalization."""

    PENDING = reference_data.PENDING
    APPROVED = reference_data.APPROVED
    REJECTED = reference_data.REJECTED
    OTHER = reference_data.OTHER


class NormalizedClaim(BaseModel):
    """Unified claim structure.

    Attributes:
        id: Claim identifier as delivered by the API (int or str).
        status_bucket: One of the four canonical outcomes.
        raw_status: Trimmed original status text, empty when absent.
        amount: Non-negative, finite claim amount (0 when unparseable).
        date: Claim date as naive UTC, ``None`` when missing or invalid.
        employee_id: Stringified employee reference id.
        assigned_hr_id: Stringified HR reference id.
        assigned_agent_id: Stringified agent reference id.
        policy_id: Stringified policy reference id.
        remarks: Reviewer remarks, empty when absent.
        documents: Supporting document paths.
        title: Claim type/title.
        fraud: Whether the claim is flagged as fraud.
        fraud_reason: Explanation attached to a fraud flag.
    """

    model_config = ConfigDict(frozen=True)

    id: int | str | None = None
    status_bucket: StatusBucket = StatusBucket.OTHER
    raw_status: str = ""
    amount: float = Field(default=0.0, ge=0.0)
    date: datetime | None = None
    employee_id: str | None = None
    assigned_hr_id: str | None = None
    assigned_agent_id: str | None = None
    policy_id: str | None = None
    remarks: str = ""
    documents: tuple[str, ...] = ()
    title: str = ""
    fraud: bool = False
    fraud_reason: str = ""
