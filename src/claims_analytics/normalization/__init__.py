"""Normalization of raw claim payloads into the canonical claim schema."""

from .normalizer import (
    first_present,
    normalize_claim,
    normalize_claims,
    normalize_id,
    parse_amount,
    parse_date,
    resolve_status,
)
from .schema import NormalizedClaim, StatusBucket

__all__ = [
    "NormalizedClaim",
    "StatusBucket",
    "first_present",
    "normalize_claim",
    "normalize_claims",
    "normalize_id",
    "parse_amount",
    "parse_date",
    "resolve_status",
]
