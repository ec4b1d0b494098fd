"""Claim normalization module.

Reduces heterogeneous raw claim payloads to :class:`NormalizedClaim`. Field
resolution is driven entirely by the alias tables in
:mod:`claims_analytics.normalization.reference_data`; nothing here raises on
malformed input; unusable values degrade to the documented fallbacks.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Sequence

from dateutil import parser as date_parser

from claims_analytics.normalization import reference_data as ref
from claims_analytics.normalization.schema import NormalizedClaim, StatusBucket

_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_AMOUNT_NOISE = re.compile(r"[\s,₹$€£]")
_EPOCH_DIGITS = re.compile(r"^\d{11,}$")


def first_present(record: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """Return the first usable value among ``aliases`` in priority order.

    A value is usable when it is not ``None`` and, for strings, not blank.
    Dotted aliases walk into nested mappings.

    Args:
        record: Raw payload.
        aliases: Candidate keys, highest priority first.

    Returns:
        The resolved value, or ``None`` when no alias holds one.
    """

    for alias in aliases:
        value = _lookup(record, alias)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _lookup(record: Mapping[str, Any], alias: str) -> Any:
    current: Any = record
    for part in alias.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def resolve_status(value: Any) -> StatusBucket:
    """Map a raw status value onto its canonical bucket."""

    if value is None:
        return StatusBucket.OTHER
    key = str(value).strip().lower()
    bucket = ref.STATUS_SYNONYMS.get(key)
    if bucket is None:
        return StatusBucket.OTHER
    return StatusBucket(bucket)


def parse_amount(value: Any) -> float:
    """Parse an amount leniently, returning ``0.0`` when unusable.

    Strings may carry currency symbols, thousands separators, or trailing text
    (``"500abc"`` reads as 500). Negative and non-finite results collapse to 0.
    """

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = _AMOUNT_NOISE.sub("", value)
        match = _NUMERIC_PREFIX.match(cleaned)
        if not match:
            return 0.0
        try:
            number = float(match.group(0))
        except (OverflowError, ValueError):
            return 0.0
    else:
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def parse_date(value: Any) -> datetime | None:
    """Parse a claim date leniently into a naive UTC ``datetime``.

    Accepts ``datetime``/``date`` objects, ISO and free-form strings, epoch
    milliseconds (numbers or long digit strings), and component arrays such as
    ``[2025, 3, 14, 10, 30]``.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        return _from_epoch_millis(value)
    if isinstance(value, (list, tuple)):
        return _from_components(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _EPOCH_DIGITS.match(text):
            return _from_epoch_millis(int(text))
        try:
            parsed = date_parser.parse(text)
        except (date_parser.ParserError, ValueError, OverflowError, TypeError):
            return None
        return _to_naive_utc(parsed)
    return None


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_epoch_millis(value: float) -> datetime | None:
    if not math.isfinite(value):
        return None
    try:
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None


def _from_components(parts: Sequence[Any]) -> datetime | None:
    if len(parts) < 3:
        return None
    try:
        numbers = [int(part) for part in parts[:6]]
        return datetime(*numbers)
    except (TypeError, ValueError, OverflowError):
        return None


def resolve_date(record: Mapping[str, Any], aliases: Sequence[str] = ref.DATE_ALIASES) -> datetime | None:
    """Return the first alias that parses to a valid date, else ``None``."""

    for alias in aliases:
        parsed = parse_date(_lookup(record, alias))
        if parsed is not None:
            return parsed
    return None


def parse_flag(value: Any) -> bool:
    """Interpret booleans, numbers, and ``"true"``-like strings as a flag."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ref.TRUTHY_STRINGS
    return False


def normalize_id(value: Any) -> str | None:
    """Stringify a reference id so ``1`` and ``"1"`` join the same record."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _claim_id(value: Any) -> int | str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip()
    return text or None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _documents(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    if isinstance(value, Iterable) and not isinstance(value, Mapping):
        return tuple(str(item) for item in value if item is not None and str(item).strip())
    return ()


def normalize_claim(raw: Mapping[str, Any]) -> NormalizedClaim:
    """Normalize one raw claim payload.

    Args:
        raw: Deserialized claim record with optional, aliased fields.

    Returns:
        The canonical :class:`NormalizedClaim`. Non-mapping input yields an
        empty claim in the ``Other`` bucket.
    """

    if not isinstance(raw, Mapping):
        raw = {}

    status_value = first_present(raw, ref.STATUS_ALIASES)
    return NormalizedClaim(
        id=_claim_id(first_present(raw, ref.CLAIM_ID_ALIASES)),
        status_bucket=resolve_status(status_value),
        raw_status=_text(status_value),
        amount=parse_amount(first_present(raw, ref.AMOUNT_ALIASES)),
        date=resolve_date(raw),
        employee_id=normalize_id(first_present(raw, ref.EMPLOYEE_ID_ALIASES)),
        assigned_hr_id=normalize_id(first_present(raw, ref.HR_ID_ALIASES)),
        assigned_agent_id=normalize_id(first_present(raw, ref.AGENT_ID_ALIASES)),
        policy_id=normalize_id(first_present(raw, ref.POLICY_ID_ALIASES)),
        remarks=_text(first_present(raw, ref.REMARKS_ALIASES)),
        documents=_documents(first_present(raw, ref.DOCUMENTS_ALIASES)),
        title=_text(first_present(raw, ref.TITLE_ALIASES)),
        fraud=parse_flag(first_present(raw, ref.FRAUD_FLAG_ALIASES)),
        fraud_reason=_text(first_present(raw, ref.FRAUD_REASON_ALIASES)),
    )


def normalize_claims(records: Iterable[Mapping[str, Any]] | None) -> List[NormalizedClaim]:
    """Normalize a collection of raw claims, preserving input order."""

    if not records:
        return []
    return [normalize_claim(record) for record in records]
