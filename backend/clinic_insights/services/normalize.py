"""Normalization boundary for collaborator API payloads.

Converts raw JSON dicts from the clinic API into typed records. This is the
only place malformed fields are rejected or defaulted: a record with a
non-finite value or an unparseable date is dropped here (parser returns
None) so aggregation code never sees it.

All functions are pure and handle missing/malformed data gracefully.
"""

import logging
import math
from collections.abc import Callable, Iterable
from datetime import date, datetime, time, timezone
from typing import Any, TypeVar

from pydantic import ValidationError

from clinic_insights.schemas.records import (
    Consultation,
    LabResult,
    Medication,
    Reading,
    ReadingKind,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Collaborator spellings for reading kinds
_KIND_ALIASES: dict[str, ReadingKind] = {
    "fasting": ReadingKind.FASTING,
    "ayuno": ReadingKind.FASTING,
    "postprandial": ReadingKind.POSTPRANDIAL,
    "post": ReadingKind.POSTPRANDIAL,
}


def to_finite_float(value: Any) -> float | None:
    """Coerce numbers and numeric strings to a finite float.

    Returns None for booleans, blanks, NaN, infinities and anything else
    that is not a number. Never defaults to zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_positive_int(value: Any) -> int | None:
    """Coerce to a strictly positive integer, or None."""
    number = to_finite_float(value)
    if number is None or number <= 0 or not number.is_integer():
        return None
    return int(number)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp or date into an aware UTC datetime.

    Naive timestamps are assumed to be UTC. Returns None if unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                dt = datetime.strptime(text[:10], "%Y-%m-%d")
            except ValueError:
                return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError:
        return None


def parse_date(value: Any) -> date | None:
    """Parse a calendar date, dropping any time-of-day component."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    dt = parse_timestamp(value)
    return dt.date() if dt else None


def _text(value: Any) -> str | None:
    """Return a stripped non-empty string or None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_kind(value: Any) -> ReadingKind:
    """Map a collaborator reading type to a ReadingKind."""
    key = (_text(value) or "").lower()
    return _KIND_ALIASES.get(key, ReadingKind.UNSPECIFIED)


def parse_reading(raw: dict[str, Any]) -> Reading | None:
    """Build a Reading from a glucose log payload.

    Returns None when the value is not finite or the timestamp is missing
    or unparseable.
    """
    if not isinstance(raw, dict):
        return None
    value = to_finite_float(raw.get("value"))
    if value is None:
        return None
    taken_at = parse_timestamp(raw.get("taken_at") or raw.get("created_at"))
    if taken_at is None:
        return None
    reading_id = _text(raw.get("id")) or f"reading-{taken_at.isoformat()}"
    return Reading(
        id=reading_id,
        patient_id=_text(raw.get("patient_id")),
        value=value,
        kind=parse_kind(raw.get("type") or raw.get("measurement_type")),
        taken_at=taken_at,
        note=_text(raw.get("observation") or raw.get("note")),
    )


def parse_lab_result(
    raw: dict[str, Any],
    consultation_id: str,
    consultation_date: datetime | None = None,
) -> LabResult | None:
    """Build a LabResult from a consultation lab payload.

    A result without its own date is attributed to the consultation date.
    Returns None when the test has no name.
    """
    if not isinstance(raw, dict):
        return None
    test_name = _text(raw.get("lab_nombre") or raw.get("test_name"))
    if test_name is None:
        return None
    observed_at = parse_timestamp(raw.get("observed_at") or raw.get("fecha")) or consultation_date
    lab_id = _text(raw.get("id")) or f"{consultation_id}-{test_name}"
    numeric = raw.get("valor_num", raw.get("numeric_value"))
    return LabResult(
        id=lab_id,
        consultation_id=consultation_id,
        test_name=test_name,
        numeric_value=to_finite_float(numeric),
        text_value=_text(raw.get("valor_texto") or raw.get("text_value")),
        unit=_text(raw.get("unidad_snapshot") or raw.get("unit")),
        reference_range=_text(raw.get("rango_ref_snapshot") or raw.get("reference_range")),
        observed_at=observed_at,
    )


def parse_medication(raw: dict[str, Any]) -> Medication | None:
    """Build a Medication; invalid quantities/durations become None."""
    if not isinstance(raw, dict):
        return None
    drug_name = _text(raw.get("drug_name") or raw.get("nombre"))
    if drug_name is None:
        return None
    return Medication(
        drug_name=drug_name,
        quantity=to_positive_int(raw.get("quantity", raw.get("cantidad"))),
        description=_text(raw.get("description") or raw.get("descripcion")),
        duration_days=to_positive_int(raw.get("duration_days", raw.get("duracion_dias"))),
    )


def parse_consultation(raw: dict[str, Any]) -> Consultation | None:
    """Build a Consultation from a list or detail payload.

    Detail payloads nest the consultation under "consultation" with the
    medications alongside; both shapes are accepted.
    """
    if not isinstance(raw, dict):
        return None
    body = raw.get("consultation") if isinstance(raw.get("consultation"), dict) else raw
    consultation_id = _text(body.get("id"))
    created_at = parse_timestamp(body.get("created_at"))
    if consultation_id is None or created_at is None:
        return None
    raw_meds = body.get("medications")
    if not isinstance(raw_meds, list):
        raw_meds = raw.get("medications") if isinstance(raw.get("medications"), list) else []
    return Consultation(
        id=consultation_id,
        patient_id=_text(body.get("patient_id")),
        created_at=created_at,
        diagnosis=_text(body.get("diagnosis")),
        indications=_text(body.get("indications")),
        medications=tuple(parse_many(parse_medication, raw_meds)),
        next_visit_date=parse_date(body.get("next_visit_date")),
    )


def parse_many(parser: Callable[[Any], T | None], items: Any) -> list[T]:
    """Apply a parser to a payload list, dropping records it rejects."""
    if not isinstance(items, Iterable) or isinstance(items, (str, bytes, dict)):
        return []
    parsed: list[T] = []
    dropped = 0
    for item in items:
        try:
            record = parser(item)
        except ValidationError:
            record = None
        if record is None:
            dropped += 1
            continue
        parsed.append(record)
    if dropped:
        name = getattr(parser, "__name__", None) or getattr(getattr(parser, "func", None), "__name__", "parser")
        logger.debug("Dropped %d malformed record(s) via %s", dropped, name)
    return parsed
