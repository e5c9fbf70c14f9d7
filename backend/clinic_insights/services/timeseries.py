"""Windowing and trend derivation for reverse-chronological series."""

import logging
import math
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from clinic_insights.schemas.views import Trend

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DAYS_PER_UNIT = {"d": 1, "w": 7, "m": 30, "y": 365}


def _timestamp_of(item: Any) -> datetime | None:
    """Resolve the time attribute of a series element."""
    for attr in ("taken_at", "date", "observed_at", "created_at"):
        value = getattr(item, attr, None)
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return value
    return None


def order_desc(items: Sequence[T]) -> list[T]:
    """Sort newest first. Items without a timestamp sink to the end."""
    floor = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(items, key=lambda item: _timestamp_of(item) or floor, reverse=True)


def filter_since(items: Sequence[T], cutoff: datetime) -> list[T]:
    """Keep items whose timestamp is at or after cutoff (inclusive)."""
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=timezone.utc)
    kept: list[T] = []
    for item in items:
        ts = _timestamp_of(item)
        if ts is not None and ts >= cutoff:
            kept.append(item)
    return kept


def filter_window(
    items: Sequence[T],
    window_days: float | None,
    now: datetime | None = None,
) -> list[T]:
    """Restrict a series to the last window_days days.

    None means all time and returns the input unchanged, as does a window
    reaching past the earliest representable date. Order is preserved, so
    filtering twice with the same window equals filtering once.
    """
    if window_days is None:
        return list(items)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    try:
        cutoff = now - timedelta(days=window_days)
    except OverflowError:
        return list(items)
    return filter_since(items, cutoff)


def parse_time_range(time_range: str | None) -> int | None:
    """Parse a preset like '7d', '30', '6m', '1y' or 'all' into days.

    Returns None for "all time" and for anything unparseable.
    """
    if not time_range:
        return None
    text = time_range.strip().lower()
    if not text:
        return None
    if text == "all":
        return None
    unit = text[-1] if text[-1] in _DAYS_PER_UNIT else "d"
    digits = text[:-1] if text[-1] in _DAYS_PER_UNIT else text
    try:
        amount = int(digits)
    except ValueError:
        logger.warning("Unrecognized time range preset: %s", time_range)
        return None
    if amount <= 0:
        logger.warning("Non-positive time range preset: %s", time_range)
        return None
    return amount * _DAYS_PER_UNIT[unit]


def trend(current: float | None, previous: float | None, epsilon: float = 0.0) -> Trend | None:
    """Direction of change from previous to current.

    Returns None if either value is missing or not finite.
    """
    if current is None or previous is None:
        return None
    if not (math.isfinite(current) and math.isfinite(previous)):
        return None
    delta = current - previous
    if abs(delta) <= epsilon:
        return Trend.FLAT
    if delta > epsilon:
        return Trend.UP
    return Trend.DOWN


def pairwise_trends(values: Sequence[float | None], epsilon: float = 0.0) -> list[Trend | None]:
    """Trend of each element of a newest-first series versus the next one.

    The last (oldest) element has no trend.
    """
    trends: list[Trend | None] = []
    for index, value in enumerate(values):
        previous = values[index + 1] if index + 1 < len(values) else None
        trends.append(trend(value, previous, epsilon))
    return trends
