"""Shared date formatting utilities.

Display formats follow the clinic's locale (es-EC): DD/MM/YYYY and DD/MM.
All functions return an empty string for missing values.
"""

from datetime import date, datetime


def to_day(value: date | datetime) -> date:
    """Strip the time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def format_date(value: date | datetime | None) -> str:
    """Format as DD/MM/YYYY."""
    if value is None:
        return ""
    return to_day(value).strftime("%d/%m/%Y")


def format_short_date(value: date | datetime | None) -> str:
    """Format as DD/MM."""
    if value is None:
        return ""
    return to_day(value).strftime("%d/%m")
