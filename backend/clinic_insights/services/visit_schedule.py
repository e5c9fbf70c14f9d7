"""Next-visit countdown and urgency advisory."""

import math
from datetime import date, datetime

from clinic_insights.schemas.views import VisitAdvice, VisitStatus
from clinic_insights.utils.dates import format_date, to_day

DEFAULT_WARN_DAYS = 30

_NEUTRAL_MESSAGE = "Su medico aun no ha programado la proxima cita."


def days_until(next_visit: date | datetime, today: date | datetime) -> int:
    """Whole days from today to next_visit, compared at day granularity."""
    delta = to_day(next_visit) - to_day(today)
    return math.ceil(delta.total_seconds() / 86400)


def advise_next_visit(
    next_visit_date: date | datetime | None,
    today: date | datetime,
    warn_days: int = DEFAULT_WARN_DAYS,
) -> VisitAdvice:
    """Classify how urgent the next scheduled visit is.

    neutral: no visit scheduled
    ok:      more than warn_days away
    warn:    0..warn_days days away (both ends inclusive)
    overdue: in the past; overdue_days is the magnitude
    """
    if next_visit_date is None:
        return VisitAdvice(status=VisitStatus.NEUTRAL, message=_NEUTRAL_MESSAGE)

    visit_day = to_day(next_visit_date)
    delta = days_until(visit_day, today)
    when = format_date(visit_day)

    if delta > warn_days:
        return VisitAdvice(
            status=VisitStatus.OK,
            days_delta=delta,
            next_visit_date=visit_day,
            message=f"Su proximo control esta programado para {when}. Faltan {delta} dias.",
        )
    if delta >= 0:
        return VisitAdvice(
            status=VisitStatus.WARN,
            days_delta=delta,
            next_visit_date=visit_day,
            message=f"Su control medico esta proximo ({when}). Faltan {delta} dias.",
        )
    overdue = abs(delta)
    return VisitAdvice(
        status=VisitStatus.OVERDUE,
        days_delta=delta,
        overdue_days=overdue,
        next_visit_date=visit_day,
        message=(
            f"Su control medico estaba programado para {when} y presenta un retraso "
            f"de {overdue} dias. Por favor agende una cita."
        ),
    )
