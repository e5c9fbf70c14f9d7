"""View aggregation: one display update from a fresh collaborator fetch.

Each function fetches what it needs through the ClinicApiClient, runs the
pure time-series core, and returns a complete view-model. Nothing is cached
between calls. Empty or insufficient data yields explicit messages instead
of empty structures.

Error handling:
- a failed lab fetch (ClinicApiError) counts as zero labs for that
  consultation and never aborts the aggregation
- SessionExpiredError always propagates, discarding partial results
"""

import asyncio
import logging
from collections.abc import Sequence
from datetime import date, datetime, timezone

from clinic_insights.clients.clinic_api import ClinicApiClient, ClinicApiError
from clinic_insights.config import settings
from clinic_insights.schemas.records import Consultation, ConsultationLabs, ReadingKind
from clinic_insights.schemas.views import (
    GlucoseOverview,
    Hba1cOverview,
    PatientSummary,
    ReadingView,
)
from clinic_insights.services.bands import (
    HBA1C_BAND,
    classify_adherence,
    classify_point,
    classify_zone,
    get_band,
)
from clinic_insights.services.chart_builder import build_glucose_chart, build_hba1c_chart
from clinic_insights.services.hba1c import collect_hba1c_series
from clinic_insights.services.latest_labs import resolve_latest_labs
from clinic_insights.services.timeseries import (
    filter_window,
    order_desc,
    pairwise_trends,
    parse_time_range,
)
from clinic_insights.services.treatment import resolve_current_treatment, summarize_treatment
from clinic_insights.services.visit_schedule import advise_next_visit

logger = logging.getLogger(__name__)

NO_GLUCOSE_MESSAGE = "No hay registros de glucosa"
NO_GLUCOSE_IN_WINDOW_MESSAGE = "No hay registros de glucosa en el periodo seleccionado"
NO_HBA1C_MESSAGE = "No hay resultados de HbA1c disponibles."
NO_CONSULTATIONS_MESSAGE = "No existen consultas registradas"
NO_LABS_MESSAGE = "No existen laboratorios registrados"
INSUFFICIENT_DATA_MESSAGE = "Datos insuficientes para graficar"


# =============================================================================
# Glucose
# =============================================================================


async def glucose_overview(
    client: ClinicApiClient,
    patient_id: str | None,
    window_days: int | None,
    kind: ReadingKind | None = None,
    now: datetime | None = None,
) -> GlucoseOverview:
    """Build the glucose history view for one patient and window."""
    readings = order_desc(await client.list_glucose_readings(patient_id))
    if kind is not None:
        readings = [r for r in readings if r.kind == kind]
    filtered = filter_window(readings, window_days, now)

    band = get_band(kind)
    values = [r.value for r in filtered]
    trends = pairwise_trends(values, epsilon=settings.trend_epsilon)
    adherence = classify_adherence(
        values,
        band,
        ok_ratio=settings.adherence_ok_ratio,
        warn_ratio=settings.adherence_warn_ratio,
    )
    latest_status = (
        classify_point(
            filtered[0].value,
            settings.glucose_hypo_threshold,
            settings.glucose_hyper_threshold,
        )
        if filtered
        else None
    )
    chart = build_glucose_chart(filtered, band)

    if not readings:
        message = NO_GLUCOSE_MESSAGE
    elif not filtered:
        message = NO_GLUCOSE_IN_WINDOW_MESSAGE
    elif chart is None:
        message = INSUFFICIENT_DATA_MESSAGE
    else:
        message = None

    return GlucoseOverview(
        window_days=window_days,
        kind=kind.value if kind else None,
        band=band,
        readings=[
            ReadingView(reading=reading, zone=classify_zone(reading.value, band), trend=reading_trend)
            for reading, reading_trend in zip(filtered, trends)
        ],
        latest_status=latest_status,
        adherence=adherence,
        chart=chart,
        message=message,
    )


# =============================================================================
# Labs
# =============================================================================


async def gather_consultation_labs(
    client: ClinicApiClient,
    consultations: Sequence[Consultation],
    *,
    use_detail: bool = False,
) -> list[ConsultationLabs]:
    """Fetch every consultation's labs concurrently.

    use_detail reads the printable detail endpoint (patient audience)
    instead of the staff lab endpoint.
    """

    async def fetch_one(consultation: Consultation) -> ConsultationLabs:
        try:
            if use_detail:
                _, labs = await client.get_consultation_detail(consultation.id)
                return ConsultationLabs(
                    consultation_id=consultation.id,
                    consultation_date=labs.consultation_date or consultation.created_at,
                    labs=labs.labs,
                )
            return await client.get_consultation_labs(consultation)
        except ClinicApiError as exc:
            logger.warning(
                "Lab fetch failed for consultation %s (%s); treating as no labs",
                consultation.id,
                exc.detail,
            )
            return ConsultationLabs(
                consultation_id=consultation.id,
                consultation_date=consultation.created_at,
            )

    return list(await asyncio.gather(*(fetch_one(c) for c in consultations)))


async def hba1c_overview(
    client: ClinicApiClient,
    time_range: str = "6m",
    now: datetime | None = None,
) -> Hba1cOverview:
    """Build the caller's HbA1c history view."""
    consultations = order_desc(await client.list_consultations())
    recent = consultations[: settings.hba1c_max_consultations]
    labs = await gather_consultation_labs(client, recent, use_detail=True)

    entries = collect_hba1c_series(labs, settings.hba1c_max_consultations)
    if not entries:
        return Hba1cOverview(time_range=time_range, message=NO_HBA1C_MESSAGE)

    latest = entries[-1]
    filtered = filter_window(entries, parse_time_range(time_range), now)
    chart = build_hba1c_chart(filtered, HBA1C_BAND)
    return Hba1cOverview(
        time_range=time_range,
        entries=filtered,
        latest=latest,
        latest_zone=classify_zone(latest.value, HBA1C_BAND),
        chart=chart,
        message=None if chart else INSUFFICIENT_DATA_MESSAGE,
    )


# =============================================================================
# Current-state summary
# =============================================================================


async def patient_summary(
    client: ClinicApiClient,
    identifier: str | None = None,
    today: date | None = None,
) -> PatientSummary:
    """Reduce a patient's consultation history to what matters right now.

    With an identifier the staff endpoints are used; without one the
    caller's own history is read and the current treatment comes from the
    API's shortcut endpoint.
    """
    today = today or datetime.now(timezone.utc).date()
    consultations = await client.list_consultations(identifier)

    if identifier:
        current = resolve_current_treatment(consultations)
    else:
        current = await client.get_current_treatment() or resolve_current_treatment(consultations)

    messages: list[str] = []
    if current is None and not consultations:
        messages.append(NO_CONSULTATIONS_MESSAGE)

    labs = await gather_consultation_labs(client, consultations, use_detail=identifier is None)
    latest_labs = resolve_latest_labs(labs, settings.important_labs)
    if not latest_labs:
        messages.append(NO_LABS_MESSAGE)

    visit = advise_next_visit(
        current.next_visit_date if current else None,
        today,
        warn_days=settings.visit_warn_days,
    )
    return PatientSummary(
        current_treatment=summarize_treatment(current) if current else None,
        latest_labs=latest_labs,
        visit=visit,
        messages=messages,
    )
