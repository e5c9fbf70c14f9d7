"""Glucose history routes: windowed readings, adherence and chart geometry.

Every request refetches from the collaborator API; the window and kind
selectors are applied in the time-series core, never server-side. Staff
routes take the national identifier (cedula), resolved to the
collaborator's patient id before readings are fetched.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status

from clinic_insights.auth import get_clinic_client
from clinic_insights.clients.clinic_api import ClinicApiClient
from clinic_insights.config import settings
from clinic_insights.routes.patients import require_patient
from clinic_insights.schemas import GlucoseEntryCreate, GlucoseOverview, Reading, ReadingKind
from clinic_insights.services.overview import glucose_overview
from clinic_insights.services.timeseries import parse_time_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["glucose"])

# Ten years; anything longer is a malformed request, not a history view
MAX_WINDOW_DAYS = 3650


def parse_window_param(value: str) -> int | None:
    """Parse a window/range query value into days (None means all time).

    Raises:
        HTTPException: 422 for an unrecognized or out-of-bounds preset.
    """
    if value.strip().lower() == "all":
        return None
    days = parse_time_range(value)
    if days is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid window: {value!r}",
        )
    if days > MAX_WINDOW_DAYS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Window exceeds {MAX_WINDOW_DAYS} days",
        )
    return days


def resolve_window(window: str | None) -> int | None:
    """Window query parameter in days, defaulting to the configured window."""
    if window is None:
        return settings.default_glucose_window_days
    return parse_window_param(window)


async def record_reading(
    client: ClinicApiClient,
    patient_id: str | None,
    entry: GlucoseEntryCreate,
) -> Reading | None:
    """Validate and forward a manual glucose entry."""
    try:
        return await client.create_glucose_reading(
            patient_id,
            entry.value,
            entry.kind,
            entry.observed_at or datetime.now(timezone.utc),
            entry.note,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


@router.get("/{cedula}/glucose", response_model=GlucoseOverview)
async def get_patient_glucose(
    cedula: str,
    window: str | None = Query(default=None, description="Days, a preset like 7d/3m, or 'all'"),
    kind: ReadingKind | None = Query(default=None),
    client: ClinicApiClient = Depends(get_clinic_client),
) -> GlucoseOverview:
    """Glucose history view for one patient."""
    window_days = resolve_window(window)
    patient = await require_patient(client, cedula)
    return await glucose_overview(client, str(patient["id"]), window_days, kind)


@router.post(
    "/{cedula}/glucose",
    response_model=Reading | None,
    status_code=status.HTTP_201_CREATED,
)
async def create_patient_glucose(
    cedula: str,
    entry: GlucoseEntryCreate,
    client: ClinicApiClient = Depends(get_clinic_client),
) -> Reading | None:
    """Record a glucose reading for a patient."""
    patient = await require_patient(client, cedula)
    reading = await record_reading(client, str(patient["id"]), entry)
    logger.info("Recorded glucose reading for patient %s", patient["id"])
    return reading
