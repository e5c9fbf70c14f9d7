"""Patient-portal routes scoped to the authenticated caller."""

from fastapi import APIRouter, Depends, Query, status

from clinic_insights.auth import get_clinic_client
from clinic_insights.clients.clinic_api import ClinicApiClient
from clinic_insights.routes.glucose import parse_window_param, record_reading, resolve_window
from clinic_insights.schemas import (
    GlucoseEntryCreate,
    GlucoseOverview,
    Hba1cOverview,
    PatientSummary,
    Reading,
    ReadingKind,
)
from clinic_insights.services.overview import glucose_overview, hba1c_overview, patient_summary

router = APIRouter(prefix="/me", tags=["me"])


@router.get("/glucose", response_model=GlucoseOverview)
async def get_my_glucose(
    window: str | None = Query(default=None),
    kind: ReadingKind | None = Query(default=None),
    client: ClinicApiClient = Depends(get_clinic_client),
) -> GlucoseOverview:
    return await glucose_overview(client, None, resolve_window(window), kind)


@router.post("/glucose", response_model=Reading | None, status_code=status.HTTP_201_CREATED)
async def create_my_glucose(
    entry: GlucoseEntryCreate,
    client: ClinicApiClient = Depends(get_clinic_client),
) -> Reading | None:
    return await record_reading(client, None, entry)


@router.get("/hba1c", response_model=Hba1cOverview)
async def get_my_hba1c(
    time_range: str = Query(default="6m", alias="range"),
    client: ClinicApiClient = Depends(get_clinic_client),
) -> Hba1cOverview:
    """HbA1c history from the caller's consultations."""
    parse_window_param(time_range)
    return await hba1c_overview(client, time_range.strip().lower())


@router.get("/summary", response_model=PatientSummary)
async def get_my_summary(
    client: ClinicApiClient = Depends(get_clinic_client),
) -> PatientSummary:
    return await patient_summary(client)
