"""Staff-facing patient routes, keyed on the national identifier (cedula).

The lookup goes through a per-session DebouncedLookup: when a caller types
faster than the collaborator answers, only the newest query gets a result
and older in-flight requests are answered 409.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from clinic_insights.auth import get_clinic_client, get_session_context
from clinic_insights.clients.clinic_api import ClinicApiClient, ClinicApiError
from clinic_insights.schemas import PatientSummary
from clinic_insights.services.lookup import LookupRegistry, LookupState
from clinic_insights.services.overview import patient_summary
from clinic_insights.session import SessionContext

router = APIRouter(prefix="/patients", tags=["patients"])

patient_lookups = LookupRegistry()

MISSING_PATIENT_MESSAGE = "Paciente no existe. Debe crearlo primero."


async def require_patient(client: ClinicApiClient, cedula: str) -> dict[str, Any]:
    """Resolve a cedula to the collaborator's patient record.

    Raises:
        HTTPException: 404 if no patient has that identifier.
    """
    patient = await client.find_patient(cedula.strip())
    if patient is None or patient.get("id") is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=MISSING_PATIENT_MESSAGE,
        )
    return patient


@router.get("/lookup")
async def lookup_patient(
    identifier: str = Query(..., min_length=1),
    session: SessionContext = Depends(get_session_context),
    client: ClinicApiClient = Depends(get_clinic_client),
) -> dict[str, Any]:
    """Find a patient by national identifier, last-issued query wins.

    Raises:
        HTTPException: 404 if no patient matches, 409 if a newer lookup
            from the same session superseded this one, 422 for a blank
            identifier.
    """
    lookup = patient_lookups.for_session(session.token)
    outcome = await lookup.submit(identifier, client.find_patient)

    if outcome.state == LookupState.FOUND:
        return outcome.result
    if outcome.state == LookupState.MISSING:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=outcome.message)
    if outcome.state == LookupState.SUPERSEDED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Consulta reemplazada por una mas reciente",
        )
    if outcome.state == LookupState.ERROR:
        raise ClinicApiError(None, outcome.message)
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail="Ingrese una cedula",
    )


@router.get("/{cedula}/summary", response_model=PatientSummary)
async def get_patient_summary(
    cedula: str,
    client: ClinicApiClient = Depends(get_clinic_client),
) -> PatientSummary:
    """Current treatment, latest important labs and next-visit advisory."""
    await require_patient(client, cedula)
    return await patient_summary(client, identifier=cedula)
