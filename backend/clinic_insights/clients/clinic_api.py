"""Async client for the clinic's collaborator REST API.

Every request carries the bearer credential from an explicit SessionContext.
Responses are normalized into typed records here, so callers never handle
raw payloads.

Status handling:
- 401/403: the session is cleared and SessionExpiredError is raised
- 404 on list endpoints: empty list; on single lookups: None
- other non-2xx and transport failures: ClinicApiError (retryable by the
  user; this client never retries on its own)
"""

import logging
from datetime import datetime
from functools import partial
from typing import Any

import httpx

from clinic_insights.config import settings
from clinic_insights.schemas.records import (
    Consultation,
    ConsultationLabs,
    Reading,
    ReadingKind,
)
from clinic_insights.services.normalize import (
    parse_consultation,
    parse_lab_result,
    parse_many,
    parse_reading,
    parse_timestamp,
)
from clinic_insights.session import SessionContext

logger = logging.getLogger(__name__)

# Numeric sanity bounds for a manual glucose entry (mg/dL, exclusive)
GLUCOSE_ENTRY_MIN = 20.0
GLUCOSE_ENTRY_MAX = 600.0

# Collaborator spellings for reading kinds
_KIND_WIRE_VALUES: dict[ReadingKind, str | None] = {
    ReadingKind.FASTING: "ayuno",
    ReadingKind.POSTPRANDIAL: "postprandial",
    ReadingKind.UNSPECIFIED: None,
}


class ClinicApiError(Exception):
    """Collaborator API failure (network error or unexpected status)."""

    def __init__(self, status_code: int | None, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class SessionExpiredError(Exception):
    """The collaborator rejected the credential (401/403)."""

    def __init__(self, status_code: int, detail: str = "Session expired") -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class ClinicApiClient:
    """Thin async wrapper around the collaborator endpoints."""

    def __init__(
        self,
        session: SessionContext,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.clinic_api_url).rstrip("/"),
            timeout=timeout or settings.clinic_api_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ClinicApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Send one request and decode its JSON body.

        Returns None for 204 and, when allow_not_found is set, for 404.
        """
        if not self.session.is_authenticated:
            raise SessionExpiredError(401, "Missing session credential")

        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self.session.auth_headers(),
            )
        except httpx.HTTPError as exc:
            logger.warning("Clinic API %s %s failed: %s", method, path, exc)
            raise ClinicApiError(None, "No se pudo conectar con el servicio clinico") from exc

        if response.status_code in (401, 403):
            self.session.clear()
            raise SessionExpiredError(response.status_code, _error_detail(response, "Sesion no valida"))

        if response.status_code == 404 and allow_not_found:
            return None

        if response.status_code >= 400:
            detail = _error_detail(response, "Error inesperado")
            logger.warning("Clinic API %s %s returned %d: %s", method, path, response.status_code, detail)
            raise ClinicApiError(response.status_code, detail)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ClinicApiError(response.status_code, "Respuesta invalida del servicio clinico") from exc

    # =========================================================================
    # Glucose readings
    # =========================================================================

    async def list_glucose_readings(self, patient_id: str | None = None) -> list[Reading]:
        """List glucose readings for a patient (or the caller, if omitted)."""
        path = f"/glucoses/patient/{patient_id}" if patient_id else "/glucoses"
        data = await self._request("GET", path, allow_not_found=True)
        return parse_many(parse_reading, _as_list(data))

    async def create_glucose_reading(
        self,
        patient_id: str | None,
        value: float,
        kind: ReadingKind,
        observed_at: datetime,
        note: str | None = None,
    ) -> Reading | None:
        """Record a glucose reading.

        Raises:
            ValueError: value outside the open interval (20, 600) mg/dL.
        """
        if not (GLUCOSE_ENTRY_MIN < value < GLUCOSE_ENTRY_MAX):
            raise ValueError(
                f"El valor debe estar entre {GLUCOSE_ENTRY_MIN:g} y {GLUCOSE_ENTRY_MAX:g} mg/dL"
            )
        payload = {
            "patient_id": patient_id,
            "value": value,
            "type": _KIND_WIRE_VALUES[kind],
            "taken_at": observed_at.isoformat(),
            "observation": (note or "").strip() or None,
        }
        data = await self._request("POST", "/glucoses", json=payload)
        return parse_reading(data) if isinstance(data, dict) else None

    # =========================================================================
    # Consultations
    # =========================================================================

    async def list_consultations(self, identifier: str | None = None) -> list[Consultation]:
        """List consultations for a patient identifier (staff) or the caller."""
        if identifier:
            data = await self._request(
                "GET", "/admin/consultations", params={"cedula": identifier}, allow_not_found=True
            )
        else:
            data = await self._request("GET", "/patient/consultations", allow_not_found=True)
        return parse_many(parse_consultation, _as_list(data))

    async def get_consultation_labs(self, consultation: Consultation) -> ConsultationLabs:
        """Fetch the lab results recorded in one consultation."""
        data = await self._request(
            "GET", f"/consultas/{consultation.id}/labs", allow_not_found=True
        )
        parser = partial(
            parse_lab_result,
            consultation_id=consultation.id,
            consultation_date=consultation.created_at,
        )
        return ConsultationLabs(
            consultation_id=consultation.id,
            consultation_date=consultation.created_at,
            labs=tuple(parse_many(parser, _as_list(data))),
        )

    async def get_consultation_detail(
        self, consultation_id: str
    ) -> tuple[Consultation | None, ConsultationLabs]:
        """Fetch the printable detail of a consultation (header, meds, labs)."""
        data = await self._request(
            "GET", f"/consultations/{consultation_id}/print", allow_not_found=True
        )
        detail = data if isinstance(data, dict) else {}
        consultation = parse_consultation(detail)
        consultation_date = consultation.created_at if consultation else None
        if consultation_date is None and isinstance(detail.get("consultation"), dict):
            consultation_date = parse_timestamp(detail["consultation"].get("created_at"))
        parser = partial(
            parse_lab_result,
            consultation_id=consultation_id,
            consultation_date=consultation_date,
        )
        labs = ConsultationLabs(
            consultation_id=consultation_id,
            consultation_date=consultation_date,
            labs=tuple(parse_many(parser, _as_list(detail.get("labs")))),
        )
        return consultation, labs

    async def get_current_treatment(self) -> Consultation | None:
        """Server-side shortcut for the caller's latest consultation."""
        data = await self._request("GET", "/patient/medication/current", allow_not_found=True)
        return parse_consultation(data) if isinstance(data, dict) else None

    # =========================================================================
    # Patients
    # =========================================================================

    async def find_patient(self, identifier: str) -> dict[str, Any] | None:
        """Look up a patient by national identifier (cedula)."""
        data = await self._request(
            "GET", "/admin/patients", params={"cedula": identifier}, allow_not_found=True
        )
        return data if isinstance(data, dict) else None


def _as_list(data: Any) -> list:
    """Collaborator list payloads are bare arrays; anything else is empty."""
    return data if isinstance(data, list) else []


def _error_detail(response: httpx.Response, default: str) -> str:
    """Extract the API's "detail" message, falling back to default."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and isinstance(body.get("detail"), str):
        return body["detail"]
    return default
