"""Pytest configuration and shared fixtures.

This module provides centralized test fixtures for:
- an in-memory stand-in for the collaborator clinic API client
- an HTTP client for API testing with the stand-in wired in
"""

import os

os.environ.setdefault("CLINIC_API_URL", "http://clinic.test")
os.environ.setdefault("LOOKUP_DEBOUNCE_SECONDS", "0")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from clinic_insights.auth import get_clinic_client
from clinic_insights.clients.clinic_api import ClinicApiError
from clinic_insights.main import app
from clinic_insights.schemas import Consultation, ConsultationLabs, Reading

TEST_TOKEN = "test-token"


class FakeClinicClient:
    """Serves canned records with the ClinicApiClient method signatures.

    Set ``failing_labs`` to consultation ids whose lab fetch should fail,
    or ``error`` to make every call raise it.
    """

    def __init__(self) -> None:
        self.readings: list[Reading] = []
        self.consultations: list[Consultation] = []
        self.labs: dict[str, ConsultationLabs] = {}
        self.current: Consultation | None = None
        self.patients: dict[str, dict] = {}
        self.failing_labs: set[str] = set()
        self.error: Exception | None = None
        self.calls: list[tuple] = []

    def _record(self, *call) -> None:
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def list_glucose_readings(self, patient_id: str | None = None) -> list[Reading]:
        self._record("list_glucose_readings", patient_id)
        return list(self.readings)

    async def list_consultations(self, identifier: str | None = None) -> list[Consultation]:
        self._record("list_consultations", identifier)
        return list(self.consultations)

    def _labs_for(self, consultation_id: str, consultation_date) -> ConsultationLabs:
        if consultation_id in self.failing_labs:
            raise ClinicApiError(500, "Error inesperado")
        return self.labs.get(
            consultation_id,
            ConsultationLabs(consultation_id=consultation_id, consultation_date=consultation_date),
        )

    async def get_consultation_labs(self, consultation: Consultation) -> ConsultationLabs:
        self._record("get_consultation_labs", consultation.id)
        return self._labs_for(consultation.id, consultation.created_at)

    async def get_consultation_detail(self, consultation_id: str):
        self._record("get_consultation_detail", consultation_id)
        consultation = next((c for c in self.consultations if c.id == consultation_id), None)
        date = consultation.created_at if consultation else None
        return consultation, self._labs_for(consultation_id, date)

    async def get_current_treatment(self) -> Consultation | None:
        self._record("get_current_treatment")
        return self.current

    async def find_patient(self, identifier: str) -> dict | None:
        self._record("find_patient", identifier)
        return self.patients.get(identifier)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_clinic() -> FakeClinicClient:
    """Empty fake collaborator client; tests fill in the records they need."""
    return FakeClinicClient()


@pytest_asyncio.fixture
async def client(fake_clinic):
    """Async test client for the FastAPI app backed by fake_clinic.

    Sends a bearer token so routes that read the session still resolve.
    """

    async def override_get_clinic_client():
        yield fake_clinic

    app.dependency_overrides[get_clinic_client] = override_get_clinic_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {TEST_TOKEN}"},
    ) as ac:
        yield ac

    app.dependency_overrides.pop(get_clinic_client, None)


@pytest_asyncio.fixture
async def anonymous_client():
    """Async test client with the real auth dependencies in place."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Authorization headers for API requests."""
    return {"Authorization": f"Bearer {TEST_TOKEN}"}
