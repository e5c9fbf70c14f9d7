"""Tests for the HTTP routes, auth pass-through and error mapping."""

import asyncio
import json
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from clinic_insights.auth import get_clinic_client
from clinic_insights.clients.clinic_api import ClinicApiClient, ClinicApiError, SessionExpiredError
from clinic_insights.main import app
from clinic_insights.schemas import Consultation, ConsultationLabs, LabResult, Reading, ReadingKind
from clinic_insights.session import SessionContext

CEDULA = "1712345678"
GLUCOSE_URL = f"/api/patients/{CEDULA}/glucose"


def _recent_reading(value: float, days_ago: float, kind=ReadingKind.UNSPECIFIED) -> Reading:
    return Reading(
        id=f"r-{value}",
        value=value,
        kind=kind,
        taken_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
    )


@pytest.fixture
def registered(fake_clinic):
    """fake_clinic with one patient whose internal id differs from the cedula."""
    fake_clinic.patients = {CEDULA: {"id": 42, "cedula": CEDULA}}
    return fake_clinic


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "Clinic Insights API"

    @pytest.mark.asyncio
    async def test_security_headers(self, client):
        response = await client.get("/health")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"


# =============================================================================
# Glucose
# =============================================================================


class TestGlucoseRoutes:
    @pytest.mark.asyncio
    async def test_patient_glucose_view(self, client, registered):
        registered.readings = [_recent_reading(120, 1), _recent_reading(250, 2), _recent_reading(95, 40)]
        response = await client.get(GLUCOSE_URL, params={"window": "30"})
        assert response.status_code == 200
        data = response.json()
        assert data["window_days"] == 30
        assert [rv["reading"]["value"] for rv in data["readings"]] == [120, 250]
        assert data["adherence"]["status"] == "warn"
        assert data["latest_status"] == "normal"
        assert len(data["chart"]["points"]) == 2
        assert data["chart"]["x_labels"] == [p["label"] for p in data["chart"]["points"]]

    @pytest.mark.asyncio
    async def test_cedula_resolved_to_patient_id(self, client, registered):
        await client.get(GLUCOSE_URL)
        assert registered.calls[0] == ("find_patient", CEDULA)
        assert ("list_glucose_readings", "42") in registered.calls

    @pytest.mark.asyncio
    async def test_unknown_cedula(self, client, fake_clinic):
        response = await client.get("/api/patients/0000000000/glucose")
        assert response.status_code == 404
        assert not any(call[0] == "list_glucose_readings" for call in fake_clinic.calls)

    @pytest.mark.asyncio
    async def test_default_window_and_all(self, client, registered):
        registered.readings = [_recent_reading(120, 1), _recent_reading(95, 40)]
        default = (await client.get(GLUCOSE_URL)).json()
        assert default["window_days"] == 30
        everything = (await client.get(GLUCOSE_URL, params={"window": "all"})).json()
        assert everything["window_days"] is None
        assert len(everything["readings"]) == 2

    @pytest.mark.asyncio
    async def test_kind_selector(self, client, registered):
        registered.readings = [_recent_reading(100, 1, ReadingKind.FASTING), _recent_reading(200, 2)]
        data = (await client.get(GLUCOSE_URL, params={"kind": "fasting"})).json()
        assert data["kind"] == "fasting"
        assert data["band"]["target_max"] == 130
        assert data["message"] == "Datos insuficientes para graficar"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("window", ["soon", " ", "0", "1000000", "999999999999d"])
    async def test_invalid_window(self, client, registered, window):
        response = await client.get(GLUCOSE_URL, params={"window": window})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_blank_window_on_own_view(self, client):
        response = await client.get("/api/me/glucose", params={"window": " "})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_longest_allowed_window(self, client):
        response = await client.get("/api/me/glucose", params={"window": "10y"})
        assert response.status_code == 200
        assert response.json()["window_days"] == 3650

    @pytest.mark.asyncio
    async def test_collaborator_failure_is_retryable(self, client, fake_clinic):
        fake_clinic.error = ClinicApiError(503, "Servicio no disponible")
        response = await client.get(GLUCOSE_URL)
        assert response.status_code == 502
        assert response.json() == {"detail": "Servicio no disponible", "retryable": True}

    @pytest.mark.asyncio
    async def test_rejected_session_redirects_to_login(self, client, fake_clinic):
        fake_clinic.error = SessionExpiredError(401, "Token expirado")
        response = await client.get(GLUCOSE_URL)
        assert response.status_code == 401
        assert response.json() == {"detail": "Token expirado", "login_url": "/login"}


class TestGlucoseEntry:
    """POST goes through the real client against a mocked collaborator."""

    @pytest.fixture
    def posted(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/admin/patients":
                return httpx.Response(200, json={"id": 42, "cedula": request.url.params["cedula"]})
            captured.append(request)
            return httpx.Response(201, json={
                "id": 99,
                "value": 140,
                "type": "ayuno",
                "taken_at": "2024-03-01T07:00:00Z",
            })

        async def override_get_clinic_client():
            async with ClinicApiClient(
                SessionContext("tok"),
                base_url="http://clinic.test",
                transport=httpx.MockTransport(handler),
            ) as api:
                yield api

        app.dependency_overrides[get_clinic_client] = override_get_clinic_client
        yield captured
        app.dependency_overrides.pop(get_clinic_client, None)

    @pytest.mark.asyncio
    async def test_create(self, anonymous_client, posted):
        response = await anonymous_client.post(
            GLUCOSE_URL,
            json={"value": 140, "kind": "fasting", "observed_at": "2024-03-01T07:00:00Z"},
        )
        assert response.status_code == 201
        assert response.json()["id"] == "99"
        assert posted[0].url.path == "/glucoses"
        assert json.loads(posted[0].content)["patient_id"] == "42"

    @pytest.mark.asyncio
    async def test_out_of_range_rejected(self, anonymous_client, posted):
        response = await anonymous_client.post("/api/me/glucose", json={"value": 700})
        assert response.status_code == 422
        assert "600" in response.json()["detail"]
        assert posted == []


# =============================================================================
# Patients and portal
# =============================================================================


class TestPatientLookup:
    @pytest.mark.asyncio
    async def test_found(self, client, registered):
        response = await client.get("/api/patients/lookup", params={"identifier": CEDULA})
        assert response.status_code == 200
        assert response.json()["id"] == 42

    @pytest.mark.asyncio
    async def test_missing(self, client):
        response = await client.get("/api/patients/lookup", params={"identifier": "000"})
        assert response.status_code == 404
        assert "Debe crearlo" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_blank_identifier(self, client):
        response = await client.get("/api/patients/lookup", params={"identifier": "  "})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_collaborator_failure(self, client, fake_clinic):
        fake_clinic.error = ClinicApiError(503, "Servicio no disponible")
        response = await client.get("/api/patients/lookup", params={"identifier": CEDULA})
        assert response.status_code == 502
        assert response.json()["retryable"] is True

    @pytest.mark.asyncio
    async def test_newer_lookup_supersedes_older(self, client, registered):
        """An older lookup still in flight when a newer one is issued gets 409."""
        registered.patients["1711111111"] = {"id": 7, "cedula": "1711111111"}
        started = asyncio.Event()
        release = asyncio.Event()
        find_patient = registered.find_patient

        async def slow_find_patient(identifier):
            if identifier == "1711111111":
                started.set()
                await release.wait()
            return await find_patient(identifier)

        registered.find_patient = slow_find_patient

        first = asyncio.create_task(
            client.get("/api/patients/lookup", params={"identifier": "1711111111"})
        )
        await started.wait()
        second = await client.get("/api/patients/lookup", params={"identifier": CEDULA})
        release.set()
        first_response = await first

        assert second.status_code == 200
        assert second.json()["id"] == 42
        assert first_response.status_code == 409


class TestPatientSummaryRoute:
    @pytest.mark.asyncio
    async def test_summary(self, client, registered):
        consultation = Consultation(
            id="c1",
            created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
            next_visit_date=date.today() + timedelta(days=60),
        )
        registered.consultations = [consultation]
        registered.labs = {
            "c1": ConsultationLabs(
                consultation_id="c1",
                consultation_date=consultation.created_at,
                labs=(LabResult(id="l1", consultation_id="c1", test_name="HbA1c", numeric_value=6.5),),
            )
        }
        response = await client.get(f"/api/patients/{CEDULA}/summary")
        assert response.status_code == 200
        data = response.json()
        assert data["visit"]["status"] == "ok"
        assert data["latest_labs"][0]["interpretation"] == "H"
        assert data["latest_labs"][0]["panel"] == "Diabetes"
        assert data["messages"] == []
        assert ("list_consultations", CEDULA) in registered.calls

    @pytest.mark.asyncio
    async def test_unknown_cedula(self, client):
        response = await client.get("/api/patients/0000000000/summary")
        assert response.status_code == 404


class TestPortalRoutes:
    @pytest.mark.asyncio
    async def test_hba1c_empty(self, client):
        response = await client.get("/api/me/hba1c", params={"range": "all"})
        assert response.status_code == 200
        data = response.json()
        assert data["time_range"] == "all"
        assert data["message"] == "No hay resultados de HbA1c disponibles."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("time_range", ["bogus", " ", "50y"])
    async def test_hba1c_invalid_range(self, client, fake_clinic, time_range):
        response = await client.get("/api/me/hba1c", params={"range": time_range})
        assert response.status_code == 422
        assert fake_clinic.calls == []

    @pytest.mark.asyncio
    async def test_summary_empty(self, client):
        data = (await client.get("/api/me/summary")).json()
        assert data["visit"]["status"] == "neutral"
        assert "No existen consultas registradas" in data["messages"]

    @pytest.mark.asyncio
    async def test_own_glucose_reads_caller(self, client, fake_clinic):
        await client.get("/api/me/glucose")
        assert fake_clinic.calls[0] == ("list_glucose_readings", None)


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_bearer(self, anonymous_client):
        response = await anonymous_client.get("/api/me/summary")
        assert response.status_code == 401
        assert response.json()["login_url"] == "/login"

    @pytest.mark.asyncio
    async def test_lookup_requires_bearer(self, anonymous_client):
        response = await anonymous_client.get("/api/patients/lookup", params={"identifier": CEDULA})
        assert response.status_code == 401
