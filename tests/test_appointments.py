"""Tests for appointment endpoints."""

from datetime import UTC, date, datetime, time, timedelta

import pytest
from httpx import AsyncClient


@pytest.fixture
def sample_appointment_data(upcoming_day: date) -> dict:
    """Sample appointment data for testing."""
    return {
        "patient_id": "pat_1",
        "staff_id": "staff-dr-santos",
        "service_id": "svc-general-consult",
        "start_time": datetime.combine(upcoming_day, time(1, 0), tzinfo=UTC).isoformat(),
        "duration_minutes": 30,
        "notes": "First time patient",
    }


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_detailed_health_and_ping(client: AsyncClient) -> None:
    detailed = await client.get("/api/v1/health/detailed")
    assert detailed.status_code == 200
    assert {"database", "redis"} <= detailed.json().keys()

    ping = await client.get("/api/v1/ping")
    assert ping.json() == {"message": "pong"}


@pytest.mark.asyncio
async def test_clinic_header_required(client: AsyncClient, sample_appointment_data: dict) -> None:
    response = await client.post("/api/v1/appointments/", json=sample_appointment_data)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_appointment(
    client: AsyncClient,
    clinic_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test creating an appointment."""
    response = await client.post(
        "/api/v1/appointments/",
        json=sample_appointment_data,
        headers=clinic_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "SCHEDULED"
    assert data["source"] == "STAFF"
    assert data["notes"] == sample_appointment_data["notes"]
    start = datetime.fromisoformat(data["start_time"])
    assert datetime.fromisoformat(data["end_time"]) - start == timedelta(minutes=30)
    assert "id" in data


@pytest.mark.asyncio
async def test_overlapping_appointment(
    client: AsyncClient,
    clinic_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test that overlapping appointments are rejected unless double booking is allowed."""
    await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=clinic_headers)

    overlapping = {**sample_appointment_data, "patient_id": "pat_2"}
    response = await client.post("/api/v1/appointments/", json=overlapping, headers=clinic_headers)
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "OVERLAPPING_APPOINTMENT"
    assert "conflicting_appointment_id" in body["details"]

    allowed = await client.post(
        "/api/v1/appointments/",
        json={**overlapping, "allow_double_booking": True},
        headers=clinic_headers,
    )
    assert allowed.status_code == 201


@pytest.mark.asyncio
async def test_list_appointments(
    client: AsyncClient,
    clinic_headers: dict,
    sample_appointment_data: dict,
    upcoming_day: date,
) -> None:
    """Test listing appointments."""
    await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=clinic_headers)

    response = await client.get(
        "/api/v1/appointments/",
        params={"date": upcoming_day.isoformat(), "staffId": "staff-dr-santos"},
        headers=clinic_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["timezone"] == "Asia/Manila"

    cancelled_only = await client.get(
        "/api/v1/appointments/",
        params={"date": upcoming_day.isoformat(), "status": "CANCELLED"},
        headers=clinic_headers,
    )
    assert cancelled_only.json()["total"] == 0


@pytest.mark.asyncio
async def test_get_appointment_other_clinic(
    client: AsyncClient,
    clinic_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test that another clinic cannot read the appointment."""
    created = await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=clinic_headers)
    appointment_id = created.json()["id"]

    own = await client.get(f"/api/v1/appointments/{appointment_id}", headers=clinic_headers)
    assert own.status_code == 200

    other = await client.get(f"/api/v1/appointments/{appointment_id}", headers={"X-Clinic-Id": "other"})
    assert other.status_code == 404
    assert other.json()["error"] == "APPOINTMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_update_appointment_status(
    client: AsyncClient,
    clinic_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test the status lifecycle over HTTP."""
    created = await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=clinic_headers)
    appointment_id = created.json()["id"]

    confirmed = await client.patch(
        f"/api/v1/appointments/{appointment_id}",
        json={"status": "CONFIRMED", "notes": "Confirmed by phone"},
        headers=clinic_headers,
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "CONFIRMED"
    assert confirmed.json()["notes"] == "Confirmed by phone"

    no_reason = await client.patch(
        f"/api/v1/appointments/{appointment_id}/status",
        json={"status": "CANCELLED"},
        headers=clinic_headers,
    )
    assert no_reason.status_code == 422
    assert no_reason.json()["error"] == "CANCELLATION_REASON_REQUIRED"

    completed = await client.patch(
        f"/api/v1/appointments/{appointment_id}/status",
        json={"status": "COMPLETED"},
        headers=clinic_headers,
    )
    assert completed.status_code == 200

    reopened = await client.patch(
        f"/api/v1/appointments/{appointment_id}/status",
        json={"status": "CONFIRMED"},
        headers=clinic_headers,
    )
    assert reopened.status_code == 409
    assert reopened.json()["error"] == "INVALID_STATUS_TRANSITION"


@pytest.mark.asyncio
async def test_empty_update_is_rejected(
    client: AsyncClient,
    clinic_headers: dict,
    sample_appointment_data: dict,
) -> None:
    created = await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=clinic_headers)

    response = await client.patch(f"/api/v1/appointments/{created.json()['id']}", json={}, headers=clinic_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_appointment(
    client: AsyncClient,
    clinic_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test soft deleting an appointment."""
    created = await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=clinic_headers)
    appointment_id = created.json()["id"]

    response = await client.delete(f"/api/v1/appointments/{appointment_id}", headers=clinic_headers)
    assert response.status_code == 204

    missing = await client.get(f"/api/v1/appointments/{appointment_id}", headers=clinic_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_no_show_attendance(
    client: AsyncClient,
    clinic_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test that marking a no-show twice counts once."""
    created = await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=clinic_headers)
    appointment_id = created.json()["id"]

    for _ in range(2):
        response = await client.patch(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "NO_SHOW"},
            headers=clinic_headers,
        )
        assert response.status_code == 200

    attendance = await client.get("/api/v1/patients/pat_1/attendance", headers=clinic_headers)
    assert attendance.status_code == 200
    data = attendance.json()
    assert data["no_show_count"] == 1
    assert data["late_cancel_count"] == 0


@pytest.mark.asyncio
async def test_request_id_is_echoed_or_generated(client: AsyncClient) -> None:
    echoed = await client.get("/api/v1/ping", headers={"X-Request-ID": "req-123"})
    assert echoed.headers["X-Request-ID"] == "req-123"

    generated = await client.get("/api/v1/ping")
    assert len(generated.headers["X-Request-ID"]) == 32
    assert "X-Process-Time" in generated.headers
