"""Tests for the public booking endpoints."""

from datetime import UTC, date, datetime, time

import pytest
from httpx import AsyncClient


def ten_am_manila(day: date) -> datetime:
    return datetime.combine(day, time(2, 0), tzinfo=UTC)


@pytest.mark.asyncio
async def test_list_slots(client: AsyncClient, upcoming_day: date) -> None:
    """Test listing bookable slots."""
    response = await client.get(
        "/api/v1/public/clinics/northview-clinic/slots",
        params={"date": upcoming_day.isoformat(), "serviceId": "svc-general-consult"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["timezone"] == "Asia/Manila"
    assert data["service"]["id"] == "svc-general-consult"
    labels = [slot["label"] for slot in data["slots"]]
    assert labels[0] == "09:00"
    assert "10:00" in labels


@pytest.mark.asyncio
async def test_list_slots_unknown_clinic(client: AsyncClient, upcoming_day: date) -> None:
    response = await client.get(
        "/api/v1/public/clinics/nowhere-clinic/slots",
        params={"date": upcoming_day.isoformat(), "serviceId": "svc-general-consult"},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "CLINIC_NOT_FOUND"


@pytest.mark.asyncio
async def test_book_and_replay(client: AsyncClient, upcoming_day: date, sample_booking_data) -> None:
    """Test that a retry with the same key replays the first confirmation."""
    body = sample_booking_data(ten_am_manila(upcoming_day))
    headers = {"Idempotency-Key": "checkout-42"}

    first = await client.post("/api/v1/public/bookings", json=body, headers=headers)
    assert first.status_code == 201
    assert first.headers["X-Idempotency-Key"] == "public-booking:northview-clinic:checkout-42"
    assert first.headers["X-Idempotent-Replay"] == "false"
    confirmation = first.json()
    assert confirmation["status"] == "SCHEDULED"
    assert confirmation["label"] == "10:00"
    assert confirmation["staff_id"] == "staff-dr-santos"

    retry = await client.post("/api/v1/public/bookings", json=body, headers=headers)
    assert retry.status_code == 200
    assert retry.headers["X-Idempotent-Replay"] == "true"
    assert retry.json() == confirmation


@pytest.mark.asyncio
async def test_duplicate_booking_without_key(client: AsyncClient, upcoming_day: date, sample_booking_data) -> None:
    body = sample_booking_data(ten_am_manila(upcoming_day))

    first = await client.post("/api/v1/public/bookings", json=body)
    assert first.status_code == 201
    assert first.headers["X-Idempotency-Key"].startswith("public-booking:northview-clinic:fp-")

    second = await client.post("/api/v1/public/bookings", json=body)
    assert second.status_code == 409
    assert second.json()["error"] == "DUPLICATE_BOOKING"


@pytest.mark.asyncio
async def test_booking_in_the_past(client: AsyncClient, sample_booking_data) -> None:
    body = sample_booking_data(datetime(2020, 1, 6, 2, 0, tzinfo=UTC))

    response = await client.post("/api/v1/public/bookings", json=body)
    assert response.status_code == 422
    assert response.json()["error"] == "BOOKING_IN_PAST"


@pytest.mark.asyncio
async def test_booking_validation_error(client: AsyncClient, upcoming_day: date, sample_booking_data) -> None:
    body = sample_booking_data(ten_am_manila(upcoming_day))
    body["patient"]["email"] = "not-an-email"

    response = await client.post("/api/v1/public/bookings", json=body)
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_booked_slot_shows_for_staff(
    client: AsyncClient,
    upcoming_day: date,
    sample_booking_data,
    clinic_headers: dict,
) -> None:
    """Test that a public booking appears in the staff day listing."""
    booked = await client.post("/api/v1/public/bookings", json=sample_booking_data(ten_am_manila(upcoming_day)))
    assert booked.status_code == 201

    listing = await client.get(
        "/api/v1/appointments/",
        params={"date": upcoming_day.isoformat()},
        headers=clinic_headers,
    )
    assert listing.status_code == 200
    items = listing.json()["items"]
    assert [item["id"] for item in items] == [booked.json()["appointment_id"]]
    assert items[0]["source"] == "PUBLIC"
