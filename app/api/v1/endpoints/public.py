"""Public (unauthenticated) slot discovery and booking endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Header, Path, Query, Response, status

from app.core.results import unwrap
from app.dependencies import BookingServiceDep
from app.schemas.bookings import (
    PublicBookingConfirmation,
    PublicBookingCreate,
    PublicSlotsResponse,
)

router = APIRouter()

REPLAY_HEADER = "X-Idempotent-Replay"
KEY_HEADER = "X-Idempotency-Key"


@router.get(
    "/clinics/{clinic_slug}/slots",
    response_model=PublicSlotsResponse,
    status_code=status.HTTP_200_OK,
    summary="List bookable slots",
)
def list_slots(
    service: BookingServiceDep,
    clinic_slug: Annotated[str, Path(min_length=2, max_length=80, pattern=r"^[a-z0-9-]+$")],
    day: Annotated[date, Query(alias="date")],
    service_id: Annotated[str, Query(alias="serviceId", min_length=1)],
    staff_id: Annotated[str | None, Query(alias="staffId")] = None,
) -> PublicSlotsResponse:
    """
    List bookable slots for a clinic service on one local day.

    Args:
        service: Booking service
        clinic_slug: Public clinic slug
        day: Local calendar date in the clinic's timezone
        service_id: Service being booked
        staff_id: Restrict to one provider

    Returns:
        Slots offered by at least one free provider
    """
    return unwrap(service.list_public_slots(clinic_slug, day, service_id, staff_id=staff_id))


@router.post(
    "/bookings",
    response_model=PublicBookingConfirmation,
    status_code=status.HTTP_201_CREATED,
    summary="Book a slot",
    responses={200: {"description": "Replay of an earlier booking with the same key"}},
)
def create_booking(
    data: PublicBookingCreate,
    response: Response,
    service: BookingServiceDep,
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key", max_length=200)] = None,
) -> PublicBookingConfirmation:
    """
    Book a slot on behalf of an unauthenticated patient.

    Retries carrying the same ``Idempotency-Key`` return the original
    confirmation with status 200 instead of booking twice.

    Args:
        data: Booking request
        response: Outgoing response, used for status and headers
        service: Booking service
        idempotency_key: Optional caller-supplied key

    Returns:
        Booking confirmation
    """
    outcome = unwrap(service.create_public_booking(data, idempotency_key=idempotency_key))

    if outcome.replayed:
        response.status_code = status.HTTP_200_OK
    response.headers[KEY_HEADER] = outcome.idempotency_key
    response.headers[REPLAY_HEADER] = "true" if outcome.replayed else "false"
    return outcome.confirmation
