"""Staff appointment endpoints."""

from datetime import date

from fastapi import APIRouter, Query, status

from app.core.results import unwrap
from app.dependencies import AppointmentServiceDep, CurrentClinic
from app.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
)

router = APIRouter()


def _to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse.model_validate(appointment.model_dump())


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Create new appointment",
)
def create_appointment(
    data: AppointmentCreate,
    clinic: CurrentClinic,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Create a new appointment for the caller's clinic.

    Args:
        data: Appointment creation data
        clinic: Clinic from the X-Clinic-Id header
        service: Appointment service

    Returns:
        Created appointment
    """
    return _to_response(unwrap(service.create_appointment(clinic, data)))


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
def list_appointments(
    clinic: CurrentClinic,
    service: AppointmentServiceDep,
    day: date = Query(..., alias="date"),
    staff_id: str | None = Query(None, alias="staffId"),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
) -> AppointmentListResponse:
    """
    List the clinic's appointments for one local day.

    Args:
        clinic: Clinic from the X-Clinic-Id header
        service: Appointment service
        day: Local calendar date in the clinic's timezone
        staff_id: Filter by staff member
        status_filter: Filter by status

    Returns:
        Appointments starting on that day
    """
    filters = AppointmentFilters(date=day, staff_id=staff_id, status=status_filter)
    return unwrap(service.list_appointments(clinic, filters))


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
def get_appointment(
    appointment_id: str,
    clinic: CurrentClinic,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        DomainException: If the appointment is missing, deleted or owned by another clinic
    """
    return _to_response(unwrap(service.get_appointment(clinic, appointment_id)))


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
)
def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    clinic: CurrentClinic,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Update an appointment's status, time or notes.

    Args:
        appointment_id: Appointment ID
        data: Update data
        clinic: Clinic from the X-Clinic-Id header
        service: Appointment service

    Returns:
        Updated appointment
    """
    return _to_response(unwrap(service.update_appointment(clinic, appointment_id, data)))


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    clinic: CurrentClinic,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Update appointment status (e.g., confirm, cancel, mark no-show)."""
    return _to_response(unwrap(service.update_appointment(clinic, appointment_id, data.to_update())))


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
def delete_appointment(
    appointment_id: str,
    clinic: CurrentClinic,
    service: AppointmentServiceDep,
) -> None:
    """
    Soft delete an appointment.

    Deleting an upcoming appointment inside the late-cancel window counts
    against the patient's attendance.
    """
    unwrap(service.delete_appointment(clinic, appointment_id))
