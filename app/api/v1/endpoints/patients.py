"""Patient attendance endpoints."""

from fastapi import APIRouter, status

from app.dependencies import AppointmentServiceDep, CurrentClinic
from app.schemas.attendance import PatientAttendanceMetrics

router = APIRouter()


@router.get(
    "/patients/{patient_id}/attendance",
    response_model=PatientAttendanceMetrics,
    status_code=status.HTTP_200_OK,
    tags=["Patients"],
    summary="Get patient attendance metrics",
)
def get_attendance(
    patient_id: str,
    clinic: CurrentClinic,
    service: AppointmentServiceDep,
) -> PatientAttendanceMetrics:
    """
    No-show and late-cancel counters for a patient of the caller's clinic.

    Patients with no recorded events get zeroed metrics.
    """
    return service.get_attendance(clinic, patient_id)
