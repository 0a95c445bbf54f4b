"""Clinic directory lookups and demo data."""

import structlog

from app.core.exceptions import ErrorCode
from app.core.results import Err, Ok, Result
from app.schemas.clinics import BookingRules, ClinicProfile, ClinicService, OperatingHours
from app.stores.base import ClinicDirectory

logger = structlog.get_logger(__name__)

DEMO_CLINIC = ClinicProfile(
    id="dev-clinic-northview",
    slug="northview-clinic",
    name="Northview Clinic",
    timezone="Asia/Manila",
    operating_hours=[
        OperatingHours(day_of_week=0, open_time="09:00", close_time="12:00", is_closed=True),
        *[
            OperatingHours(day_of_week=day, open_time="09:00", close_time="17:00")
            for day in range(1, 6)
        ],
        OperatingHours(day_of_week=6, open_time="09:00", close_time="12:00"),
    ],
    booking_rules=BookingRules(lead_time_minutes=60, max_advance_days=30, slot_step_minutes=15),
    staff_ids=["staff-dr-santos", "staff-dr-reyes"],
)

DEMO_SERVICES = [
    ClinicService(
        id="svc-general-consult",
        clinic_id=DEMO_CLINIC.id,
        name="General Consultation",
        duration_minutes=30,
    ),
    ClinicService(
        id="svc-follow-up",
        clinic_id=DEMO_CLINIC.id,
        name="Follow-up Consultation",
        duration_minutes=20,
    ),
    ClinicService(
        id="svc-pt",
        clinic_id=DEMO_CLINIC.id,
        name="Physical Therapy Session",
        duration_minutes=60,
    ),
]


def seed_demo_clinic(directory: ClinicDirectory, booking_rules: BookingRules | None = None) -> ClinicProfile:
    """Store the demo clinic and its services, optionally with overridden booking rules."""
    clinic = DEMO_CLINIC
    if booking_rules is not None:
        clinic = DEMO_CLINIC.model_copy(update={"booking_rules": booking_rules})
    directory.save_clinic(clinic)
    for service in DEMO_SERVICES:
        directory.save_service(service)
    logger.info("demo_clinic_seeded", clinic_slug=clinic.slug, services=len(DEMO_SERVICES))
    return clinic


class ClinicDirectoryService:
    """Resolve clinics and their services into typed results."""

    def __init__(self, directory: ClinicDirectory):
        """Initialize service with a directory store."""
        self.directory = directory

    def get_clinic_by_slug(self, slug: str) -> Result[ClinicProfile]:
        """Look up a clinic by its public slug."""
        clinic = self.directory.get_clinic_by_slug(slug)
        if clinic is None:
            return Err(ErrorCode.CLINIC_NOT_FOUND, "Clinic not found.")
        return Ok(clinic)

    def get_clinic(self, clinic_id: str) -> Result[ClinicProfile]:
        """Look up a clinic by id."""
        clinic = self.directory.get_clinic(clinic_id)
        if clinic is None:
            return Err(ErrorCode.CLINIC_NOT_FOUND, "Clinic not found.")
        return Ok(clinic)

    def get_service_for_clinic(self, clinic: ClinicProfile, service_id: str) -> Result[ClinicService]:
        """Look up an active service offered by the given clinic."""
        service = self.directory.get_service(service_id)
        if service is None or service.clinic_id != clinic.id or not service.is_active:
            return Err(ErrorCode.SERVICE_NOT_FOUND, "Service not found.")
        return Ok(service)
