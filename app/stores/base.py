"""Storage collaborator contracts consumed by the scheduling core."""

from datetime import datetime
from typing import Protocol

from app.schemas.appointments import Appointment
from app.schemas.attendance import PatientAttendanceMetrics
from app.schemas.clinics import ClinicProfile, ClinicService
from app.schemas.idempotency import IdempotencyRecord
from app.schemas.patients import Patient


class ClinicDirectory(Protocol):
    """Lookup of clinics (tenants) and the services they offer."""

    def get_clinic_by_slug(self, slug: str) -> ClinicProfile | None: ...

    def get_clinic(self, clinic_id: str) -> ClinicProfile | None: ...

    def get_service(self, service_id: str) -> ClinicService | None: ...

    def save_clinic(self, clinic: ClinicProfile) -> ClinicProfile: ...

    def save_service(self, service: ClinicService) -> ClinicService: ...


class PatientStore(Protocol):
    """Patient records created by public bookings."""

    def upsert_public_patient(
        self,
        clinic_id: str,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
    ) -> Patient: ...


class AppointmentStore(Protocol):
    """Appointment persistence. Returned models are copies."""

    def get(self, appointment_id: str) -> Appointment | None: ...

    def create(self, appointment: Appointment) -> Appointment: ...

    def update(self, appointment: Appointment) -> Appointment: ...

    def soft_delete(self, appointment_id: str, deleted_at: datetime) -> Appointment | None: ...

    def list_for_staff_window(
        self,
        clinic_id: str,
        staff_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        """Non-deleted appointments of one staff member overlapping ``[start, end)``."""
        ...

    def list_for_clinic_window(
        self,
        clinic_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        """Non-deleted appointments of a clinic overlapping ``[start, end)``."""
        ...


class AttendanceStore(Protocol):
    """Per-patient attendance counters."""

    def get(self, clinic_id: str, patient_id: str) -> PatientAttendanceMetrics | None: ...

    def put(self, metrics: PatientAttendanceMetrics) -> None: ...

    def claim_event(self, kind: str, appointment_id: str) -> bool:
        """Atomically mark an event as counted; False if it already was."""
        ...

    def reset(self) -> None: ...


class IdempotencyStore(Protocol):
    """Backing map for the idempotency ledger."""

    def insert_if_absent(self, record: IdempotencyRecord, now_ms: int) -> bool:
        """Atomically store ``record`` unless a live record holds the key."""
        ...

    def get(self, key: str, now_ms: int) -> IdempotencyRecord | None:
        """Return the live record for ``key``; expired records read as missing."""
        ...

    def replace_if_owned(self, record: IdempotencyRecord, now_ms: int) -> bool:
        """Overwrite the live record for ``record.key`` only if it carries the same token."""
        ...

    def delete_if_owned(self, key: str, token: str) -> bool:
        """Delete the record for ``key`` only if it carries ``token``."""
        ...
