"""In-memory store implementations.

Every store guards its maps with a ``threading.Lock`` and hands out deep
copies so callers never share mutable state with the store.
"""

import threading
import uuid
from datetime import datetime

from app.schemas.appointments import Appointment
from app.schemas.attendance import PatientAttendanceMetrics
from app.schemas.clinics import ClinicProfile, ClinicService
from app.schemas.idempotency import IdempotencyRecord
from app.schemas.patients import Patient


def _overlaps(appointment: Appointment, start: datetime, end: datetime) -> bool:
    return appointment.start_time < end and start < appointment.end_time


class InMemoryClinicDirectory:
    """Clinic and service lookup backed by dictionaries."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clinics: dict[str, ClinicProfile] = {}
        self._services: dict[str, ClinicService] = {}

    def get_clinic_by_slug(self, slug: str) -> ClinicProfile | None:
        with self._lock:
            for clinic in self._clinics.values():
                if clinic.slug == slug:
                    return clinic.model_copy(deep=True)
        return None

    def get_clinic(self, clinic_id: str) -> ClinicProfile | None:
        with self._lock:
            clinic = self._clinics.get(clinic_id)
            return clinic.model_copy(deep=True) if clinic else None

    def get_service(self, service_id: str) -> ClinicService | None:
        with self._lock:
            service = self._services.get(service_id)
            return service.model_copy(deep=True) if service else None

    def save_clinic(self, clinic: ClinicProfile) -> ClinicProfile:
        with self._lock:
            self._clinics[clinic.id] = clinic.model_copy(deep=True)
        return clinic

    def save_service(self, service: ClinicService) -> ClinicService:
        with self._lock:
            self._services[service.id] = service.model_copy(deep=True)
        return service


class InMemoryPatientStore:
    """Patients keyed by clinic and lowercased email."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._patients: dict[tuple[str, str], Patient] = {}

    def upsert_public_patient(
        self,
        clinic_id: str,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
    ) -> Patient:
        key = (clinic_id, email.strip().lower())
        with self._lock:
            existing = self._patients.get(key)
            patient = Patient(
                id=existing.id if existing else f"pat_{uuid.uuid4().hex}",
                clinic_id=clinic_id,
                first_name=first_name,
                last_name=last_name,
                email=key[1],
                phone=phone,
            )
            self._patients[key] = patient
            return patient.model_copy()


class InMemoryAppointmentStore:
    """Appointments keyed by id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._appointments: dict[str, Appointment] = {}

    def get(self, appointment_id: str) -> Appointment | None:
        with self._lock:
            appointment = self._appointments.get(appointment_id)
            return appointment.model_copy(deep=True) if appointment else None

    def create(self, appointment: Appointment) -> Appointment:
        with self._lock:
            if appointment.id in self._appointments:
                raise ValueError(f"Appointment {appointment.id} already exists")
            self._appointments[appointment.id] = appointment.model_copy(deep=True)
        return appointment.model_copy(deep=True)

    def update(self, appointment: Appointment) -> Appointment:
        with self._lock:
            if appointment.id not in self._appointments:
                raise KeyError(appointment.id)
            self._appointments[appointment.id] = appointment.model_copy(deep=True)
        return appointment.model_copy(deep=True)

    def soft_delete(self, appointment_id: str, deleted_at: datetime) -> Appointment | None:
        with self._lock:
            appointment = self._appointments.get(appointment_id)
            if appointment is None or appointment.deleted_at is not None:
                return None
            deleted = appointment.model_copy(
                update={"deleted_at": deleted_at, "updated_at": deleted_at}, deep=True
            )
            self._appointments[appointment_id] = deleted
            return deleted.model_copy(deep=True)

    def list_for_staff_window(
        self,
        clinic_id: str,
        staff_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        return [
            appointment
            for appointment in self.list_for_clinic_window(clinic_id, start, end)
            if appointment.staff_id == staff_id
        ]

    def list_for_clinic_window(
        self,
        clinic_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        with self._lock:
            matches = [
                appointment.model_copy(deep=True)
                for appointment in self._appointments.values()
                if appointment.clinic_id == clinic_id
                and appointment.deleted_at is None
                and _overlaps(appointment, start, end)
            ]
        return sorted(matches, key=lambda a: (a.start_time, a.id))


class InMemoryAttendanceStore:
    """Attendance counters plus the set of appointment events already counted."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metrics: dict[tuple[str, str], PatientAttendanceMetrics] = {}
        self._claimed: set[tuple[str, str]] = set()

    def get(self, clinic_id: str, patient_id: str) -> PatientAttendanceMetrics | None:
        with self._lock:
            metrics = self._metrics.get((clinic_id, patient_id))
            return metrics.model_copy() if metrics else None

    def put(self, metrics: PatientAttendanceMetrics) -> None:
        with self._lock:
            self._metrics[(metrics.clinic_id, metrics.patient_id)] = metrics.model_copy()

    def claim_event(self, kind: str, appointment_id: str) -> bool:
        with self._lock:
            if (kind, appointment_id) in self._claimed:
                return False
            self._claimed.add((kind, appointment_id))
            return True

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()
            self._claimed.clear()


class InMemoryIdempotencyStore:
    """Single mutex-guarded map; expired records are pruned on insert."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, IdempotencyRecord] = {}

    def _prune(self, now_ms: int) -> None:
        expired = [key for key, record in self._records.items() if record.is_expired(now_ms)]
        for key in expired:
            del self._records[key]

    def insert_if_absent(self, record: IdempotencyRecord, now_ms: int) -> bool:
        with self._lock:
            self._prune(now_ms)
            if record.key in self._records:
                return False
            self._records[record.key] = record.model_copy(deep=True)
            return True

    def get(self, key: str, now_ms: int) -> IdempotencyRecord | None:
        with self._lock:
            record = self._records.get(key)
            if record is None or record.is_expired(now_ms):
                return None
            return record.model_copy(deep=True)

    def replace_if_owned(self, record: IdempotencyRecord, now_ms: int) -> bool:
        with self._lock:
            current = self._records.get(record.key)
            if current is None or current.is_expired(now_ms) or current.token != record.token:
                return False
            self._records[record.key] = record.model_copy(deep=True)
            return True

    def delete_if_owned(self, key: str, token: str) -> bool:
        with self._lock:
            current = self._records.get(key)
            if current is None or current.token != token:
                return False
            del self._records[key]
            return True

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
