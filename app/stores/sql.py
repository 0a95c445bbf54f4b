"""SQLAlchemy Core store implementations."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from app.core.timezones import ensure_utc
from app.models.appointments import appointments
from app.models.attendance import attendance_events, patient_attendance_metrics
from app.models.clinics import clinic_operating_hours, clinic_services, clinic_staff, clinics
from app.models.patients import patients
from app.schemas.appointments import Appointment
from app.schemas.attendance import PatientAttendanceMetrics
from app.schemas.clinics import BookingRules, ClinicProfile, ClinicService, OperatingHours
from app.schemas.patients import Patient


def _appointment_values(appointment: Appointment) -> dict[str, Any]:
    values = appointment.model_dump()
    values["status"] = appointment.status.value
    values["source"] = appointment.source.value
    for field in ("start_time", "end_time", "created_at", "updated_at", "cancelled_at", "deleted_at"):
        if values[field] is not None:
            values[field] = ensure_utc(values[field])
    return values


class SQLClinicDirectory:
    """Clinic directory stored in the ``clinics`` family of tables."""

    def __init__(self, engine: Engine):
        """Initialize with a SQLAlchemy engine."""
        self.engine = engine

    def _load(self, conn: Connection, row: Any) -> ClinicProfile:
        hours = conn.execute(
            select(clinic_operating_hours)
            .where(clinic_operating_hours.c.clinic_id == row.id)
            .order_by(clinic_operating_hours.c.day_of_week)
        ).fetchall()
        staff = conn.execute(
            select(clinic_staff.c.staff_id)
            .where(clinic_staff.c.clinic_id == row.id)
            .order_by(clinic_staff.c.position, clinic_staff.c.staff_id)
        ).fetchall()
        return ClinicProfile(
            id=row.id,
            slug=row.slug,
            name=row.name,
            timezone=row.timezone,
            operating_hours=[
                OperatingHours(
                    day_of_week=h.day_of_week,
                    open_time=h.open_time,
                    close_time=h.close_time,
                    is_closed=h.is_closed,
                )
                for h in hours
            ],
            booking_rules=BookingRules(
                lead_time_minutes=row.lead_time_minutes,
                max_advance_days=row.max_advance_days,
                slot_step_minutes=row.slot_step_minutes,
                allow_double_booking=row.allow_double_booking,
            ),
            staff_ids=[s.staff_id for s in staff],
        )

    def get_clinic_by_slug(self, slug: str) -> ClinicProfile | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(clinics).where(clinics.c.slug == slug)).fetchone()
            return self._load(conn, row) if row else None

    def get_clinic(self, clinic_id: str) -> ClinicProfile | None:
        with self.engine.connect() as conn:
            row = conn.execute(select(clinics).where(clinics.c.id == clinic_id)).fetchone()
            return self._load(conn, row) if row else None

    def get_service(self, service_id: str) -> ClinicService | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(clinic_services).where(clinic_services.c.id == service_id)
            ).fetchone()
        return ClinicService.model_validate(dict(row._mapping)) if row else None

    def save_clinic(self, clinic: ClinicProfile) -> ClinicProfile:
        rules = clinic.booking_rules
        with self.engine.begin() as conn:
            conn.execute(delete(clinic_operating_hours).where(clinic_operating_hours.c.clinic_id == clinic.id))
            conn.execute(delete(clinic_staff).where(clinic_staff.c.clinic_id == clinic.id))
            conn.execute(delete(clinics).where(clinics.c.id == clinic.id))
            conn.execute(
                insert(clinics).values(
                    id=clinic.id,
                    slug=clinic.slug,
                    name=clinic.name,
                    timezone=clinic.timezone,
                    lead_time_minutes=rules.lead_time_minutes,
                    max_advance_days=rules.max_advance_days,
                    slot_step_minutes=rules.slot_step_minutes,
                    allow_double_booking=rules.allow_double_booking,
                )
            )
            if clinic.operating_hours:
                conn.execute(
                    insert(clinic_operating_hours),
                    [{"clinic_id": clinic.id, **hours.model_dump()} for hours in clinic.operating_hours],
                )
            if clinic.staff_ids:
                conn.execute(
                    insert(clinic_staff),
                    [
                        {"clinic_id": clinic.id, "staff_id": staff_id, "position": position}
                        for position, staff_id in enumerate(clinic.staff_ids)
                    ],
                )
        return clinic

    def save_service(self, service: ClinicService) -> ClinicService:
        with self.engine.begin() as conn:
            conn.execute(delete(clinic_services).where(clinic_services.c.id == service.id))
            conn.execute(insert(clinic_services).values(**service.model_dump()))
        return service


class SQLPatientStore:
    """Patients table; public bookings upsert on ``(clinic_id, email)``."""

    def __init__(self, engine: Engine):
        """Initialize with a SQLAlchemy engine."""
        self.engine = engine

    def upsert_public_patient(
        self,
        clinic_id: str,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
    ) -> Patient:
        normalized = email.strip().lower()
        condition = and_(patients.c.clinic_id == clinic_id, patients.c.email == normalized)
        details = {"first_name": first_name, "last_name": last_name, "phone": phone}

        try:
            with self.engine.begin() as conn:
                row = conn.execute(select(patients).where(condition)).fetchone()
                if row:
                    conn.execute(update(patients).where(condition).values(**details))
                    patient_id = row.id
                else:
                    patient_id = f"pat_{uuid.uuid4().hex}"
                    conn.execute(
                        insert(patients).values(
                            id=patient_id, clinic_id=clinic_id, email=normalized, **details
                        )
                    )
        except IntegrityError:
            # Lost an insert race for the same email; the winner's row stands
            with self.engine.begin() as conn:
                conn.execute(update(patients).where(condition).values(**details))
                patient_id = conn.execute(select(patients.c.id).where(condition)).scalar_one()

        return Patient(id=patient_id, clinic_id=clinic_id, email=normalized, **details)


class SQLAppointmentStore:
    """Appointments table."""

    def __init__(self, engine: Engine):
        """Initialize with a SQLAlchemy engine."""
        self.engine = engine

    def get(self, appointment_id: str) -> Appointment | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(appointments).where(appointments.c.id == appointment_id)
            ).fetchone()
        return Appointment.model_validate(dict(row._mapping)) if row else None

    def create(self, appointment: Appointment) -> Appointment:
        with self.engine.begin() as conn:
            conn.execute(insert(appointments).values(**_appointment_values(appointment)))
        return appointment.model_copy(deep=True)

    def update(self, appointment: Appointment) -> Appointment:
        values = _appointment_values(appointment)
        values.pop("id")
        with self.engine.begin() as conn:
            result = conn.execute(
                update(appointments).where(appointments.c.id == appointment.id).values(**values)
            )
            if result.rowcount == 0:
                raise KeyError(appointment.id)
        return appointment.model_copy(deep=True)

    def soft_delete(self, appointment_id: str, deleted_at: datetime) -> Appointment | None:
        deleted_at = ensure_utc(deleted_at)
        with self.engine.begin() as conn:
            result = conn.execute(
                update(appointments)
                .where(
                    and_(
                        appointments.c.id == appointment_id,
                        appointments.c.deleted_at.is_(None),
                    )
                )
                .values(deleted_at=deleted_at, updated_at=deleted_at)
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(
                select(appointments).where(appointments.c.id == appointment_id)
            ).fetchone()
        return Appointment.model_validate(dict(row._mapping))

    def _list(self, conditions: list[Any]) -> list[Appointment]:
        stmt = (
            select(appointments)
            .where(and_(appointments.c.deleted_at.is_(None), *conditions))
            .order_by(appointments.c.start_time, appointments.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [Appointment.model_validate(dict(row._mapping)) for row in rows]

    def list_for_staff_window(
        self,
        clinic_id: str,
        staff_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        return self._list(
            [
                appointments.c.clinic_id == clinic_id,
                appointments.c.staff_id == staff_id,
                appointments.c.start_time < ensure_utc(end),
                appointments.c.end_time > ensure_utc(start),
            ]
        )

    def list_for_clinic_window(
        self,
        clinic_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        return self._list(
            [
                appointments.c.clinic_id == clinic_id,
                appointments.c.start_time < ensure_utc(end),
                appointments.c.end_time > ensure_utc(start),
            ]
        )


class SQLAttendanceStore:
    """Attendance counters and the counted-events ledger."""

    def __init__(self, engine: Engine):
        """Initialize with a SQLAlchemy engine."""
        self.engine = engine

    def get(self, clinic_id: str, patient_id: str) -> PatientAttendanceMetrics | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(patient_attendance_metrics).where(
                    and_(
                        patient_attendance_metrics.c.clinic_id == clinic_id,
                        patient_attendance_metrics.c.patient_id == patient_id,
                    )
                )
            ).fetchone()
        if not row:
            return None
        metrics = PatientAttendanceMetrics.model_validate(dict(row._mapping))
        return metrics.model_copy(
            update={
                "last_no_show_at": ensure_utc(metrics.last_no_show_at) if metrics.last_no_show_at else None,
                "last_late_cancel_at": (
                    ensure_utc(metrics.last_late_cancel_at) if metrics.last_late_cancel_at else None
                ),
            }
        )

    def put(self, metrics: PatientAttendanceMetrics) -> None:
        values = metrics.model_dump()
        key = and_(
            patient_attendance_metrics.c.clinic_id == metrics.clinic_id,
            patient_attendance_metrics.c.patient_id == metrics.patient_id,
        )
        with self.engine.begin() as conn:
            result = conn.execute(update(patient_attendance_metrics).where(key).values(**values))
            if result.rowcount == 0:
                conn.execute(insert(patient_attendance_metrics).values(**values))

    def claim_event(self, kind: str, appointment_id: str) -> bool:
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(attendance_events).values(kind=kind, appointment_id=appointment_id))
        except IntegrityError:
            return False
        return True

    def reset(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(attendance_events))
            conn.execute(delete(patient_attendance_metrics))
