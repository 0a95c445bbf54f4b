"""Appointment service for staff-facing business logic."""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from app.core.exceptions import ErrorCode
from app.core.locks import StaffLockRegistry
from app.core.results import Err, Ok, Result
from app.core.tenant import ClinicContext
from app.core.timezones import ensure_utc, local_day_window
from app.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentSource,
    AppointmentStatus,
    AppointmentUpdate,
)
from app.schemas.attendance import PatientAttendanceMetrics
from app.services.attendance_service import AttendanceTracker
from app.services.clinic_service import ClinicDirectoryService
from app.services.notification_service import NotificationDispatcher, notify_safely
from app.services.scheduling_rules import (
    TERMINAL_STATUSES,
    compute_end_time,
    validate_scheduling_rules,
    validate_status_transition,
)
from app.stores.base import AppointmentStore, ClinicDirectory

logger = structlog.get_logger(__name__)


def new_appointment_id() -> str:
    """Generate an appointment id."""
    return f"appt_{uuid.uuid4().hex}"


def _utcnow(now: datetime | None) -> datetime:
    return ensure_utc(now) if now is not None else datetime.now(UTC)


class AppointmentService:
    """Service for managing appointments."""

    def __init__(
        self,
        directory: ClinicDirectory,
        appointments: AppointmentStore,
        tracker: AttendanceTracker,
        locks: StaffLockRegistry,
        notifier: NotificationDispatcher,
    ):
        """Initialize service with its collaborators."""
        self.clinics = ClinicDirectoryService(directory)
        self.appointments = appointments
        self.tracker = tracker
        self.locks = locks
        self.notifier = notifier

    def place_appointment(
        self,
        clinic_id: str,
        staff_id: str,
        start: datetime,
        duration_minutes: int,
        now: datetime,
        build: Callable[[datetime], Appointment],
        explicit_end: datetime | None = None,
        allow_double_booking: bool = False,
    ) -> Result[Appointment]:
        """
        Validate and store a new appointment under the staff member's lock.

        Args:
            clinic_id: Clinic the appointment belongs to
            staff_id: Staff member being booked
            start: Start instant
            duration_minutes: Service duration
            now: Current instant
            build: Builds the appointment from its normalized end time
            explicit_end: Caller-supplied end time to check against the duration
            allow_double_booking: Skip the overlap check

        Returns:
            Created appointment or a scheduling error
        """
        end = compute_end_time(start, duration_minutes)
        window_end = max(end, ensure_utc(explicit_end)) if explicit_end else end

        with self.locks.hold(clinic_id, staff_id):
            existing = self.appointments.list_for_staff_window(clinic_id, staff_id, start, window_end)
            result = validate_scheduling_rules(
                start=start,
                duration_minutes=duration_minutes,
                staff_id=staff_id,
                now=now,
                existing_appointments=existing,
                explicit_end=explicit_end,
                allow_double_booking=allow_double_booking,
            )
            if isinstance(result, Err):
                return result
            created = self.appointments.create(build(result.value))

        return Ok(created)

    def create_appointment(
        self,
        ctx: ClinicContext,
        data: AppointmentCreate,
        now: datetime | None = None,
    ) -> Result[Appointment]:
        """
        Create a staff-side appointment.

        Args:
            ctx: Clinic the caller acts for
            data: Appointment creation data
            now: Current instant (defaults to the wall clock)

        Returns:
            Created appointment or a typed error
        """
        now = _utcnow(now)

        clinic_result = self.clinics.get_clinic(ctx.clinic_id)
        if isinstance(clinic_result, Err):
            return clinic_result
        clinic = clinic_result.value

        service_result = self.clinics.get_service_for_clinic(clinic, data.service_id)
        if isinstance(service_result, Err):
            return service_result

        def build(end_time: datetime) -> Appointment:
            return Appointment(
                id=new_appointment_id(),
                clinic_id=clinic.id,
                patient_id=data.patient_id,
                staff_id=data.staff_id,
                service_id=data.service_id,
                start_time=data.start_time,
                end_time=end_time,
                status=AppointmentStatus.SCHEDULED,
                source=AppointmentSource.STAFF,
                notes=data.notes,
                created_at=now,
                updated_at=now,
            )

        result = self.place_appointment(
            clinic_id=clinic.id,
            staff_id=data.staff_id,
            start=data.start_time,
            duration_minutes=data.duration_minutes,
            now=now,
            build=build,
            explicit_end=data.end_time,
            allow_double_booking=data.allow_double_booking or clinic.booking_rules.allow_double_booking,
        )
        if isinstance(result, Err):
            logger.info(
                "appointment_rejected",
                clinic_id=clinic.id,
                staff_id=data.staff_id,
                code=result.code.value,
            )
            return result

        appointment = result.value
        logger.info(
            "appointment_created",
            clinic_id=clinic.id,
            appointment_id=appointment.id,
            staff_id=appointment.staff_id,
        )
        notify_safely(
            lambda: self.notifier.appointment_booked(appointment),
            "appointment_created",
            appointment_id=appointment.id,
        )
        return Ok(appointment)

    def get_appointment(self, ctx: ClinicContext, appointment_id: str) -> Result[Appointment]:
        """Get a live appointment that belongs to the caller's clinic."""
        appointment = self.appointments.get(appointment_id)
        if appointment is None or appointment.deleted_at is not None or appointment.clinic_id != ctx.clinic_id:
            return Err(ErrorCode.APPOINTMENT_NOT_FOUND, "Appointment not found.")
        return Ok(appointment)

    def list_appointments(
        self,
        ctx: ClinicContext,
        filters: AppointmentFilters,
    ) -> Result[AppointmentListResponse]:
        """List the clinic's appointments for one local day."""
        clinic_result = self.clinics.get_clinic(ctx.clinic_id)
        if isinstance(clinic_result, Err):
            return clinic_result
        clinic = clinic_result.value

        start, end = local_day_window(filters.date, clinic.timezone)
        if filters.staff_id:
            items = self.appointments.list_for_staff_window(clinic.id, filters.staff_id, start, end)
        else:
            items = self.appointments.list_for_clinic_window(clinic.id, start, end)

        # Only appointments starting on the local day
        items = [a for a in items if start <= a.start_time < end]
        if filters.status:
            items = [a for a in items if a.status == filters.status]

        return Ok(
            AppointmentListResponse(
                date=filters.date,
                timezone=clinic.timezone,
                total=len(items),
                items=[AppointmentResponse.model_validate(a.model_dump()) for a in items],
            )
        )

    def update_appointment(
        self,
        ctx: ClinicContext,
        appointment_id: str,
        data: AppointmentUpdate,
        now: datetime | None = None,
    ) -> Result[Appointment]:
        """
        Update an appointment's status, time or notes.

        Status changes go through the lifecycle state machine; reschedules
        are re-validated against the staff member's other appointments.

        Args:
            ctx: Clinic the caller acts for
            appointment_id: Appointment ID
            data: Update data
            now: Current instant (defaults to the wall clock)

        Returns:
            Updated appointment or a typed error
        """
        now = _utcnow(now)

        current_result = self.get_appointment(ctx, appointment_id)
        if isinstance(current_result, Err):
            return current_result
        current = current_result.value

        with self.locks.hold(current.clinic_id, current.staff_id):
            # Re-read under the lock; a concurrent delete wins
            current = self.appointments.get(appointment_id)
            if current is None or current.deleted_at is not None:
                return Err(ErrorCode.APPOINTMENT_NOT_FOUND, "Appointment not found.")
            old_status = current.status
            update_values: dict = {"updated_at": now}

            if data.status is not None:
                transition = validate_status_transition(
                    old_status, data.status, data.cancellation_reason
                )
                if isinstance(transition, Err):
                    return transition
                update_values["status"] = transition.value
                if transition.value == AppointmentStatus.CANCELLED:
                    update_values["cancellation_reason"] = data.cancellation_reason
                    if old_status != AppointmentStatus.CANCELLED:
                        update_values["cancelled_at"] = now

            if data.start_time is not None or data.end_time is not None:
                reschedule = self._validate_reschedule(current, data, now, update_values.get("status"))
                if isinstance(reschedule, Err):
                    return reschedule
                update_values["start_time"], update_values["end_time"] = reschedule.value

            if "notes" in data.model_fields_set:
                update_values["notes"] = data.notes

            updated = self.appointments.update(current.model_copy(update=update_values))

        if updated.status == AppointmentStatus.NO_SHOW:
            self.tracker.record_no_show(updated, now)
        elif updated.status == AppointmentStatus.CANCELLED and old_status != AppointmentStatus.CANCELLED:
            self.tracker.record_cancellation(updated, now)

        if updated.status != old_status:
            logger.info(
                "appointment_status_changed",
                appointment_id=updated.id,
                old_status=old_status.value,
                new_status=updated.status.value,
            )
            notify_safely(
                lambda: self.notifier.appointment_status_changed(updated, old_status),
                "status",
                appointment_id=updated.id,
            )

        return Ok(updated)

    def _validate_reschedule(
        self,
        current: Appointment,
        data: AppointmentUpdate,
        now: datetime,
        next_status: AppointmentStatus | None,
    ) -> Result[tuple[datetime, datetime]]:
        status = next_status or current.status
        if status in TERMINAL_STATUSES:
            return Err(
                ErrorCode.INVALID_STATUS_TRANSITION,
                f"Cannot reschedule a {status.value} appointment.",
            )

        start = data.start_time or current.start_time
        if data.end_time is not None:
            duration = data.end_time - start
        else:
            duration = current.end_time - current.start_time
        duration_minutes = int(duration / timedelta(minutes=1))
        if duration_minutes <= 0:
            return Err(ErrorCode.DURATION_MISMATCH, "End time must be after start time.")

        end = compute_end_time(start, duration_minutes)
        existing = self.appointments.list_for_staff_window(
            current.clinic_id, current.staff_id, start, max(end, data.end_time or end)
        )
        result = validate_scheduling_rules(
            start=start,
            duration_minutes=duration_minutes,
            staff_id=current.staff_id,
            now=now,
            existing_appointments=existing,
            explicit_end=data.end_time,
            exclude_appointment_id=current.id,
        )
        if isinstance(result, Err):
            return result
        return Ok((start, result.value))

    def delete_appointment(
        self,
        ctx: ClinicContext,
        appointment_id: str,
        now: datetime | None = None,
    ) -> Result[Appointment]:
        """
        Soft delete an appointment.

        Deleting an appointment that hasn't started counts as a cancellation
        for attendance purposes.
        """
        now = _utcnow(now)

        current_result = self.get_appointment(ctx, appointment_id)
        if isinstance(current_result, Err):
            return current_result
        current = current_result.value

        with self.locks.hold(current.clinic_id, current.staff_id):
            current = self.appointments.get(appointment_id)
            if current is None or current.deleted_at is not None:
                return Err(ErrorCode.APPOINTMENT_NOT_FOUND, "Appointment not found.")
            deleted = self.appointments.soft_delete(appointment_id, now)
            if deleted is None:
                return Err(ErrorCode.APPOINTMENT_NOT_FOUND, "Appointment not found.")

        if current.status not in TERMINAL_STATUSES and current.start_time > now:
            self.tracker.record_cancellation(current, now)

        logger.info("appointment_deleted", appointment_id=appointment_id, clinic_id=ctx.clinic_id)
        return Ok(deleted)

    def get_attendance(self, ctx: ClinicContext, patient_id: str) -> PatientAttendanceMetrics:
        """Attendance metrics for a patient of the caller's clinic."""
        return self.tracker.get_metrics(ctx.clinic_id, patient_id)
