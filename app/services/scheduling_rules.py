"""Scheduling rule validation and the appointment lifecycle state machine."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from app.core.exceptions import ErrorCode
from app.core.results import Err, Ok, Result
from app.core.timezones import ensure_utc
from app.schemas.appointments import Appointment, AppointmentStatus
from app.services.slot_engine import overlaps

TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW, AppointmentStatus.COMPLETED}
)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.COMPLETED,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.COMPLETED,
        }
    ),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


def compute_end_time(start: datetime, duration_minutes: int) -> datetime:
    """Return ``start + duration_minutes`` as aware UTC."""
    return ensure_utc(start) + timedelta(minutes=duration_minutes)


def validate_scheduling_rules(
    start: datetime,
    duration_minutes: int,
    staff_id: str,
    now: datetime,
    existing_appointments: Iterable[Appointment] = (),
    explicit_end: datetime | None = None,
    allow_double_booking: bool = False,
    exclude_appointment_id: str | None = None,
) -> Result[datetime]:
    """
    Decide whether a proposed appointment may be placed.

    Args:
        start: Proposed start instant
        duration_minutes: Service duration
        staff_id: Staff member the appointment is for
        now: Current instant
        existing_appointments: Appointments to check for overlap
        explicit_end: End instant supplied by the caller, must agree with duration
        allow_double_booking: Skip the overlap check
        exclude_appointment_id: Appointment being rescheduled, ignored for overlap

    Returns:
        ``Ok(normalized_end)`` or ``Err`` with DURATION_MISMATCH,
        PAST_APPOINTMENT or OVERLAPPING_APPOINTMENT
    """
    start = ensure_utc(start)
    end = compute_end_time(start, duration_minutes)

    if explicit_end is not None and ensure_utc(explicit_end) != end:
        return Err(
            ErrorCode.DURATION_MISMATCH,
            "End time does not match the service duration.",
            {"expected_end_time": end.isoformat()},
        )

    if start < ensure_utc(now):
        return Err(ErrorCode.PAST_APPOINTMENT, "Appointments cannot start in the past.")

    if not allow_double_booking:
        for appointment in existing_appointments:
            if (
                appointment.staff_id != staff_id
                or appointment.id == exclude_appointment_id
                or not appointment.is_active
            ):
                continue
            if overlaps(start, end, appointment.start_time, appointment.end_time):
                return Err(
                    ErrorCode.OVERLAPPING_APPOINTMENT,
                    "The staff member already has an appointment at this time.",
                    {"conflicting_appointment_id": appointment.id},
                )

    return Ok(end)


def validate_status_transition(
    current: AppointmentStatus,
    target: AppointmentStatus,
    cancellation_reason: str | None = None,
) -> Result[AppointmentStatus]:
    """
    Check a lifecycle transition.

    Re-applying the current status is accepted. Entering CANCELLED always
    needs a non-blank reason, whatever the source state.
    """
    if target == AppointmentStatus.CANCELLED and not (cancellation_reason or "").strip():
        return Err(
            ErrorCode.CANCELLATION_REASON_REQUIRED,
            "A cancellation reason is required.",
        )

    if target == current:
        return Ok(target)

    if target not in ALLOWED_TRANSITIONS[current]:
        return Err(
            ErrorCode.INVALID_STATUS_TRANSITION,
            f"Cannot change status from {current.value} to {target.value}.",
            {"current_status": current.value, "requested_status": target.value},
        )

    return Ok(target)
