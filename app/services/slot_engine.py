"""Slot generation for public booking.

Given a clinic's operating hours and booking rules, compute the ordered
list of bookable ``[start, end)`` instants for one local calendar day.
Everything here is a pure function of its inputs.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta

from app.core.timezones import (
    ensure_utc,
    format_time_in_zone,
    local_date,
    parse_time_to_minutes,
    weekday_index,
    zoned_datetime_to_utc,
)
from app.schemas.appointments import Appointment
from app.schemas.bookings import AvailableSlot
from app.schemas.clinics import BookingRules, OperatingHours


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: ``[a_start, a_end)`` intersects ``[b_start, b_end)``."""
    return a_start < b_end and b_start < a_end


def find_operating_hours(
    operating_hours: Sequence[OperatingHours],
    day_of_week: int,
) -> OperatingHours | None:
    """Return the open hours row for a weekday, or None if missing or closed."""
    for row in operating_hours:
        if row.day_of_week == day_of_week:
            return None if row.is_closed else row
    return None


def is_beyond_advance_window(day: date, timezone_name: str, now: datetime, max_advance_days: int) -> bool:
    """Compare calendar days in the clinic's zone, not instants."""
    last_bookable_day = local_date(now, timezone_name) + timedelta(days=max_advance_days)
    return day > last_bookable_day


def generate_slots(
    day: date,
    timezone_name: str,
    service_duration_minutes: int,
    operating_hours: Sequence[OperatingHours],
    booking_rules: BookingRules,
    now: datetime,
    existing_appointments: Iterable[Appointment] = (),
) -> list[AvailableSlot]:
    """
    Generate bookable slots for a local date.

    Args:
        day: Local calendar date in the clinic's zone
        timezone_name: Clinic IANA timezone
        service_duration_minutes: Length of the service being booked
        operating_hours: One row per weekday
        booking_rules: Lead time, advance window and slot step
        now: Current instant
        existing_appointments: Appointments that may block slots; cancelled
            and deleted ones are ignored

    Returns:
        Slots ordered by start time

    Raises:
        ValueError: If the duration or step is not positive
        InvalidTimeFormatException: If an hours row holds a malformed time.
            ``OperatingHours`` rejects such rows on construction, so this
            only happens for rows built without validation and is treated
            as a programming error rather than a typed result.
    """
    if service_duration_minutes <= 0:
        raise ValueError("service_duration_minutes must be a positive integer")
    if booking_rules.slot_step_minutes <= 0:
        raise ValueError("slot_step_minutes must be a positive integer")

    hours = find_operating_hours(operating_hours, weekday_index(day, timezone_name))
    if hours is None:
        return []

    if parse_time_to_minutes(hours.close_time) <= parse_time_to_minutes(hours.open_time):
        return []

    now = ensure_utc(now)
    if is_beyond_advance_window(day, timezone_name, now, booking_rules.max_advance_days):
        return []

    open_instant = zoned_datetime_to_utc(day, hours.open_time, timezone_name)
    close_instant = zoned_datetime_to_utc(day, hours.close_time, timezone_name)
    earliest_start = now + timedelta(minutes=booking_rules.lead_time_minutes)
    duration = timedelta(minutes=service_duration_minutes)
    step = timedelta(minutes=booking_rules.slot_step_minutes)

    blocked = [
        (appointment.start_time, appointment.end_time)
        for appointment in existing_appointments
        if appointment.is_active
    ]

    slots: list[AvailableSlot] = []
    candidate = open_instant
    while candidate + duration <= close_instant:
        candidate_end = candidate + duration
        if candidate >= earliest_start and not any(
            overlaps(candidate, candidate_end, start, end) for start, end in blocked
        ):
            slots.append(
                AvailableSlot(
                    start_time=candidate,
                    end_time=candidate_end,
                    label=format_time_in_zone(candidate, timezone_name),
                )
            )
        candidate += step

    return slots


def merge_staff_slots(slot_lists: Iterable[Sequence[AvailableSlot]]) -> list[AvailableSlot]:
    """Union of per-staff slot lists: a slot is offered if any provider is free."""
    merged: dict[tuple[datetime, datetime], AvailableSlot] = {}
    for slots in slot_lists:
        for slot in slots:
            merged.setdefault((slot.start_time, slot.end_time), slot)
    return [merged[key] for key in sorted(merged)]
