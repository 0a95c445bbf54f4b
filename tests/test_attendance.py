"""Tests for attendance tracking."""

from datetime import UTC, datetime, timedelta

import pytest

from app.schemas.appointments import AppointmentStatus
from app.services.attendance_service import AttendanceTracker
from app.stores.memory import InMemoryAttendanceStore

NOW = datetime(2026, 3, 9, 0, 0, tzinfo=UTC)


@pytest.fixture
def tracker() -> AttendanceTracker:
    return AttendanceTracker(InMemoryAttendanceStore(), late_cancel_window=timedelta(hours=24))


def test_metrics_default_to_zero(tracker: AttendanceTracker) -> None:
    metrics = tracker.get_metrics("clinic", "patient")

    assert metrics.no_show_count == 0
    assert metrics.late_cancel_count == 0
    assert metrics.last_no_show_at is None


def test_no_show_counted_once(tracker: AttendanceTracker, make_appointment) -> None:
    appointment = make_appointment(status=AppointmentStatus.NO_SHOW)

    assert tracker.record_no_show(appointment, NOW) is True
    assert tracker.record_no_show(appointment, NOW + timedelta(hours=1)) is False
    assert tracker.record_no_show(appointment, NOW + timedelta(hours=2)) is False

    metrics = tracker.get_metrics(appointment.clinic_id, appointment.patient_id)
    assert metrics.no_show_count == 1
    assert metrics.last_no_show_at == NOW


def test_no_shows_accumulate_across_appointments(tracker: AttendanceTracker, make_appointment) -> None:
    tracker.record_no_show(make_appointment(id="a1"), NOW)
    tracker.record_no_show(make_appointment(id="a2"), NOW)

    assert tracker.get_metrics("dev-clinic-northview", "pat_1").no_show_count == 2


def test_late_cancel_inside_window(tracker: AttendanceTracker, make_appointment) -> None:
    appointment = make_appointment(start_time=NOW + timedelta(hours=6))

    assert tracker.record_cancellation(appointment, NOW) is True
    # Cancelling the same appointment again never double counts
    assert tracker.record_cancellation(appointment, NOW + timedelta(hours=1)) is False

    metrics = tracker.get_metrics(appointment.clinic_id, appointment.patient_id)
    assert metrics.late_cancel_count == 1
    assert metrics.last_late_cancel_at == NOW


def test_cancel_well_in_advance_is_not_counted(tracker: AttendanceTracker, make_appointment) -> None:
    appointment = make_appointment(start_time=NOW + timedelta(hours=40))

    assert tracker.record_cancellation(appointment, NOW) is False
    assert tracker.get_metrics(appointment.clinic_id, appointment.patient_id).late_cancel_count == 0


def test_cancel_after_start_is_not_a_late_cancel(tracker: AttendanceTracker, make_appointment) -> None:
    appointment = make_appointment(start_time=NOW - timedelta(minutes=5))

    assert tracker.record_cancellation(appointment, NOW) is False


def test_window_boundary(tracker: AttendanceTracker, make_appointment) -> None:
    exactly_window = make_appointment(id="edge", start_time=NOW + timedelta(hours=24))
    just_inside = make_appointment(id="inside", start_time=NOW + timedelta(hours=24) - timedelta(seconds=1))

    assert tracker.is_late_cancellation(exactly_window, NOW) is False
    assert tracker.is_late_cancellation(just_inside, NOW) is True


def test_reset_clears_counters(tracker: AttendanceTracker, make_appointment) -> None:
    appointment = make_appointment()
    tracker.record_no_show(appointment, NOW)

    tracker.reset()

    assert tracker.get_metrics(appointment.clinic_id, appointment.patient_id).no_show_count == 0
