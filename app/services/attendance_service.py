"""Patient attendance tracking (no-shows and late cancellations)."""

import threading
from datetime import datetime, timedelta

import structlog

from app.core.timezones import ensure_utc
from app.schemas.appointments import Appointment
from app.schemas.attendance import PatientAttendanceMetrics
from app.stores.base import AttendanceStore

logger = structlog.get_logger(__name__)

NO_SHOW_EVENT = "no_show"
LATE_CANCEL_EVENT = "late_cancel"


class AttendanceTracker:
    """
    Derive per-patient counters from lifecycle transitions and deletions.

    Each appointment counts at most once per event kind; the store's
    ``claim_event`` records which appointments were already counted, so
    re-applying the same status never double counts.
    """

    def __init__(self, store: AttendanceStore, late_cancel_window: timedelta):
        """Initialize tracker with a store and the late-cancel notice threshold."""
        self.store = store
        self.late_cancel_window = late_cancel_window
        self._lock = threading.Lock()

    def get_metrics(self, clinic_id: str, patient_id: str) -> PatientAttendanceMetrics:
        """Return metrics for a patient, zeroed if nothing was recorded yet."""
        metrics = self.store.get(clinic_id, patient_id)
        if metrics is None:
            return PatientAttendanceMetrics(clinic_id=clinic_id, patient_id=patient_id)
        return metrics

    def is_late_cancellation(self, appointment: Appointment, now: datetime) -> bool:
        """Whether cancelling now leaves less notice than the window (and the visit hasn't started)."""
        notice = appointment.start_time - ensure_utc(now)
        return timedelta(0) <= notice < self.late_cancel_window

    def record_no_show(self, appointment: Appointment, now: datetime) -> bool:
        """
        Count a no-show the first time an appointment reaches NO_SHOW.

        Returns:
            True if the counter was incremented
        """
        if not self.store.claim_event(NO_SHOW_EVENT, appointment.id):
            return False

        now = ensure_utc(now)
        with self._lock:
            metrics = self.get_metrics(appointment.clinic_id, appointment.patient_id)
            self.store.put(
                metrics.model_copy(
                    update={
                        "no_show_count": metrics.no_show_count + 1,
                        "last_no_show_at": now,
                    }
                )
            )

        logger.info(
            "no_show_recorded",
            clinic_id=appointment.clinic_id,
            patient_id=appointment.patient_id,
            appointment_id=appointment.id,
        )
        return True

    def record_cancellation(self, appointment: Appointment, now: datetime) -> bool:
        """
        Count a late cancel if the appointment is cancelled (or deleted) inside the window.

        Returns:
            True if the counter was incremented
        """
        if not self.is_late_cancellation(appointment, now):
            return False
        if not self.store.claim_event(LATE_CANCEL_EVENT, appointment.id):
            return False

        now = ensure_utc(now)
        with self._lock:
            metrics = self.get_metrics(appointment.clinic_id, appointment.patient_id)
            self.store.put(
                metrics.model_copy(
                    update={
                        "late_cancel_count": metrics.late_cancel_count + 1,
                        "last_late_cancel_at": now,
                    }
                )
            )

        logger.info(
            "late_cancel_recorded",
            clinic_id=appointment.clinic_id,
            patient_id=appointment.patient_id,
            appointment_id=appointment.id,
            hours_until_start=round((appointment.start_time - now).total_seconds() / 3600, 2),
        )
        return True

    def reset(self) -> None:
        """Clear every counter."""
        self.store.reset()
