"""Notification dispatch for booking and status changes.

Delivery itself (email / SMS) lives outside this service. Dispatch is
fire-and-forget: a failure is logged and never rolls back the appointment.
"""

from collections.abc import Callable
from typing import Any, Protocol

import structlog

from app.schemas.appointments import Appointment, AppointmentStatus

logger = structlog.get_logger(__name__)

NotificationSink = Callable[[str, dict[str, Any]], None]


class NotificationDispatcher(Protocol):
    """Notification hooks invoked after successful writes."""

    def appointment_booked(self, appointment: Appointment) -> None: ...

    def appointment_status_changed(
        self,
        appointment: Appointment,
        old_status: AppointmentStatus,
    ) -> None: ...


def _log_sink(event: str, payload: dict[str, Any]) -> None:
    logger.info("notification_queued", notification=event, **payload)


class NotificationService:
    """Builds notification payloads and hands them to a sink."""

    def __init__(self, sink: NotificationSink | None = None):
        """Initialize service with a sink (defaults to structured logging)."""
        self.sink = sink or _log_sink

    def appointment_booked(self, appointment: Appointment) -> None:
        """Send booking confirmation."""
        self.sink(
            "appointment_booked",
            {
                "appointment_id": appointment.id,
                "clinic_id": appointment.clinic_id,
                "patient_id": appointment.patient_id,
                "source": appointment.source.value,
                "start_time": appointment.start_time.isoformat(),
            },
        )

    def appointment_status_changed(
        self,
        appointment: Appointment,
        old_status: AppointmentStatus,
    ) -> None:
        """Send status change notice."""
        self.sink(
            "appointment_status_changed",
            {
                "appointment_id": appointment.id,
                "clinic_id": appointment.clinic_id,
                "patient_id": appointment.patient_id,
                "old_status": old_status.value,
                "new_status": appointment.status.value,
            },
        )


def notify_safely(action: Callable[[], None], event: str, **context: Any) -> None:
    """Run a notification hook, logging instead of raising on failure."""
    try:
        action()
    except Exception as e:
        # Log error but don't fail the request
        logger.warning(f"failed_to_send_{event}_notification", error=str(e), **context)
