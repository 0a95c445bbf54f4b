"""FastAPI dependencies."""

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Annotated

import redis
import structlog
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.engine import Engine

from app.config import Settings, get_settings
from app.core.locks import StaffLockRegistry
from app.core.redis_client import RedisIdempotencyStore, get_redis_client
from app.core.tenant import ClinicContext
from app.database import get_engine, init_db
from app.schemas.clinics import BookingRules
from app.services.appointment_service import AppointmentService
from app.services.attendance_service import AttendanceTracker
from app.services.booking_service import BookingService
from app.services.clinic_service import seed_demo_clinic
from app.services.idempotency import IdempotencyLedger
from app.services.notification_service import NotificationDispatcher, NotificationService
from app.stores.base import (
    AppointmentStore,
    AttendanceStore,
    ClinicDirectory,
    IdempotencyStore,
    PatientStore,
)
from app.stores.memory import (
    InMemoryAppointmentStore,
    InMemoryAttendanceStore,
    InMemoryClinicDirectory,
    InMemoryIdempotencyStore,
    InMemoryPatientStore,
)
from app.stores.sql import (
    SQLAppointmentStore,
    SQLAttendanceStore,
    SQLClinicDirectory,
    SQLPatientStore,
)

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """Stores and services shared by every request."""

    directory: ClinicDirectory
    patients: PatientStore
    appointments: AppointmentStore
    attendance: AttendanceStore
    idempotency: IdempotencyStore
    locks: StaffLockRegistry
    tracker: AttendanceTracker
    ledger: IdempotencyLedger
    notifier: NotificationDispatcher
    appointment_service: AppointmentService
    booking_service: BookingService


def build_container(
    settings: Settings,
    engine: Engine | None = None,
    redis_client: redis.Redis | None = None,
    notifier: NotificationDispatcher | None = None,
) -> ServiceContainer:
    """
    Wire stores and services for the configured backends.

    Args:
        settings: Application settings
        engine: Engine for the sql backend (defaults to the shared engine)
        redis_client: Client for the redis idempotency backend
        notifier: Notification hooks (defaults to structured logging)

    Returns:
        Fully wired container
    """
    if settings.storage_backend == "sql":
        engine = engine or get_engine()
        init_db(engine)
        directory: ClinicDirectory = SQLClinicDirectory(engine)
        patients: PatientStore = SQLPatientStore(engine)
        appointments: AppointmentStore = SQLAppointmentStore(engine)
        attendance: AttendanceStore = SQLAttendanceStore(engine)
    else:
        directory = InMemoryClinicDirectory()
        patients = InMemoryPatientStore()
        appointments = InMemoryAppointmentStore()
        attendance = InMemoryAttendanceStore()

    if settings.idempotency_backend == "redis":
        idempotency: IdempotencyStore = RedisIdempotencyStore(
            redis_client or get_redis_client(),
            prefix=settings.idempotency_key_prefix,
        )
    else:
        idempotency = InMemoryIdempotencyStore()

    if settings.seed_demo_clinic:
        seed_demo_clinic(
            directory,
            BookingRules(
                lead_time_minutes=settings.default_lead_time_minutes,
                max_advance_days=settings.default_max_advance_days,
                slot_step_minutes=settings.default_slot_step_minutes,
            ),
        )

    locks = StaffLockRegistry()
    notifier = notifier or NotificationService()
    tracker = AttendanceTracker(attendance, timedelta(hours=settings.late_cancel_window_hours))
    ledger = IdempotencyLedger(idempotency, ttl_ms=settings.idempotency_ttl_ms)
    appointment_service = AppointmentService(directory, appointments, tracker, locks, notifier)
    booking_service = BookingService(
        directory, patients, appointments, appointment_service, ledger, notifier
    )

    logger.info(
        "service_container_built",
        storage_backend=settings.storage_backend,
        idempotency_backend=settings.idempotency_backend,
    )
    return ServiceContainer(
        directory=directory,
        patients=patients,
        appointments=appointments,
        attendance=attendance,
        idempotency=idempotency,
        locks=locks,
        tracker=tracker,
        ledger=ledger,
        notifier=notifier,
        appointment_service=appointment_service,
        booking_service=booking_service,
    )


@lru_cache
def get_container() -> ServiceContainer:
    """Process-wide container built from settings."""
    return build_container(get_settings())


def get_appointment_service(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> AppointmentService:
    """Staff appointment service."""
    return container.appointment_service


def get_booking_service(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> BookingService:
    """Public booking service."""
    return container.booking_service


def get_clinic_context(
    x_clinic_id: Annotated[str | None, Header()] = None,
) -> ClinicContext:
    """
    Resolve the tenant from the ``X-Clinic-Id`` header.

    Raises:
        HTTPException: If the header is missing or blank
    """
    if x_clinic_id is None or not x_clinic_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Clinic-Id header is required",
        )
    return ClinicContext(clinic_id=x_clinic_id.strip())


# Type aliases for dependency injection
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
CurrentClinic = Annotated[ClinicContext, Depends(get_clinic_context)]
