from collections.abc import AsyncGenerator, Callable
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient

# Load environment variables from .env file
load_dotenv()

from app.config import Settings
from app.core.tenant import ClinicContext
from app.core.timezones import get_zone
from app.dependencies import ServiceContainer, build_container, get_container
from app.main import app
from app.schemas.appointments import Appointment, AppointmentSource, AppointmentStatus
from app.schemas.clinics import ClinicProfile
from app.services.clinic_service import DEMO_CLINIC

MANILA = "Asia/Manila"


class RecordingNotifier:
    """Notification hooks that remember what they were asked to send."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.events: list[tuple[str, str]] = []

    def appointment_booked(self, appointment: Appointment) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.events.append(("booked", appointment.id))

    def appointment_status_changed(self, appointment: Appointment, old_status: AppointmentStatus) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.events.append((f"{old_status.value}->{appointment.status.value}", appointment.id))


@pytest.fixture
def upcoming_day() -> date:
    """A Monday-Friday date in Manila a few days from today, inside the advance window."""
    day = datetime.now(get_zone(MANILA)).date() + timedelta(days=2)
    while day.isoweekday() > 5:
        day += timedelta(days=1)
    return day


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an isolated in-memory app."""
    return Settings(
        storage_backend="memory",
        idempotency_backend="memory",
        seed_demo_clinic=True,
        late_cancel_window_hours=24,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def container(test_settings: Settings, notifier: RecordingNotifier) -> ServiceContainer:
    """Fresh stores and services for every test."""
    return build_container(test_settings, notifier=notifier)


@pytest.fixture
def clinic(container: ServiceContainer) -> ClinicProfile:
    """The seeded demo clinic (Asia/Manila, Mon-Fri 09:00-17:00)."""
    return container.directory.get_clinic_by_slug(DEMO_CLINIC.slug)


@pytest.fixture
def ctx(clinic: ClinicProfile) -> ClinicContext:
    return ClinicContext(clinic_id=clinic.id)


@pytest.fixture
def clinic_headers(clinic: ClinicProfile) -> dict:
    """Tenant header for staff endpoints."""
    return {"X-Clinic-Id": clinic.id}


@pytest_asyncio.fixture
async def client(container: ServiceContainer) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client wired to the test container."""
    app.dependency_overrides[get_container] = lambda: container

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_appointment() -> Callable[..., Appointment]:
    """Factory for stored-shape appointments with sensible defaults."""

    def factory(**overrides: Any) -> Appointment:
        start = overrides.pop("start_time", datetime(2026, 3, 10, 1, 0, tzinfo=UTC))
        duration = overrides.pop("duration_minutes", 30)
        values: dict[str, Any] = {
            "id": "appt_existing",
            "clinic_id": DEMO_CLINIC.id,
            "patient_id": "pat_1",
            "staff_id": "staff-dr-santos",
            "service_id": "svc-general-consult",
            "start_time": start,
            "end_time": start + timedelta(minutes=duration),
            "status": AppointmentStatus.SCHEDULED,
            "source": AppointmentSource.STAFF,
            "created_at": datetime(2026, 3, 1, tzinfo=UTC),
            "updated_at": datetime(2026, 3, 1, tzinfo=UTC),
        }
        values.update(overrides)
        return Appointment(**values)

    return factory


@pytest.fixture
def sample_booking_data() -> Callable[..., dict]:
    """Public booking payload for a Manila slot."""

    def factory(slot_start: datetime, **overrides: Any) -> dict:
        data: dict[str, Any] = {
            "clinic_slug": DEMO_CLINIC.slug,
            "service_id": "svc-general-consult",
            "slot_start_time": slot_start.isoformat(),
            "patient": {
                "first_name": "Maria",
                "last_name": "Cruz",
                "email": "maria.cruz@example.com",
                "phone": "+639171234567",
            },
            "notes": "First visit",
        }
        data.update(overrides)
        return data

    return factory
