"""Public booking orchestration.

Resolves the clinic and service, applies the public booking rules,
guards the request with the idempotency ledger and places the
appointment through the staff scheduling path so overlap checks and
per-staff locking are shared.
"""

import hashlib
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

import structlog

from app.core.exceptions import ErrorCode
from app.core.results import Err, Ok, Result
from app.core.timezones import ensure_utc, local_date, local_date_key, local_day_window
from app.schemas.appointments import Appointment, AppointmentSource, AppointmentStatus
from app.schemas.bookings import (
    AvailableSlot,
    PublicBookingConfirmation,
    PublicBookingCreate,
    PublicSlotsResponse,
)
from app.schemas.clinics import ClinicProfile, ClinicService, ServiceSummary
from app.schemas.idempotency import ReservationStatus
from app.services.appointment_service import AppointmentService, new_appointment_id
from app.services.clinic_service import ClinicDirectoryService
from app.services.idempotency import IdempotencyLedger
from app.services.notification_service import NotificationDispatcher, notify_safely
from app.services.slot_engine import generate_slots, is_beyond_advance_window, merge_staff_slots
from app.stores.base import AppointmentStore, ClinicDirectory, PatientStore

logger = structlog.get_logger(__name__)

IDEMPOTENCY_SCOPE = "public-booking"


@dataclass(frozen=True, slots=True)
class BookingOutcome:
    """A confirmation plus whether it was replayed from the ledger."""

    confirmation: PublicBookingConfirmation
    replayed: bool
    idempotency_key: str


def normalize_email(email: str) -> str:
    """Case-insensitive form of an email address."""
    return email.strip().lower()


def build_duplicate_fingerprint(
    clinic_slug: str,
    service_id: str,
    slot_start: datetime,
    patient_email: str,
    timezone_name: str,
) -> str:
    """Identity of a booking: clinic, service, local day and patient email."""
    return "|".join(
        [
            clinic_slug,
            service_id,
            local_date_key(slot_start, timezone_name),
            normalize_email(patient_email),
        ]
    )


def scoped_idempotency_key(clinic_slug: str, key: str) -> str:
    """Namespace a caller-supplied key to the clinic's public booking endpoint."""
    return f"{IDEMPOTENCY_SCOPE}:{clinic_slug}:{key}"


def derived_idempotency_key(clinic_slug: str, fingerprint: str) -> str:
    """Key used when the caller sends none; hashed so the email stays out of the ledger."""
    digest = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()
    return f"{IDEMPOTENCY_SCOPE}:{clinic_slug}:fp-{digest}"


def validate_public_booking_rules(
    payload: PublicBookingCreate,
    clinic: ClinicProfile,
    now: datetime,
    existing_appointments: Sequence[Appointment] = (),
) -> Result[str]:
    """
    Check the public booking rules in order.

    Args:
        payload: Booking request
        clinic: Target clinic
        now: Current instant
        existing_appointments: Clinic appointments on the requested local day

    Returns:
        The duplicate fingerprint when the booking may proceed
    """
    now = ensure_utc(now)
    start = payload.slot_start_time
    rules = clinic.booking_rules

    if start <= now:
        return Err(ErrorCode.BOOKING_IN_PAST, "Selected slot is in the past.")

    if start < now + timedelta(minutes=rules.lead_time_minutes):
        return Err(
            ErrorCode.BOOKING_LEAD_TIME_VIOLATION,
            f"Bookings require at least {rules.lead_time_minutes} minutes notice.",
        )

    if is_beyond_advance_window(local_date(start, clinic.timezone), clinic.timezone, now, rules.max_advance_days):
        return Err(
            ErrorCode.BOOKING_ADVANCE_LIMIT_VIOLATION,
            f"Bookings can only be made up to {rules.max_advance_days} days in advance.",
        )

    fingerprint = build_duplicate_fingerprint(
        clinic.slug, payload.service_id, start, payload.patient.email, clinic.timezone
    )
    for appointment in existing_appointments:
        if not appointment.is_active or not appointment.patient_email:
            continue
        existing_fingerprint = build_duplicate_fingerprint(
            clinic.slug,
            appointment.service_id,
            appointment.start_time,
            appointment.patient_email,
            clinic.timezone,
        )
        if existing_fingerprint == fingerprint:
            return Err(
                ErrorCode.DUPLICATE_BOOKING,
                "A booking for this service already exists for this patient on the selected day.",
            )

    return Ok(fingerprint)


class BookingService:
    """Service for unauthenticated slot discovery and booking."""

    def __init__(
        self,
        directory: ClinicDirectory,
        patients: PatientStore,
        appointments: AppointmentStore,
        appointment_service: AppointmentService,
        ledger: IdempotencyLedger,
        notifier: NotificationDispatcher,
    ):
        """Initialize service with its collaborators."""
        self.clinics = ClinicDirectoryService(directory)
        self.patients = patients
        self.appointments = appointments
        self.appointment_service = appointment_service
        self.ledger = ledger
        self.notifier = notifier

    def _staff_slots(
        self,
        clinic: ClinicProfile,
        service: ClinicService,
        day: date,
        now: datetime,
        staff_ids: Sequence[str],
    ) -> dict[str, list[AvailableSlot]]:
        window_start, window_end = local_day_window(day, clinic.timezone)
        existing = self.appointments.list_for_clinic_window(clinic.id, window_start, window_end)
        return {
            staff_id: generate_slots(
                day=day,
                timezone_name=clinic.timezone,
                service_duration_minutes=service.duration_minutes,
                operating_hours=clinic.operating_hours,
                booking_rules=clinic.booking_rules,
                now=now,
                existing_appointments=[a for a in existing if a.staff_id == staff_id],
            )
            for staff_id in staff_ids
        }

    def list_public_slots(
        self,
        clinic_slug: str,
        day: date,
        service_id: str,
        now: datetime | None = None,
        staff_id: str | None = None,
    ) -> Result[PublicSlotsResponse]:
        """
        List bookable slots for a clinic service on a local day.

        A slot is offered when at least one provider (or the requested
        provider) is free for the whole service duration.
        """
        now = ensure_utc(now) if now is not None else datetime.now(UTC)

        clinic_result = self.clinics.get_clinic_by_slug(clinic_slug)
        if isinstance(clinic_result, Err):
            return clinic_result
        clinic = clinic_result.value

        service_result = self.clinics.get_service_for_clinic(clinic, service_id)
        if isinstance(service_result, Err):
            return service_result
        service = service_result.value

        if staff_id is not None:
            staff_ids = [staff_id] if staff_id in clinic.staff_ids else []
        else:
            staff_ids = list(clinic.staff_ids)

        per_staff = self._staff_slots(clinic, service, day, now, staff_ids)
        return Ok(
            PublicSlotsResponse(
                clinic_slug=clinic.slug,
                date=day,
                timezone=clinic.timezone,
                service=ServiceSummary(
                    id=service.id,
                    name=service.name,
                    duration_minutes=service.duration_minutes,
                ),
                slots=merge_staff_slots(per_staff.values()),
            )
        )

    def _reserve(self, key: str) -> Result[BookingOutcome] | str:
        """Return the owner token when acquired, otherwise the outcome for a replayed or in-flight key."""
        reservation = self.ledger.reserve(key)
        if reservation.status == ReservationStatus.ACQUIRED and reservation.token is not None:
            return reservation.token
        if reservation.status == ReservationStatus.REPLAY and reservation.response is not None:
            confirmation = PublicBookingConfirmation.model_validate(reservation.response)
            return Ok(BookingOutcome(confirmation=confirmation, replayed=True, idempotency_key=key))
        logger.info("public_booking_in_progress", idempotency_key=key)
        return Err(
            ErrorCode.IDEMPOTENCY_IN_PROGRESS,
            "A booking with this idempotency key is already being processed.",
        )

    def create_public_booking(
        self,
        payload: PublicBookingCreate,
        idempotency_key: str | None = None,
        now: datetime | None = None,
    ) -> Result[BookingOutcome]:
        """
        Book a slot on behalf of an unauthenticated patient.

        A caller-supplied idempotency key is reserved before any business
        rule runs so retries replay the first response. Without one, the
        duplicate fingerprint becomes the key once the rules pass. Typed
        failures release the key; an unexpected exception leaves it
        reserved until it expires.

        Args:
            payload: Booking request
            idempotency_key: Optional caller-supplied key
            now: Current instant (defaults to the wall clock)

        Returns:
            Booking outcome or a typed error
        """
        now = ensure_utc(now) if now is not None else datetime.now(UTC)

        clinic_result = self.clinics.get_clinic_by_slug(payload.clinic_slug)
        if isinstance(clinic_result, Err):
            return clinic_result
        clinic = clinic_result.value

        service_result = self.clinics.get_service_for_clinic(clinic, payload.service_id)
        if isinstance(service_result, Err):
            return service_result
        service = service_result.value

        key: str | None = None
        token: str | None = None
        if idempotency_key and idempotency_key.strip():
            key = scoped_idempotency_key(clinic.slug, idempotency_key.strip())
            reserved = self._reserve(key)
            if not isinstance(reserved, str):
                return reserved
            token = reserved

        day = local_date(payload.slot_start_time, clinic.timezone)
        window_start, window_end = local_day_window(day, clinic.timezone)
        existing = self.appointments.list_for_clinic_window(clinic.id, window_start, window_end)

        validation = validate_public_booking_rules(payload, clinic, now, existing)
        if isinstance(validation, Err):
            if key is not None and token is not None:
                self.ledger.release(key, token)
            logger.info(
                "public_booking_rejected",
                clinic_slug=clinic.slug,
                code=validation.code.value,
            )
            return validation

        if key is None or token is None:
            key = derived_idempotency_key(clinic.slug, validation.value)
            reserved = self._reserve(key)
            if not isinstance(reserved, str):
                return reserved
            token = reserved

        placed = self._place_booking(clinic, service, payload, day, key, now)
        if isinstance(placed, Err):
            self.ledger.release(key, token)
            logger.info(
                "public_booking_rejected",
                clinic_slug=clinic.slug,
                code=placed.code.value,
            )
            return placed

        appointment, confirmation = placed.value
        self.ledger.complete(key, token, confirmation.model_dump(mode="json"))

        logger.info(
            "public_booking_created",
            clinic_slug=clinic.slug,
            booking_id=confirmation.booking_id,
            appointment_id=appointment.id,
            staff_id=appointment.staff_id,
        )
        notify_safely(
            lambda: self.notifier.appointment_booked(appointment),
            "booking_confirmation",
            appointment_id=appointment.id,
        )
        return Ok(BookingOutcome(confirmation=confirmation, replayed=False, idempotency_key=key))

    def _place_booking(
        self,
        clinic: ClinicProfile,
        service: ClinicService,
        payload: PublicBookingCreate,
        day: date,
        key: str,
        now: datetime,
    ) -> Result[tuple[Appointment, PublicBookingConfirmation]]:
        if payload.staff_id is not None:
            candidates = [payload.staff_id] if payload.staff_id in clinic.staff_ids else []
        else:
            candidates = list(clinic.staff_ids)

        start = payload.slot_start_time
        per_staff = self._staff_slots(clinic, service, day, now, candidates)
        offered = [
            (staff_id, slot)
            for staff_id in candidates
            for slot in per_staff[staff_id]
            if slot.start_time == start
        ]
        if not offered:
            return Err(ErrorCode.SLOT_UNAVAILABLE, "Selected slot is no longer available.")

        patient = self.patients.upsert_public_patient(
            clinic_id=clinic.id,
            first_name=payload.patient.first_name,
            last_name=payload.patient.last_name,
            email=normalize_email(payload.patient.email),
            phone=payload.patient.phone,
        )
        booking_id = f"book_{uuid.uuid4()}"

        for staff_id, slot in offered:

            def build(end_time: datetime, staff_id: str = staff_id) -> Appointment:
                return Appointment(
                    id=new_appointment_id(),
                    clinic_id=clinic.id,
                    patient_id=patient.id,
                    staff_id=staff_id,
                    service_id=service.id,
                    start_time=start,
                    end_time=end_time,
                    status=AppointmentStatus.SCHEDULED,
                    source=AppointmentSource.PUBLIC,
                    notes=payload.notes,
                    patient_email=normalize_email(payload.patient.email),
                    booking_id=booking_id,
                    created_at=now,
                    updated_at=now,
                )

            result = self.appointment_service.place_appointment(
                clinic_id=clinic.id,
                staff_id=staff_id,
                start=start,
                duration_minutes=service.duration_minutes,
                now=now,
                build=build,
            )
            if isinstance(result, Err):
                # Lost a race for this provider; try the next free one
                if result.code == ErrorCode.OVERLAPPING_APPOINTMENT:
                    continue
                return result

            appointment = result.value
            confirmation = PublicBookingConfirmation(
                booking_id=booking_id,
                appointment_id=appointment.id,
                patient_id=patient.id,
                clinic_slug=clinic.slug,
                service_id=service.id,
                staff_id=staff_id,
                slot_start_time=appointment.start_time,
                slot_end_time=appointment.end_time,
                label=slot.label,
                idempotency_key=key,
            )
            return Ok((appointment, confirmation))

        return Err(ErrorCode.SLOT_UNAVAILABLE, "Selected slot is no longer available.")
