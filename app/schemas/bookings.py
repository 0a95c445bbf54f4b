"""Public booking and slot schemas."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.timezones import ensure_utc
from app.schemas.clinics import ServiceSummary


class AvailableSlot(BaseModel):
    """A bookable ``[start_time, end_time)`` pair with its local label."""

    start_time: datetime
    end_time: datetime
    label: str

    model_config = {"frozen": True}


class PublicSlotsResponse(BaseModel):
    """Schema for the public slot listing."""

    clinic_slug: str
    date: date
    timezone: str
    service: ServiceSummary
    slots: list[AvailableSlot]


class PublicBookingPatient(BaseModel):
    """Patient details captured by the public booking form."""

    first_name: str = Field(..., min_length=1, max_length=80)
    last_name: str = Field(..., min_length=1, max_length=80)
    email: EmailStr = Field(..., max_length=255)
    phone: str = Field(..., min_length=5, max_length=40)

    @field_validator("first_name", "last_name", "phone", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Trim surrounding whitespace."""
        return v.strip() if isinstance(v, str) else v


class PublicBookingCreate(BaseModel):
    """Schema for an unauthenticated booking request."""

    clinic_slug: str = Field(..., min_length=2, max_length=80, pattern=r"^[a-z0-9-]+$")
    service_id: str = Field(..., min_length=1, max_length=120)
    slot_start_time: datetime
    staff_id: str | None = Field(None, min_length=1, max_length=120)
    patient: PublicBookingPatient
    notes: str | None = Field(None, max_length=1000)

    @field_validator("slot_start_time")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        """Normalize to aware UTC."""
        return ensure_utc(v)


class PublicBookingConfirmation(BaseModel):
    """Confirmation returned for a booking, replayed verbatim on retries."""

    booking_id: str
    appointment_id: str
    patient_id: str
    clinic_slug: str
    service_id: str
    staff_id: str
    slot_start_time: datetime
    slot_end_time: datetime
    label: str
    status: Literal["SCHEDULED"] = "SCHEDULED"
    idempotency_key: str
