"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.timezones import ensure_utc


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"
    COMPLETED = "COMPLETED"


class AppointmentSource(str, Enum):
    """Appointment source enumeration."""

    STAFF = "STAFF"
    PUBLIC = "PUBLIC"


class Appointment(BaseModel):
    """Stored appointment. Times are aware UTC, interval is ``[start_time, end_time)``."""

    id: str
    clinic_id: str
    patient_id: str
    staff_id: str
    service_id: str
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    source: AppointmentSource = AppointmentSource.STAFF
    cancellation_reason: str | None = None
    notes: str | None = None
    patient_email: str | None = None
    booking_id: str | None = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator(
        "start_time", "end_time", "created_at", "updated_at", "cancelled_at", "deleted_at"
    )
    @classmethod
    def normalize_utc(cls, v: datetime | None) -> datetime | None:
        """Store every instant as aware UTC."""
        return ensure_utc(v) if v is not None else None

    @property
    def is_active(self) -> bool:
        """Whether the appointment still occupies its staff member's time."""
        return self.deleted_at is None and self.status != AppointmentStatus.CANCELLED


class AppointmentCreate(BaseModel):
    """Schema for creating a staff-side appointment."""

    patient_id: str = Field(..., min_length=1, max_length=120)
    staff_id: str = Field(..., min_length=1, max_length=120)
    service_id: str = Field(..., min_length=1, max_length=120)
    start_time: datetime
    end_time: datetime | None = None
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    notes: str | None = Field(None, max_length=2000)
    allow_double_booking: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, v: datetime | None) -> datetime | None:
        """Normalize to aware UTC."""
        return ensure_utc(v) if v is not None else None


class AppointmentUpdate(BaseModel):
    """Schema for patching an appointment (status, time, notes)."""

    status: AppointmentStatus | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    notes: str | None = Field(None, max_length=2000)
    cancellation_reason: str | None = Field(None, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, v: datetime | None) -> datetime | None:
        """Normalize to aware UTC."""
        return ensure_utc(v) if v is not None else None

    @field_validator("notes", "cancellation_reason")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace."""
        return v.strip() if v is not None else None

    @model_validator(mode="after")
    def validate_not_empty(self) -> "AppointmentUpdate":
        """At least one field is required."""
        if not self.model_fields_set:
            raise ValueError("At least one field is required for update")
        return self


class AppointmentStatusUpdate(BaseModel):
    """Schema for a status-only change."""

    status: AppointmentStatus
    cancellation_reason: str | None = Field(None, max_length=500)

    def to_update(self) -> AppointmentUpdate:
        """Equivalent general patch."""
        return AppointmentUpdate(status=self.status, cancellation_reason=self.cancellation_reason)


class AppointmentResponse(Appointment):
    """Schema for appointment response."""


class AppointmentListResponse(BaseModel):
    """Schema for a day's appointment list."""

    date: date
    timezone: str
    total: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    date: date
    staff_id: str | None = None
    status: AppointmentStatus | None = None
