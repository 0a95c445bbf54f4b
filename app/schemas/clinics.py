"""Clinic directory schemas: operating hours, booking rules, services."""

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.exceptions import InvalidTimezoneException
from app.core.timezones import TIME_PATTERN, get_zone


class OperatingHours(BaseModel):
    """Opening hours for one weekday (Sunday=0 .. Saturday=6)."""

    day_of_week: int = Field(..., ge=0, le=6)
    open_time: str = Field(..., examples=["09:00"])
    close_time: str = Field(..., examples=["17:00"])
    is_closed: bool = False

    model_config = {"frozen": True}

    @field_validator("open_time", "close_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate 24-hour HH:MM format."""
        if not TIME_PATTERN.match(v):
            raise ValueError("Time must be HH:MM (24-hour)")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "OperatingHours":
        """Open time must precede close time on open days."""
        if not self.is_closed and self.open_time >= self.close_time:
            raise ValueError("open_time must be earlier than close_time when not closed")
        return self


class BookingRules(BaseModel):
    """Per-clinic booking policy."""

    lead_time_minutes: int = Field(default=60, ge=0, le=14 * 24 * 60)
    max_advance_days: int = Field(default=30, ge=1, le=365)
    slot_step_minutes: int = Field(default=15, ge=1, le=240)
    # Staff-only override; public bookings never double-book
    allow_double_booking: bool = False

    model_config = {"frozen": True}


class ClinicProfile(BaseModel):
    """Clinic (tenant) as seen by the scheduling core."""

    id: str
    slug: str = Field(..., min_length=2, max_length=80, pattern=r"^[a-z0-9-]+$")
    name: str
    timezone: str
    operating_hours: list[OperatingHours] = Field(default_factory=list)
    booking_rules: BookingRules = Field(default_factory=BookingRules)
    staff_ids: list[str] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate the IANA timezone name."""
        try:
            get_zone(v)
        except InvalidTimezoneException as e:
            raise ValueError(e.message) from e
        return v


class ClinicService(BaseModel):
    """A bookable service offered by a clinic."""

    id: str
    clinic_id: str
    name: str
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    is_active: bool = True


class ServiceSummary(BaseModel):
    """Service fields exposed on public endpoints."""

    id: str
    name: str
    duration_minutes: int
