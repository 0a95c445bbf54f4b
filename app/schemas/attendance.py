"""Patient attendance metric schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class PatientAttendanceMetrics(BaseModel):
    """No-show and late-cancel counters for a patient within one clinic."""

    clinic_id: str
    patient_id: str
    no_show_count: int = Field(default=0, ge=0)
    late_cancel_count: int = Field(default=0, ge=0)
    last_no_show_at: datetime | None = None
    last_late_cancel_at: datetime | None = None
