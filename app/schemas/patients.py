"""Patient schemas."""

from pydantic import BaseModel


class Patient(BaseModel):
    """Minimal patient record created by public bookings."""

    id: str
    clinic_id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None

    @property
    def full_name(self) -> str:
        """First and last name joined."""
        return f"{self.first_name} {self.last_name}".strip()
