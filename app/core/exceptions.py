"""Custom application exceptions and scheduling error codes."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable codes returned by the scheduling core."""

    PAST_APPOINTMENT = "PAST_APPOINTMENT"
    DURATION_MISMATCH = "DURATION_MISMATCH"
    OVERLAPPING_APPOINTMENT = "OVERLAPPING_APPOINTMENT"
    CANCELLATION_REASON_REQUIRED = "CANCELLATION_REASON_REQUIRED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    BOOKING_IN_PAST = "BOOKING_IN_PAST"
    BOOKING_LEAD_TIME_VIOLATION = "BOOKING_LEAD_TIME_VIOLATION"
    BOOKING_ADVANCE_LIMIT_VIOLATION = "BOOKING_ADVANCE_LIMIT_VIOLATION"
    DUPLICATE_BOOKING = "DUPLICATE_BOOKING"
    CLINIC_NOT_FOUND = "CLINIC_NOT_FOUND"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    APPOINTMENT_NOT_FOUND = "APPOINTMENT_NOT_FOUND"
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    IDEMPOTENCY_IN_PROGRESS = "IDEMPOTENCY_IN_PROGRESS"
    INVALID_TIME_FORMAT = "InvalidTimeFormat"
    INVALID_TIMEZONE = "InvalidTimezone"


# HTTP status used when an error code crosses the API boundary
ERROR_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.PAST_APPOINTMENT: 422,
    ErrorCode.DURATION_MISMATCH: 422,
    ErrorCode.OVERLAPPING_APPOINTMENT: 409,
    ErrorCode.CANCELLATION_REASON_REQUIRED: 422,
    ErrorCode.INVALID_STATUS_TRANSITION: 409,
    ErrorCode.BOOKING_IN_PAST: 422,
    ErrorCode.BOOKING_LEAD_TIME_VIOLATION: 422,
    ErrorCode.BOOKING_ADVANCE_LIMIT_VIOLATION: 422,
    ErrorCode.DUPLICATE_BOOKING: 409,
    ErrorCode.CLINIC_NOT_FOUND: 404,
    ErrorCode.SERVICE_NOT_FOUND: 404,
    ErrorCode.APPOINTMENT_NOT_FOUND: 404,
    ErrorCode.SLOT_UNAVAILABLE: 409,
    ErrorCode.IDEMPOTENCY_IN_PROGRESS: 409,
    ErrorCode.INVALID_TIME_FORMAT: 422,
    ErrorCode.INVALID_TIMEZONE: 422,
}


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str | None = None,
        details: Any | None = None,
    ):
        """Initialize exception with message, status code and optional error code."""
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error", code: str | None = None):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, code=code)


class InvalidTimeFormatException(ValidationException):
    """Raised for wall-clock strings that are not 24-hour ``HH:MM``."""

    def __init__(self, value: str):
        """Initialize with the offending value."""
        self.value = value
        super().__init__(
            f"Invalid time '{value}'. Expected HH:MM (24-hour).",
            code=ErrorCode.INVALID_TIME_FORMAT.value,
        )


class InvalidTimezoneException(ValidationException):
    """Raised for timezone names missing from the IANA database."""

    def __init__(self, name: str):
        """Initialize with the offending timezone name."""
        self.name = name
        super().__init__(
            f"Unknown timezone '{name}'.",
            code=ErrorCode.INVALID_TIMEZONE.value,
        )


class DomainException(AppException):
    """A typed scheduling failure surfaced through the HTTP layer."""

    def __init__(self, code: ErrorCode, message: str, details: Any | None = None):
        """Initialize from an error code, deriving the HTTP status."""
        super().__init__(
            message,
            status_code=ERROR_STATUS_CODES.get(code, 400),
            code=code.value,
            details=details,
        )
