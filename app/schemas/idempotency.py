"""Idempotency ledger record schemas."""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class IdempotencyStatus(str, Enum):
    """Lifecycle of a ledger record."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ReservationStatus(str, Enum):
    """Outcome of reserving a key."""

    ACQUIRED = "ACQUIRED"
    IN_PROGRESS = "IN_PROGRESS"
    REPLAY = "REPLAY"


class IdempotencyRecord(BaseModel):
    """A ledger entry keyed by an opaque idempotency key.

    ``token`` identifies the reservation that wrote it; only that holder may
    complete or release the record.
    """

    key: str
    token: str
    status: IdempotencyStatus = IdempotencyStatus.IN_PROGRESS
    response: dict[str, Any] | None = None
    created_at_ms: int
    expires_at_ms: int

    def is_expired(self, now_ms: int) -> bool:
        """Whether the record may be reclaimed."""
        return self.expires_at_ms <= now_ms


class Reservation(BaseModel):
    """Result of ``IdempotencyLedger.reserve``."""

    status: ReservationStatus
    response: dict[str, Any] | None = None
    token: str | None = None
