"""Exactly-once effects keyed by an idempotency key."""

import copy
import time
import uuid
from collections.abc import Callable
from typing import Any

import structlog

from app.schemas.idempotency import (
    IdempotencyRecord,
    IdempotencyStatus,
    Reservation,
    ReservationStatus,
)
from app.stores.base import IdempotencyStore

logger = structlog.get_logger(__name__)

DEFAULT_IDEMPOTENCY_TTL_MS = 10 * 60 * 1000


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class IdempotencyLedger:
    """
    Reserve / complete protocol over an atomic store.

    ``reserve`` returns ACQUIRED to exactly one caller per live key; others
    see IN_PROGRESS until ``complete`` stores the response, after which
    they get REPLAY with that response. Records expire ``ttl_ms`` after
    their last write; an expired IN_PROGRESS record is treated as abandoned.
    ``complete`` and ``release`` only act on the reservation whose token
    ``reserve`` handed out, so a caller whose record expired and was
    reclaimed cannot touch the new holder's record.
    """

    def __init__(
        self,
        store: IdempotencyStore,
        ttl_ms: int = DEFAULT_IDEMPOTENCY_TTL_MS,
        clock: Callable[[], int] = epoch_ms,
    ):
        """Initialize ledger with a store, a record TTL and a millisecond clock."""
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self.store = store
        self.ttl_ms = ttl_ms
        self.clock = clock

    def reserve(self, key: str, now_ms: int | None = None) -> Reservation:
        """
        Try to take ownership of a key.

        Args:
            key: Idempotency key
            now_ms: Current time in epoch milliseconds (defaults to the clock)

        Returns:
            Reservation with status ACQUIRED (carrying the owner token),
            IN_PROGRESS or REPLAY
        """
        now = self.clock() if now_ms is None else now_ms
        token = uuid.uuid4().hex
        record = IdempotencyRecord(key=key, token=token, created_at_ms=now, expires_at_ms=now + self.ttl_ms)

        # A second pass covers a record that expired or was released between calls
        for _ in range(2):
            if self.store.insert_if_absent(record, now):
                return Reservation(status=ReservationStatus.ACQUIRED, token=token)

            existing = self.store.get(key, now)
            if existing is None:
                continue
            if existing.status == IdempotencyStatus.COMPLETED:
                logger.info("idempotency_replayed", key=key)
                return Reservation(
                    status=ReservationStatus.REPLAY,
                    response=copy.deepcopy(existing.response),
                )
            return Reservation(status=ReservationStatus.IN_PROGRESS)

        return Reservation(status=ReservationStatus.IN_PROGRESS)

    def complete(
        self,
        key: str,
        token: str,
        response: dict[str, Any],
        now_ms: int | None = None,
    ) -> bool:
        """
        Mark a key completed with its response and refresh its expiry.

        Returns:
            False when the reservation expired and another caller now holds the key
        """
        now = self.clock() if now_ms is None else now_ms
        stored = self.store.replace_if_owned(
            IdempotencyRecord(
                key=key,
                token=token,
                status=IdempotencyStatus.COMPLETED,
                response=copy.deepcopy(response),
                created_at_ms=now,
                expires_at_ms=now + self.ttl_ms,
            ),
            now,
        )
        if not stored:
            logger.warning("idempotency_reservation_lost", key=key, action="complete")
        return stored

    def release(self, key: str, token: str) -> bool:
        """Drop a reservation so the key can be acquired again, if it is still ours."""
        released = self.store.delete_if_owned(key, token)
        if not released:
            logger.warning("idempotency_reservation_lost", key=key, action="release")
        return released
