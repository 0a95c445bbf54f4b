"""Tests for the idempotency ledger."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.schemas.idempotency import ReservationStatus
from app.services.idempotency import IdempotencyLedger
from app.stores.memory import InMemoryIdempotencyStore

RESPONSE = {"booking_id": "book_1", "slot_start_time": "2026-03-02T02:00:00Z", "nested": {"ids": [1, 2]}}


@pytest.fixture
def ledger() -> IdempotencyLedger:
    return IdempotencyLedger(InMemoryIdempotencyStore(), ttl_ms=1000)


def test_reserve_complete_replay(ledger: IdempotencyLedger) -> None:
    acquired = ledger.reserve("k", now_ms=1000)
    assert acquired.status == ReservationStatus.ACQUIRED
    assert acquired.token
    assert ledger.reserve("k", now_ms=1100).status == ReservationStatus.IN_PROGRESS

    assert ledger.complete("k", acquired.token, RESPONSE, now_ms=1200) is True
    replay = ledger.reserve("k", now_ms=1300)

    assert replay.status == ReservationStatus.REPLAY
    assert replay.response == RESPONSE
    assert replay.token is None


def test_replayed_response_is_a_copy(ledger: IdempotencyLedger) -> None:
    token = ledger.reserve("k", now_ms=1000).token
    ledger.complete("k", token, RESPONSE, now_ms=1000)

    first = ledger.reserve("k", now_ms=1100)
    first.response["nested"]["ids"].append(3)

    assert ledger.reserve("k", now_ms=1200).response == RESPONSE


def test_expired_in_progress_record_is_reclaimable(ledger: IdempotencyLedger) -> None:
    assert ledger.reserve("k", now_ms=1000).status == ReservationStatus.ACQUIRED
    assert ledger.reserve("k", now_ms=1999).status == ReservationStatus.IN_PROGRESS
    assert ledger.reserve("k", now_ms=2000).status == ReservationStatus.ACQUIRED


def test_completed_record_expires(ledger: IdempotencyLedger) -> None:
    token = ledger.reserve("k", now_ms=1000).token
    ledger.complete("k", token, RESPONSE, now_ms=1200)

    assert ledger.reserve("k", now_ms=2199).status == ReservationStatus.REPLAY
    assert ledger.reserve("k", now_ms=2200).status == ReservationStatus.ACQUIRED


def test_release_frees_the_key(ledger: IdempotencyLedger) -> None:
    token = ledger.reserve("k", now_ms=1000).token
    assert ledger.release("k", token) is True

    assert ledger.reserve("k", now_ms=1001).status == ReservationStatus.ACQUIRED


def test_stale_holder_cannot_release_reclaimed_key(ledger: IdempotencyLedger) -> None:
    """Test that a caller whose reservation expired cannot free the new holder's key."""
    stale = ledger.reserve("k", now_ms=0)
    current = ledger.reserve("k", now_ms=1500)
    assert current.status == ReservationStatus.ACQUIRED
    assert current.token != stale.token

    assert ledger.release("k", stale.token) is False

    assert ledger.reserve("k", now_ms=1600).status == ReservationStatus.IN_PROGRESS


def test_stale_holder_cannot_complete_reclaimed_key(ledger: IdempotencyLedger) -> None:
    stale = ledger.reserve("k", now_ms=0)
    current = ledger.reserve("k", now_ms=1500)

    assert ledger.complete("k", stale.token, {"booking_id": "stale"}, now_ms=1550) is False
    assert ledger.reserve("k", now_ms=1600).status == ReservationStatus.IN_PROGRESS

    assert ledger.complete("k", current.token, RESPONSE, now_ms=1700) is True
    assert ledger.reserve("k", now_ms=1800).response == RESPONSE


def test_complete_after_own_expiry_is_refused(ledger: IdempotencyLedger) -> None:
    token = ledger.reserve("k", now_ms=1000).token

    assert ledger.complete("k", token, RESPONSE, now_ms=2000) is False
    assert ledger.reserve("k", now_ms=2001).status == ReservationStatus.ACQUIRED


def test_keys_are_independent(ledger: IdempotencyLedger) -> None:
    assert ledger.reserve("a", now_ms=1000).status == ReservationStatus.ACQUIRED
    assert ledger.reserve("b", now_ms=1000).status == ReservationStatus.ACQUIRED


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        IdempotencyLedger(InMemoryIdempotencyStore(), ttl_ms=0)


def test_concurrent_reserve_acquires_once() -> None:
    ledger = IdempotencyLedger(InMemoryIdempotencyStore(), ttl_ms=60_000)
    workers = 16
    barrier = threading.Barrier(workers)

    def attempt() -> ReservationStatus:
        barrier.wait()
        return ledger.reserve("double-click").status

    with ThreadPoolExecutor(max_workers=workers) as pool:
        statuses = list(pool.map(lambda _: attempt(), range(workers)))

    assert statuses.count(ReservationStatus.ACQUIRED) == 1
    assert statuses.count(ReservationStatus.IN_PROGRESS) == workers - 1
