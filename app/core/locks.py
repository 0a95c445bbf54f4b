"""Per-staff locks serializing appointment writes."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class StaffLockRegistry:
    """
    Hands out one lock per ``(clinic_id, staff_id)``.

    Overlap checks read the current appointment set, so the read and the
    following write for one staff member must happen under the same lock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.Lock] = {}

    def lock_for(self, clinic_id: str, staff_id: str) -> threading.Lock:
        """Return the lock for a staff member, creating it on first use."""
        with self._guard:
            return self._locks.setdefault((clinic_id, staff_id), threading.Lock())

    @contextmanager
    def hold(self, clinic_id: str, staff_id: str) -> Iterator[None]:
        """Hold the staff member's lock for the duration of the block."""
        with self.lock_for(clinic_id, staff_id):
            yield
