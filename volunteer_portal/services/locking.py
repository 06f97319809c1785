"""
volunteer_portal.services.locking — Per-Event Mutex Registry
=============================================================

The capacity check and the insert/reactivate that follows it must not
interleave with another register/cancel on the same event.  Inside a single
process this registry hands out one :class:`threading.Lock` per event id;
across processes the registration service additionally takes a row lock on
the event (``SELECT … FOR UPDATE``).

Locks are reference-counted and dropped once no thread holds or waits on
them, so the registry does not grow with the number of events ever seen.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from volunteer_portal.errors import TransientStoreError

logger = logging.getLogger(__name__)

# Module-level singleton — one per process
_registry: KeyedLockRegistry | None = None
_registry_lock = threading.Lock()


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLockRegistry:
    """Hands out one mutex per integer key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: dict[int, _Slot] = {}

    @contextmanager
    def hold(self, key: int, timeout: float | None = None) -> Iterator[None]:
        """Hold the mutex for *key* for the duration of the block.

        Raises :class:`TransientStoreError` if the lock is not acquired within
        *timeout* seconds (``None`` waits forever).
        """
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            slot.users += 1

        acquired = slot.lock.acquire(timeout=-1 if timeout is None else timeout)
        try:
            if not acquired:
                logger.warning("Timed out after %.1fs waiting for lock on key %d", timeout, key)
                raise TransientStoreError("The event is busy, please try again")
            yield
        finally:
            if acquired:
                slot.lock.release()
            with self._guard:
                slot.users -= 1
                if slot.users == 0:
                    self._slots.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)


def get_event_locks() -> KeyedLockRegistry:
    """Return (or create) the process-global per-event lock registry."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = KeyedLockRegistry()
    return _registry
