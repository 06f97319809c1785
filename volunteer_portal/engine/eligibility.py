"""
volunteer_portal.engine.eligibility — Pure Registration Rules
==============================================================

No DB I/O in here.  The registration service loads rows, then asks this
module whether an event is open and whether two schedules collide.

Rule order for an event (first failure wins):
  1. status must be ACTIVE
  2. start_time must be strictly in the future
  3. registration_deadline, if set, must be strictly in the future

Time windows are half-open ``[start, end)``: two windows overlap iff
``s1 < e2 and s2 < e1``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from volunteer_portal.constants import (
    MSG_DEADLINE_PASSED,
    MSG_EVENT_CANCELLED,
    MSG_EVENT_PAST,
)
from volunteer_portal.database.models import EventStatus
from volunteer_portal.errors import ConflictError

__all__ = [
    "TimeWindow",
    "as_utc",
    "check_open_for_registration",
    "event_window",
    "find_conflict",
    "utcnow",
]


class ScheduledEvent(Protocol):
    status: str
    start_time: datetime
    duration_minutes: int
    registration_deadline: datetime | None


# ---------------------------------------------------------------------------
# Clock helpers
# ---------------------------------------------------------------------------
def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ---------------------------------------------------------------------------
# Time windows
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` in UTC."""

    start: datetime
    end: datetime

    def overlaps(self, other: TimeWindow) -> bool:
        return self.start < other.end and other.start < self.end


def event_window(event: ScheduledEvent) -> TimeWindow:
    start = as_utc(event.start_time)
    return TimeWindow(start, start + timedelta(minutes=event.duration_minutes))


def find_conflict(
    candidate: TimeWindow, others: Iterable[tuple[int, TimeWindow]]
) -> int | None:
    """Return the id of the first window in *others* overlapping *candidate*.

    *others* yields ``(event_id, window)`` pairs.  Returns ``None`` when the
    schedule is clear.
    """
    for event_id, window in others:
        if candidate.overlaps(window):
            return event_id
    return None


# ---------------------------------------------------------------------------
# Event admission
# ---------------------------------------------------------------------------
def check_open_for_registration(event: ScheduledEvent, now: datetime) -> None:
    """Raise :class:`ConflictError` if *event* cannot take a confirmation now."""
    if event.status != EventStatus.ACTIVE:
        raise ConflictError(MSG_EVENT_CANCELLED)

    if as_utc(event.start_time) <= now:
        raise ConflictError(MSG_EVENT_PAST)

    deadline = event.registration_deadline
    if deadline is not None and as_utc(deadline) <= now:
        raise ConflictError(MSG_DEADLINE_PASSED)
