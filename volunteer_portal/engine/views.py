"""
volunteer_portal.engine.views — Read Models Returned by the Core
=================================================================

Immutable snapshots built from ORM rows while the session is still open, so
callers never touch lazy relationships after the transaction ends.

* :class:`RegistrationView` — a registration plus its event snapshot
  (volunteer-facing: "my registrations", register result).
* :class:`EventRegistrationView` — a registration plus the registering
  user's summary (organizer-facing: "who signed up").
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from volunteer_portal.engine.eligibility import as_utc

if TYPE_CHECKING:
    from volunteer_portal.database.models import Event, Registration, User


def _serialize(data: dict) -> dict:
    out = {}
    for key, val in data.items():
        if isinstance(val, datetime):
            val = val.isoformat()
        elif isinstance(val, dict):
            val = _serialize(val)
        out[key] = val
    return out


@dataclass(frozen=True, slots=True)
class EventSnapshot:
    id: int
    title: str
    location: str
    start_time: datetime
    duration_minutes: int
    status: str
    image_url: str | None

    @classmethod
    def from_event(cls, event: Event) -> EventSnapshot:
        return cls(
            id=event.id,
            title=event.title,
            location=event.location,
            start_time=as_utc(event.start_time),
            duration_minutes=event.duration_minutes,
            status=str(event.status),
            image_url=event.image_url,
        )


@dataclass(frozen=True, slots=True)
class UserSummary:
    id: int
    name: str
    email: str
    phone_number: str | None

    @classmethod
    def from_user(cls, user: User) -> UserSummary:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone_number=user.phone_number,
        )


@dataclass(frozen=True, slots=True)
class RegistrationView:
    id: int
    event_id: int
    user_id: int
    status: str
    registered_at: datetime
    notes: str | None
    event: EventSnapshot

    @classmethod
    def from_registration(cls, reg: Registration) -> RegistrationView:
        return cls(
            id=reg.id,
            event_id=reg.event_id,
            user_id=reg.user_id,
            status=str(reg.status),
            registered_at=as_utc(reg.registered_at),
            notes=reg.notes,
            event=EventSnapshot.from_event(reg.event),
        )

    def to_dict(self) -> dict:
        return _serialize(asdict(self))


@dataclass(frozen=True, slots=True)
class EventRegistrationView:
    id: int
    event_id: int
    user_id: int
    status: str
    registered_at: datetime
    notes: str | None
    user: UserSummary

    @classmethod
    def from_registration(cls, reg: Registration) -> EventRegistrationView:
        return cls(
            id=reg.id,
            event_id=reg.event_id,
            user_id=reg.user_id,
            status=str(reg.status),
            registered_at=as_utc(reg.registered_at),
            notes=reg.notes,
            user=UserSummary.from_user(reg.user),
        )

    def to_dict(self) -> dict:
        return _serialize(asdict(self))
