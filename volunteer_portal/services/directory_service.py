"""
volunteer_portal.services.directory_service — Event & User Directories
=======================================================================

The boundary the registration core reads through.  Lookups here apply the
soft-delete filter, so a deleted event or user is simply "not found" to
every caller; the core never inspects ``is_deleted`` itself.

Session-level helpers (``get_event``, ``get_user``) join the caller's
transaction.  Engine-level mutations open and commit their own.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from volunteer_portal.constants import MAX_LOCATION_LENGTH, MAX_TITLE_LENGTH
from volunteer_portal.database.models import Event, EventStatus, User, UserRole
from volunteer_portal.engine.eligibility import as_utc, utcnow
from volunteer_portal.services.locking import get_event_locks

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookups (session-level)
# ---------------------------------------------------------------------------
def get_event(session: Session, event_id: int, *, for_update: bool = False) -> Event | None:
    """Fetch a non-deleted event, optionally taking a row lock on it."""
    stmt = select(Event).where(Event.id == event_id, Event.is_deleted.is_(False))
    if for_update:
        stmt = stmt.with_for_update()
    return session.scalar(stmt)


def get_user(session: Session, user_id: int, *, for_update: bool = False) -> User | None:
    """Fetch a non-deleted user, optionally taking a row lock on it."""
    stmt = select(User).where(User.id == user_id, User.is_deleted.is_(False))
    if for_update:
        stmt = stmt.with_for_update()
    return session.scalar(stmt)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
def create_user(
    engine: Engine,
    *,
    name: str,
    email: str,
    role: UserRole = UserRole.VOLUNTEER,
    phone_number: str | None = None,
) -> User:
    """Insert a user and return it detached."""
    if not name.strip():
        raise ValueError("User name is required.")
    if "@" not in email:
        raise ValueError("A valid email address is required.")

    with Session(engine, expire_on_commit=False) as session:
        user = User(
            name=name.strip(),
            email=email.strip().lower(),
            role=UserRole(role).value,
            phone_number=phone_number,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        logger.info("User %d created (%s)", user.id, user.role)
        return user


def soft_delete_user(engine: Engine, user_id: int) -> bool:
    """Flag a user as deleted.  Returns ``False`` if no live user matched."""
    with Session(engine) as session:
        user = get_user(session, user_id)
        if user is None:
            return False
        user.is_deleted = True
        session.commit()
        logger.info("User %d soft-deleted", user_id)
        return True


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
def create_event(
    engine: Engine,
    *,
    organizer_id: int,
    title: str,
    location: str,
    start_time: datetime,
    duration_minutes: int,
    capacity: int,
    description: str = "",
    registration_deadline: datetime | None = None,
    image_url: str | None = None,
) -> Event:
    """Validate and insert an ACTIVE event, returned detached.

    Raises
    ------
    ValueError
        On an unknown organizer, blank/oversized text fields, a start time
        not in the future, non-positive duration or capacity, or a deadline
        after the start.
    """
    if not title.strip() or len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"Title is required and must be at most {MAX_TITLE_LENGTH} characters.")
    if not location.strip() or len(location) > MAX_LOCATION_LENGTH:
        raise ValueError(
            f"Location is required and must be at most {MAX_LOCATION_LENGTH} characters."
        )
    if duration_minutes <= 0:
        raise ValueError("Duration must be a positive number of minutes.")
    if capacity <= 0:
        raise ValueError("Capacity must be a positive number.")

    start = as_utc(start_time)
    if start <= utcnow():
        raise ValueError("Event start time must be in the future.")
    deadline = as_utc(registration_deadline) if registration_deadline else None
    if deadline is not None and deadline > start:
        raise ValueError("Registration deadline must not be after the event start time.")

    with Session(engine, expire_on_commit=False) as session:
        if get_user(session, organizer_id) is None:
            raise ValueError("Organizer not found.")

        event = Event(
            title=title.strip(),
            description=description,
            location=location.strip(),
            start_time=start,
            duration_minutes=duration_minutes,
            capacity=capacity,
            registration_deadline=deadline,
            image_url=image_url,
            status=EventStatus.ACTIVE.value,
            organizer_id=organizer_id,
        )
        session.add(event)
        session.commit()
        session.refresh(event)
        session.expunge(event)
        logger.info(
            "Event %d created by organizer %d (capacity=%d, ends %s)",
            event.id, organizer_id, capacity,
            start + timedelta(minutes=duration_minutes),
        )
        return event


def cancel_event(engine: Engine, event_id: int) -> Event | None:
    """Set an event's status to CANCELLED.

    Existing registrations are left untouched; they simply stop counting
    towards schedule conflicts.  Returns ``None`` if the event is unknown.
    """
    with get_event_locks().hold(event_id):
        with Session(engine, expire_on_commit=False) as session:
            event = get_event(session, event_id, for_update=True)
            if event is None:
                return None
            event.status = EventStatus.CANCELLED.value
            session.commit()
            session.refresh(event)
            session.expunge(event)
            logger.info("Event %d cancelled", event_id)
            return event


def soft_delete_event(engine: Engine, event_id: int) -> bool:
    """Flag an event as deleted.  Returns ``False`` if no live event matched."""
    with get_event_locks().hold(event_id):
        with Session(engine) as session:
            event = get_event(session, event_id, for_update=True)
            if event is None:
                return False
            event.is_deleted = True
            session.commit()
            logger.info("Event %d soft-deleted", event_id)
            return True
