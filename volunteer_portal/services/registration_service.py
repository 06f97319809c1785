"""
volunteer_portal.services.registration_service — Register / Cancel / List
==========================================================================

The registration core.  Every mutation follows the pattern:
  1. Take the in-process mutex for the event (and the user, on register)
  2. Begin transaction, row-lock the event (``SELECT … FOR UPDATE``)
  3. Evaluate the rules in order; the first failure raises
  4. Insert or update exactly one ``registrations`` row
  5. Commit, return a snapshot view

The event row lock serializes the count-then-insert window across worker
processes on PostgreSQL; the in-process mutex does the same for threads
(and is the only guard on SQLite, which ignores ``FOR UPDATE``).  The
``(event_id, user_id)`` unique constraint and the row ``version`` counter
are the storage-level backstops; when either trips, the caller sees a
:class:`TransientStoreError` and may retry via :func:`retry_transient`.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy import Engine, func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from volunteer_portal.constants import (
    MSG_ALREADY_CANCELLED,
    MSG_ALREADY_REGISTERED,
    MSG_EVENT_FULL,
    MSG_EVENT_NOT_FOUND,
    MSG_REGISTRATION_NOT_FOUND,
    MSG_TIME_CONFLICT,
    MSG_USER_NOT_FOUND,
)
from volunteer_portal.database.models import (
    Event,
    EventStatus,
    Registration,
    RegistrationStatus,
)
from volunteer_portal.engine.eligibility import (
    check_open_for_registration,
    event_window,
    find_conflict,
    utcnow,
)
from volunteer_portal.engine.views import EventRegistrationView, RegistrationView
from volunteer_portal.errors import ConflictError, NotFoundError, TransientStoreError
from volunteer_portal.services.directory_service import get_event, get_user
from volunteer_portal.services.locking import KeyedLockRegistry, get_event_locks

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
_UNIQUE_VIOLATION = "23505"

# User-keyed mutexes guard the schedule-conflict check across events.
# Always acquired after the event mutex, never before.
_user_locks = KeyedLockRegistry()


# ---------------------------------------------------------------------------
# Store error classification
# ---------------------------------------------------------------------------
def _is_transient(exc: Exception) -> bool:
    """True for contention failures that a fresh attempt may get past."""
    if isinstance(exc, StaleDataError):
        return True
    if not isinstance(exc, DBAPIError):
        return False

    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None)
    if pgcode in _RETRYABLE_SQLSTATES:
        return True
    if isinstance(exc, IntegrityError):
        # A racing insert on the same (event, user) pair.  Other integrity
        # failures (FK, CHECK) are real errors.
        return pgcode == _UNIQUE_VIOLATION or "UNIQUE constraint failed" in str(orig)
    if isinstance(exc, OperationalError):
        return "database is locked" in str(orig)
    return False


@contextmanager
def _store_guard(session: Session, action: str, event_id: int, user_id: int) -> Iterator[None]:
    """Roll back on store errors and re-raise contention as transient."""
    try:
        yield
    except (DBAPIError, StaleDataError) as exc:
        session.rollback()
        if not _is_transient(exc):
            raise
        logger.warning(
            "Transient store error on %s (event=%d user=%d): %s",
            action, event_id, user_id, exc,
        )
        raise TransientStoreError(
            "The registration could not be saved because of concurrent "
            "activity, please try again"
        ) from exc


def _confirmed_count(session: Session, event_id: int) -> int:
    return session.scalar(
        select(func.count())
        .select_from(Registration)
        .where(
            Registration.event_id == event_id,
            Registration.status == RegistrationStatus.CONFIRMED.value,
        )
    ) or 0


def _has_time_conflict(session: Session, event: Event, user_id: int) -> bool:
    """Check *event* against the user's confirmed registrations on active events."""
    rows = session.execute(
        select(Event.id, Event.start_time, Event.duration_minutes)
        .join(Registration, Registration.event_id == Event.id)
        .where(
            Registration.user_id == user_id,
            Registration.status == RegistrationStatus.CONFIRMED.value,
            Registration.event_id != event.id,
            Event.status == EventStatus.ACTIVE.value,
            Event.is_deleted.is_(False),
        )
    ).all()

    clash = find_conflict(
        event_window(event),
        ((row.id, event_window(row)) for row in rows),
    )
    if clash is not None:
        logger.debug(
            "User %d: event %d overlaps confirmed event %d", user_id, event.id, clash
        )
        return True
    return False


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------
def register_for_event(
    engine: Engine,
    event_id: int,
    user_id: int,
    *,
    notes: str | None = None,
    lock_timeout: float | None = None,
) -> RegistrationView:
    """Register *user_id* for *event_id*, or revive a cancelled registration.

    Checks, in order: event exists → active → in the future → deadline not
    passed → user exists → not full → no confirmed duplicate → (new rows
    only) no schedule overlap with the user's other confirmed registrations.

    *notes* is stored on the row; on reactivation it replaces the old notes
    only when given.

    Raises
    ------
    NotFoundError
        The event or the user does not exist (or was deleted).
    ConflictError
        A registration rule rejected the request.
    TransientStoreError
        Contention in the store; safe to retry.
    """
    with (
        get_event_locks().hold(event_id, timeout=lock_timeout),
        _user_locks.hold(user_id, timeout=lock_timeout),
        Session(engine, expire_on_commit=False) as session,
        _store_guard(session, "register", event_id, user_id),
    ):
        now = utcnow()

        event = get_event(session, event_id, for_update=True)
        if event is None:
            raise NotFoundError(MSG_EVENT_NOT_FOUND.format(event_id=event_id))

        check_open_for_registration(event, now)

        # Row-lock the user (after the event) so concurrent sign-ups by the
        # same volunteer for different events see each other's confirmations.
        if get_user(session, user_id, for_update=True) is None:
            raise NotFoundError(MSG_USER_NOT_FOUND.format(user_id=user_id))

        confirmed = _confirmed_count(session, event_id)
        if confirmed >= event.capacity:
            logger.info(
                "Registration rejected for user %d — event %d at capacity (%d/%d)",
                user_id, event_id, confirmed, event.capacity,
            )
            raise ConflictError(MSG_EVENT_FULL)

        existing = session.scalar(
            select(Registration).where(
                Registration.event_id == event_id,
                Registration.user_id == user_id,
            )
        )

        if existing is not None:
            if existing.status == RegistrationStatus.CONFIRMED:
                raise ConflictError(MSG_ALREADY_REGISTERED)

            # Reactivation keeps the row (and its id); the schedule
            # conflict check is not repeated here.
            existing.status = RegistrationStatus.CONFIRMED.value
            existing.registered_at = now
            if notes is not None:
                existing.notes = notes
            session.flush()
            view = RegistrationView.from_registration(existing)
            session.commit()
            logger.info(
                "Registration %d reactivated (event=%d user=%d)",
                existing.id, event_id, user_id,
            )
            return view

        if _has_time_conflict(session, event, user_id):
            raise ConflictError(MSG_TIME_CONFLICT)

        registration = Registration(
            event=event,
            user_id=user_id,
            status=RegistrationStatus.CONFIRMED.value,
            registered_at=now,
            notes=notes,
        )
        session.add(registration)
        session.flush()
        view = RegistrationView.from_registration(registration)
        session.commit()
        logger.info(
            "Registration %d created (event=%d user=%d, %d/%d confirmed)",
            registration.id, event_id, user_id, confirmed + 1, event.capacity,
        )
        return view


# ---------------------------------------------------------------------------
# Cancel
# ---------------------------------------------------------------------------
def cancel_registration(
    engine: Engine,
    event_id: int,
    user_id: int,
    *,
    lock_timeout: float | None = None,
) -> None:
    """Cancel a confirmed registration.

    Always permitted while the row is CONFIRMED, whatever the event's state.
    ``registered_at`` is left as is.

    Raises
    ------
    NotFoundError
        The user never registered for this event.
    ConflictError
        The registration is already cancelled.
    TransientStoreError
        Contention in the store; safe to retry.
    """
    with (
        get_event_locks().hold(event_id, timeout=lock_timeout),
        Session(engine) as session,
        _store_guard(session, "cancel", event_id, user_id),
    ):
        registration = session.scalar(
            select(Registration)
            .where(
                Registration.event_id == event_id,
                Registration.user_id == user_id,
            )
            .with_for_update()
        )
        if registration is None:
            raise NotFoundError(MSG_REGISTRATION_NOT_FOUND)
        if registration.status == RegistrationStatus.CANCELLED:
            raise ConflictError(MSG_ALREADY_CANCELLED)

        registration.status = RegistrationStatus.CANCELLED.value
        registration_id = registration.id
        session.commit()
        logger.info(
            "Registration %d cancelled (event=%d user=%d)",
            registration_id, event_id, user_id,
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def list_user_registrations(engine: Engine, user_id: int) -> list[RegistrationView]:
    """All of a user's registrations (any status), most recent first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Registration)
            .options(selectinload(Registration.event))
            .where(Registration.user_id == user_id)
            .order_by(Registration.registered_at.desc(), Registration.id.desc())
        ).all()
        return [RegistrationView.from_registration(r) for r in rows]


def list_event_registrations(engine: Engine, event_id: int) -> list[EventRegistrationView]:
    """All registrations for an event (any status), most recent first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Registration)
            .options(selectinload(Registration.user))
            .where(Registration.event_id == event_id)
            .order_by(Registration.registered_at.desc(), Registration.id.desc())
        ).all()
        return [EventRegistrationView.from_registration(r) for r in rows]


# ---------------------------------------------------------------------------
# Retry helper for callers
# ---------------------------------------------------------------------------
def retry_transient(
    func: Callable[..., T],
    *args: Any,
    attempts: int = 3,
    backoff_ms: int = 50,
    **kwargs: Any,
) -> T:
    """Call *func*, retrying only on :class:`TransientStoreError`.

    Business-rule errors (NotFound, Conflict) propagate on the first try.
    Waits ``backoff_ms * 2**(attempt-1)`` plus up to 50% jitter between tries;
    the last failure is re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    attempt = 1
    while True:
        try:
            return func(*args, **kwargs)
        except TransientStoreError:
            if attempt >= attempts:
                raise
            backoff = backoff_ms / 1000 * (2 ** (attempt - 1))
            wait = backoff + random.uniform(0, backoff * 0.5)
            logger.warning(
                "%s hit a transient store error (attempt %d/%d), retrying in %.3fs",
                getattr(func, "__name__", "call"), attempt, attempts, wait,
            )
            time.sleep(wait)
            attempt += 1
