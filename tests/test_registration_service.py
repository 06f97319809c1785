"""
tests/test_registration_service.py — Register / Cancel / List Tests
====================================================================
Validates the registration rules, state transitions and listings against
an in-memory SQLite database with a frozen clock.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from volunteer_portal.constants import (
    MSG_ALREADY_CANCELLED,
    MSG_ALREADY_REGISTERED,
    MSG_DEADLINE_PASSED,
    MSG_EVENT_CANCELLED,
    MSG_EVENT_FULL,
    MSG_EVENT_PAST,
    MSG_REGISTRATION_NOT_FOUND,
    MSG_TIME_CONFLICT,
)
from volunteer_portal.database.models import EventStatus, Registration, RegistrationStatus
from volunteer_portal.errors import ConflictError, NotFoundError
from volunteer_portal.services.directory_service import cancel_event, soft_delete_event
from volunteer_portal.services.registration_service import (
    cancel_registration,
    list_event_registrations,
    list_user_registrations,
    register_for_event,
)


def _rows(engine, event_id: int, user_id: int | None = None) -> list[Registration]:
    with Session(engine) as session:
        stmt = select(Registration).where(Registration.event_id == event_id)
        if user_id is not None:
            stmt = stmt.where(Registration.user_id == user_id)
        return list(session.scalars(stmt).all())


def _confirmed(engine, event_id: int) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.count()).select_from(Registration).where(
                Registration.event_id == event_id,
                Registration.status == RegistrationStatus.CONFIRMED.value,
            )
        )


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------
class TestRegister:
    def test_first_registration_is_confirmed(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        view = register_for_event(db_engine, eid, uid)

        assert view.status == RegistrationStatus.CONFIRMED
        assert view.event_id == eid
        assert view.user_id == uid
        assert view.registered_at == clock.now
        assert view.event.id == eid
        assert view.event.title == "Beach Cleanup"
        assert len(_rows(db_engine, eid)) == 1

    def test_unknown_event_is_not_found(self, db_engine, clock, make_user):
        uid = make_user()
        with pytest.raises(NotFoundError, match="Event with ID 999 not found"):
            register_for_event(db_engine, 999, uid)

    def test_unknown_user_is_not_found(self, db_engine, clock, make_event):
        eid = make_event(start_time=clock.now + timedelta(days=7))

        with pytest.raises(NotFoundError, match="User with ID 424242 not found"):
            register_for_event(db_engine, eid, 424242)

        assert _rows(db_engine, eid) == []
        assert list_event_registrations(db_engine, eid) == []

    def test_soft_deleted_user_is_not_found(self, db_engine, clock, make_user, make_event):
        uid = make_user(is_deleted=True)
        eid = make_event(start_time=clock.now + timedelta(days=7))

        with pytest.raises(NotFoundError):
            register_for_event(db_engine, eid, uid)
        assert _rows(db_engine, eid) == []

    def test_soft_deleted_event_is_not_found(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7), is_deleted=True)
        with pytest.raises(NotFoundError):
            register_for_event(db_engine, eid, uid)

    def test_cancelled_event_rejected(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7), status=EventStatus.CANCELLED)
        with pytest.raises(ConflictError, match=MSG_EVENT_CANCELLED):
            register_for_event(db_engine, eid, uid)
        assert _rows(db_engine, eid) == []

    def test_past_event_rejected(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now - timedelta(days=1))
        with pytest.raises(ConflictError, match=MSG_EVENT_PAST):
            register_for_event(db_engine, eid, uid)

    def test_deadline_passed_rejected(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(
            start_time=clock.now + timedelta(days=7),
            registration_deadline=clock.now - timedelta(hours=1),
        )
        with pytest.raises(ConflictError, match=MSG_DEADLINE_PASSED):
            register_for_event(db_engine, eid, uid)

    def test_full_event_rejected(self, db_engine, clock, make_user, make_event):
        """Capacity 2 → U1, U2 confirmed, U3 rejected, still exactly 2 rows."""
        eid = make_event(start_time=clock.now + timedelta(days=7), capacity=2)
        u1, u2, u3 = make_user("U1"), make_user("U2"), make_user("U3")

        register_for_event(db_engine, eid, u1)
        register_for_event(db_engine, eid, u2)
        with pytest.raises(ConflictError, match=MSG_EVENT_FULL):
            register_for_event(db_engine, eid, u3)

        assert _confirmed(db_engine, eid) == 2
        assert len(_rows(db_engine, eid)) == 2

    def test_duplicate_rejected(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        register_for_event(db_engine, eid, uid)
        with pytest.raises(ConflictError, match=MSG_ALREADY_REGISTERED):
            register_for_event(db_engine, eid, uid)
        assert len(_rows(db_engine, eid, uid)) == 1

    def test_capacity_checked_before_duplicate(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7), capacity=1)

        register_for_event(db_engine, eid, uid)
        with pytest.raises(ConflictError, match=MSG_EVENT_FULL):
            register_for_event(db_engine, eid, uid)

    def test_cancelled_rows_do_not_count_towards_capacity(
        self, db_engine, clock, make_user, make_event
    ):
        eid = make_event(start_time=clock.now + timedelta(days=7), capacity=1)
        u1, u2 = make_user("U1"), make_user("U2")

        register_for_event(db_engine, eid, u1)
        cancel_registration(db_engine, eid, u1)
        view = register_for_event(db_engine, eid, u2)

        assert view.status == RegistrationStatus.CONFIRMED
        assert _confirmed(db_engine, eid) == 1


# ---------------------------------------------------------------------------
# Time conflicts
# ---------------------------------------------------------------------------
class TestTimeConflict:
    def test_overlapping_event_rejected(self, db_engine, clock, make_user, make_event):
        """A 10:00–12:00, B 11:00–13:00 → B rejected; C a week later is fine."""
        uid = make_user()
        day = (clock.now + timedelta(days=7)).replace(hour=10, minute=0)
        a = make_event(start_time=day, duration_minutes=120, title="A")
        b = make_event(start_time=day + timedelta(hours=1), duration_minutes=120, title="B")
        c = make_event(start_time=day + timedelta(days=7), duration_minutes=120, title="C")

        register_for_event(db_engine, a, uid)
        with pytest.raises(ConflictError, match=MSG_TIME_CONFLICT):
            register_for_event(db_engine, b, uid)
        assert _rows(db_engine, b) == []

        view = register_for_event(db_engine, c, uid)
        assert view.status == RegistrationStatus.CONFIRMED

    def test_back_to_back_events_allowed(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        day = (clock.now + timedelta(days=7)).replace(hour=10, minute=0)
        a = make_event(start_time=day, duration_minutes=120, title="A")
        b = make_event(start_time=day + timedelta(hours=2), duration_minutes=60, title="B")

        register_for_event(db_engine, a, uid)
        view = register_for_event(db_engine, b, uid)
        assert view.status == RegistrationStatus.CONFIRMED

    def test_cancelled_registration_does_not_block(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        day = (clock.now + timedelta(days=7)).replace(hour=10, minute=0)
        a = make_event(start_time=day, duration_minutes=120, title="A")
        b = make_event(start_time=day + timedelta(hours=1), duration_minutes=60, title="B")

        register_for_event(db_engine, a, uid)
        cancel_registration(db_engine, a, uid)
        register_for_event(db_engine, b, uid)

    def test_cancelled_event_does_not_block(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        day = (clock.now + timedelta(days=7)).replace(hour=10, minute=0)
        a = make_event(start_time=day, duration_minutes=120, title="A")
        b = make_event(start_time=day + timedelta(hours=1), duration_minutes=60, title="B")

        register_for_event(db_engine, a, uid)
        cancel_event(db_engine, a)
        register_for_event(db_engine, b, uid)

    def test_deleted_event_does_not_block(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        day = (clock.now + timedelta(days=7)).replace(hour=10, minute=0)
        a = make_event(start_time=day, duration_minutes=120, title="A")
        b = make_event(start_time=day + timedelta(hours=1), duration_minutes=60, title="B")

        register_for_event(db_engine, a, uid)
        soft_delete_event(db_engine, a)
        register_for_event(db_engine, b, uid)

    def test_other_users_schedule_is_irrelevant(self, db_engine, clock, make_user, make_event):
        u1, u2 = make_user("U1"), make_user("U2")
        day = (clock.now + timedelta(days=7)).replace(hour=10, minute=0)
        a = make_event(start_time=day, duration_minutes=120, title="A")
        b = make_event(start_time=day, duration_minutes=120, title="B")

        register_for_event(db_engine, a, u1)
        register_for_event(db_engine, b, u2)


# ---------------------------------------------------------------------------
# Cancel & reactivate
# ---------------------------------------------------------------------------
class TestCancel:
    def test_cancel_then_reactivate_keeps_row(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        first = register_for_event(db_engine, eid, uid)
        clock.advance(hours=1)
        cancel_registration(db_engine, eid, uid)

        (row,) = _rows(db_engine, eid, uid)
        assert row.status == RegistrationStatus.CANCELLED

        clock.advance(hours=1)
        revived = register_for_event(db_engine, eid, uid)

        assert revived.id == first.id
        assert revived.status == RegistrationStatus.CONFIRMED
        assert revived.registered_at == clock.now
        assert revived.registered_at > first.registered_at
        assert len(_rows(db_engine, eid, uid)) == 1

    def test_cancel_leaves_registered_at(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        view = register_for_event(db_engine, eid, uid)
        clock.advance(hours=3)
        cancel_registration(db_engine, eid, uid)

        (listed,) = list_user_registrations(db_engine, uid)
        assert listed.registered_at == view.registered_at

    def test_double_cancel_rejected(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        register_for_event(db_engine, eid, uid)
        cancel_registration(db_engine, eid, uid)
        with pytest.raises(ConflictError, match=MSG_ALREADY_CANCELLED):
            cancel_registration(db_engine, eid, uid)

    def test_cancel_without_registration(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))
        with pytest.raises(NotFoundError, match=MSG_REGISTRATION_NOT_FOUND):
            cancel_registration(db_engine, eid, uid)

    def test_cancel_allowed_after_event_cancelled(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        register_for_event(db_engine, eid, uid)
        cancel_event(db_engine, eid)
        cancel_registration(db_engine, eid, uid)

        (row,) = _rows(db_engine, eid, uid)
        assert row.status == RegistrationStatus.CANCELLED

    def test_cancel_allowed_after_event_started(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(hours=2))

        register_for_event(db_engine, eid, uid)
        clock.advance(hours=3)
        cancel_registration(db_engine, eid, uid)

    def test_reactivation_blocked_once_event_passed(
        self, db_engine, clock, make_user, make_event
    ):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(hours=2))

        register_for_event(db_engine, eid, uid)
        cancel_registration(db_engine, eid, uid)
        clock.advance(hours=3)
        with pytest.raises(ConflictError, match=MSG_EVENT_PAST):
            register_for_event(db_engine, eid, uid)

    def test_reactivation_skips_time_conflict(self, db_engine, clock, make_user, make_event):
        """Reviving a cancelled row does not re-run the schedule overlap check."""
        uid = make_user()
        day = (clock.now + timedelta(days=7)).replace(hour=10, minute=0)
        a = make_event(start_time=day, duration_minutes=120, title="A")
        b = make_event(start_time=day + timedelta(hours=1), duration_minutes=120, title="B")

        first = register_for_event(db_engine, a, uid)
        cancel_registration(db_engine, a, uid)
        register_for_event(db_engine, b, uid)

        revived = register_for_event(db_engine, a, uid)

        assert revived.id == first.id
        assert revived.status == RegistrationStatus.CONFIRMED

    def test_reactivation_respects_capacity(self, db_engine, clock, make_user, make_event):
        eid = make_event(start_time=clock.now + timedelta(days=7), capacity=1)
        u1, u2 = make_user("U1"), make_user("U2")

        register_for_event(db_engine, eid, u1)
        cancel_registration(db_engine, eid, u1)
        register_for_event(db_engine, eid, u2)

        with pytest.raises(ConflictError, match=MSG_EVENT_FULL):
            register_for_event(db_engine, eid, u1)

    def test_transitions_bump_version(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        register_for_event(db_engine, eid, uid)
        (row,) = _rows(db_engine, eid, uid)
        assert row.version == 1

        cancel_registration(db_engine, eid, uid)
        register_for_event(db_engine, eid, uid)
        (row,) = _rows(db_engine, eid, uid)
        assert row.version == 3


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------
class TestListings:
    def test_user_listing_newest_first_including_cancelled(
        self, db_engine, clock, make_user, make_event
    ):
        uid = make_user()
        e1 = make_event(start_time=clock.now + timedelta(days=7), title="First")
        e2 = make_event(start_time=clock.now + timedelta(days=8), title="Second")
        e3 = make_event(start_time=clock.now + timedelta(days=9), title="Third")

        register_for_event(db_engine, e1, uid)
        clock.advance(minutes=5)
        register_for_event(db_engine, e2, uid)
        clock.advance(minutes=5)
        register_for_event(db_engine, e3, uid)
        cancel_registration(db_engine, e2, uid)

        views = list_user_registrations(db_engine, uid)

        assert [v.event_id for v in views] == [e3, e2, e1]
        assert [v.status for v in views] == [
            RegistrationStatus.CONFIRMED,
            RegistrationStatus.CANCELLED,
            RegistrationStatus.CONFIRMED,
        ]
        assert views[0].event.title == "Third"

    def test_user_listing_empty(self, db_engine, make_user):
        assert list_user_registrations(db_engine, make_user()) == []

    def test_event_listing_carries_user_summary(self, db_engine, clock, make_user, make_event):
        eid = make_event(start_time=clock.now + timedelta(days=7))
        u1 = make_user("Ana", phone_number="+995555000111")
        u2 = make_user("Beka")

        register_for_event(db_engine, eid, u1)
        clock.advance(minutes=1)
        register_for_event(db_engine, eid, u2)

        views = list_event_registrations(db_engine, eid)

        assert [v.user.name for v in views] == ["Beka", "Ana"]
        assert views[1].user.phone_number == "+995555000111"
        assert views[1].user.email.endswith("@example.org")

    def test_same_timestamp_ordered_by_id(self, db_engine, clock, make_user, make_event):
        eid = make_event(start_time=clock.now + timedelta(days=7))
        u1, u2 = make_user("U1"), make_user("U2")

        first = register_for_event(db_engine, eid, u1)
        second = register_for_event(db_engine, eid, u2)

        views = list_event_registrations(db_engine, eid)
        assert [v.id for v in views] == [second.id, first.id]

    def test_view_to_dict_is_json_ready(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        data = register_for_event(db_engine, eid, uid).to_dict()

        assert data["status"] == "confirmed"
        assert data["registered_at"] == clock.now.isoformat()
        assert data["event"]["start_time"] == (clock.now + timedelta(days=7)).isoformat()


class TestNotes:
    def test_notes_stored_and_listed(self, db_engine, clock, make_user, make_event):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        view = register_for_event(db_engine, eid, uid, notes="I can bring gloves.")

        assert view.notes == "I can bring gloves."
        (listed,) = list_event_registrations(db_engine, eid)
        assert listed.notes == "I can bring gloves."

    def test_reactivation_keeps_notes_unless_replaced(
        self, db_engine, clock, make_user, make_event
    ):
        uid = make_user()
        eid = make_event(start_time=clock.now + timedelta(days=7))

        register_for_event(db_engine, eid, uid, notes="first")
        cancel_registration(db_engine, eid, uid)
        assert register_for_event(db_engine, eid, uid).notes == "first"

        cancel_registration(db_engine, eid, uid)
        assert register_for_event(db_engine, eid, uid, notes="second").notes == "second"
