"""
volunteer_portal.database.seed — Demo Data Seeder
==================================================

A small cast of users and a few events so a fresh dev database is usable
right away (one admin, one organizer, two volunteers, events spread over
the coming weeks plus one in the past).

Idempotent — does nothing once the ``users`` table has any row.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from volunteer_portal.database.models import Event, EventStatus, User, UserRole

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Demo catalogue
# ---------------------------------------------------------------------------
DEMO_USERS: list[tuple[str, str, UserRole, str | None]] = [
    ("System Administrator", "admin@portal.example", UserRole.ADMIN, None),
    ("Nino Beridze", "nino.organizer@portal.example", UserRole.ORGANIZER, "+995555100200"),
    ("Mariam Kapanadze", "mariam.volunteer@portal.example", UserRole.VOLUNTEER, "+995555300400"),
    ("Davit Lomidze", "davit.volunteer@portal.example", UserRole.VOLUNTEER, None),
]

# (title, location, days from today, start hour, duration min, capacity, deadline offset days)
DEMO_EVENTS: list[tuple[str, str, int, int, int, int, int | None]] = [
    ("Vake Park Community Cleanup", "Vake Park, Tbilisi", -5, 10, 180, 30, -6),
    ("Dezerter Bazaar Food Distribution", "Station Square, Tbilisi", 3, 11, 240, 15, 2),
    ("Youth First Aid Training Workshop", "Public Library, Tbilisi", 10, 14, 120, 20, 8),
    ("Riverside Tree Planting", "Mtkvari Embankment, Tbilisi", 21, 9, 300, 40, None),
]


def seed_demo_data(engine: Engine) -> int:
    """Insert demo users and events when the database is empty.

    Returns the number of events created (0 when the DB was already seeded).
    """
    today = datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0)

    with Session(engine) as session:
        existing = session.scalar(select(func.count()).select_from(User))
        if existing:
            logger.debug("Demo seed skipped — %d users already present", existing)
            return 0

        users = {
            email: User(name=name, email=email, role=role.value, phone_number=phone)
            for name, email, role, phone in DEMO_USERS
        }
        session.add_all(users.values())
        session.flush()

        organizer = users["nino.organizer@portal.example"]
        for title, location, days, hour, duration, capacity, deadline_days in DEMO_EVENTS:
            start = today + timedelta(days=days, hours=hour)
            session.add(Event(
                title=title,
                description=f"{title} — volunteers welcome.",
                location=location,
                start_time=start,
                duration_minutes=duration,
                capacity=capacity,
                registration_deadline=(
                    today + timedelta(days=deadline_days)
                    if deadline_days is not None else None
                ),
                status=EventStatus.ACTIVE.value,
                organizer_id=organizer.id,
            ))

        session.commit()

    logger.info("Seeded %d demo users and %d demo events", len(DEMO_USERS), len(DEMO_EVENTS))
    return len(DEMO_EVENTS)
