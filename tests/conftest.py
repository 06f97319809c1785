"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of volunteer_portal.api.deps which
# validates the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from datetime import UTC, datetime, timedelta  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from volunteer_portal.database.engine import enable_sqlite_foreign_keys  # noqa: E402
from volunteer_portal.database.models import (  # noqa: E402
    Base,
    Event,
    EventStatus,
    User,
    UserRole,
)
from volunteer_portal.services import registration_service  # noqa: E402

_email_seq = count(1)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all portal tables.

    Uses StaticPool so all threads share the same in-memory database
    (FastAPI runs sync routes on a worker thread).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """A file-backed SQLite engine: every thread gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'portal.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------
class FrozenClock:
    """Callable stand-in for ``utcnow`` that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock(monkeypatch) -> FrozenClock:
    """Freeze the registration service's clock at 2030-06-01 08:00 UTC."""
    frozen = FrozenClock(datetime(2030, 6, 1, 8, 0, tzinfo=UTC))
    monkeypatch.setattr(registration_service, "utcnow", frozen)
    return frozen


# ---------------------------------------------------------------------------
# Row factories (direct inserts, bypassing directory validation)
# ---------------------------------------------------------------------------
def insert_user(
    engine: Engine,
    name: str = "Volunteer",
    *,
    role: UserRole = UserRole.VOLUNTEER,
    phone_number: str | None = None,
    is_deleted: bool = False,
) -> int:
    with Session(engine) as session:
        user = User(
            name=name,
            email=f"user{next(_email_seq)}@example.org",
            role=role.value,
            phone_number=phone_number,
            is_deleted=is_deleted,
        )
        session.add(user)
        session.commit()
        return user.id


def insert_event(
    engine: Engine,
    *,
    organizer_id: int,
    start_time: datetime,
    duration_minutes: int = 120,
    capacity: int = 10,
    registration_deadline: datetime | None = None,
    status: EventStatus = EventStatus.ACTIVE,
    title: str = "Beach Cleanup",
    is_deleted: bool = False,
) -> int:
    with Session(engine) as session:
        event = Event(
            title=title,
            location="North Beach",
            start_time=start_time,
            duration_minutes=duration_minutes,
            capacity=capacity,
            registration_deadline=registration_deadline,
            status=status.value,
            organizer_id=organizer_id,
            image_url="/uploads/beach.jpg",
            is_deleted=is_deleted,
        )
        session.add(event)
        session.commit()
        return event.id


@pytest.fixture
def make_user(db_engine):
    """Factory: insert a user into ``db_engine`` and return its id."""
    def _make(name: str = "Volunteer", **kwargs) -> int:
        return insert_user(db_engine, name, **kwargs)
    return _make


@pytest.fixture
def organizer_id(db_engine) -> int:
    return insert_user(db_engine, "Olga Organizer", role=UserRole.ORGANIZER)


@pytest.fixture
def make_event(db_engine, organizer_id):
    """Factory: insert an event into ``db_engine`` and return its id."""
    def _make(**kwargs) -> int:
        kwargs.setdefault("organizer_id", organizer_id)
        return insert_event(db_engine, **kwargs)
    return _make


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------
def make_token(sub: int | str, role: UserRole | str = UserRole.VOLUNTEER) -> str:
    """Create a bearer JWT.  Usable as both a fixture helper and a factory."""
    import jwt

    from volunteer_portal.api import deps

    return jwt.encode(
        {"sub": str(sub), "role": str(role)},
        deps.JWT_SECRET,
        algorithm=deps.JWT_ALGORITHM,
    )


@pytest.fixture
def client(db_engine):
    """TestClient bound to the in-memory engine and a fast-retry config."""
    from fastapi.testclient import TestClient

    from volunteer_portal.api.main import app
    from volunteer_portal.api.routes import registrations as routes
    from volunteer_portal.config import PortalConfig

    cfg = PortalConfig(
        portal_name="Test Portal",
        api_port=8000,
        register_retry_attempts=2,
        register_retry_backoff_ms=0,
        lock_timeout_seconds=5.0,
    )
    # Override the callables the routes were declared with.
    app.dependency_overrides[routes.get_engine] = lambda: db_engine
    app.dependency_overrides[routes.get_config] = lambda: cfg
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
