"""
volunteer_portal.database.models — SQLAlchemy 2.0 Data Models
==============================================================

Tables:
- users          — Volunteers, organizers and admins (soft-deletable)
- events         — Volunteer events with capacity and deadline
- registrations  — One row per (event, user) pair, never deleted
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from volunteer_portal.constants import (
    MAX_DESCRIPTION_LENGTH,
    MAX_EMAIL_LENGTH,
    MAX_LOCATION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_PHONE_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_URL_LENGTH,
)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all portal ORM models."""


# ---------------------------------------------------------------------------
# Enums (stored as plain strings)
# ---------------------------------------------------------------------------
class UserRole(enum.StrEnum):
    VOLUNTEER = "volunteer"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class EventStatus(enum.StrEnum):
    """Only ACTIVE events accept registrations."""
    ACTIVE = "active"
    CANCELLED = "cancelled"


class RegistrationStatus(enum.StrEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), nullable=False)
    email: Mapped[str] = mapped_column(String(MAX_EMAIL_LENGTH), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(MAX_PHONE_LENGTH), default=None)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.VOLUNTEER.value
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None, onupdate=func.now()
    )

    organized_events: Mapped[list[Event]] = relationship(back_populates="organizer")
    registrations: Mapped[list[Registration]] = relationship(back_populates="user")

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
class Event(Base):
    """A volunteer event.

    ``start_time + duration_minutes`` is the end instant; the interval is
    half-open, so an event ending at 12:00 does not overlap one starting
    at 12:00.
    """
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(
        String(MAX_DESCRIPTION_LENGTH), nullable=False, default=""
    )
    location: Mapped[str] = mapped_column(String(MAX_LOCATION_LENGTH), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(MAX_URL_LENGTH), default=None)
    registration_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EventStatus.ACTIVE.value
    )
    organizer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None, onupdate=func.now()
    )

    organizer: Mapped[User] = relationship(back_populates="organized_events")
    registrations: Mapped[list[Registration]] = relationship(back_populates="event")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_events_duration_positive"),
        CheckConstraint("capacity > 0", name="ck_events_capacity_positive"),
        Index("ix_events_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} title={self.title!r} status={self.status}>"


# ---------------------------------------------------------------------------
# Registrations — the mutable core entity
# ---------------------------------------------------------------------------
class Registration(Base):
    """A user's registration for an event.

    At most one row exists per (event_id, user_id); cancelling flips the
    status and registering again revives the same row.  ``registered_at`` is
    the time of the latest transition into CONFIRMED.  ``version`` is bumped
    on every UPDATE so concurrent writers to the same row are detected.
    """
    __tablename__ = "registrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RegistrationStatus.CONFIRMED.value
    )
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    event: Mapped[Event] = relationship(back_populates="registrations")
    user: Mapped[User] = relationship(back_populates="registrations")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_registrations_event_user"),
        CheckConstraint(
            "status IN ('confirmed', 'cancelled')", name="ck_registrations_status"
        ),
        CheckConstraint(
            f"notes IS NULL OR length(notes) <= {MAX_NOTES_LENGTH}",
            name="ck_registrations_notes_length",
        ),
        Index("ix_registrations_event_status", "event_id", "status"),
        Index("ix_registrations_user_registered_at", "user_id", "registered_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Registration id={self.id} event={self.event_id} "
            f"user={self.user_id} status={self.status}>"
        )
