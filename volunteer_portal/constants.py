"""
volunteer_portal.constants — Shared Constants
==============================================

Single source of truth for the user-facing registration rule messages.
The HTTP layer surfaces these verbatim, so services and tests import them
from here instead of repeating the strings.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Registration rule messages
# ---------------------------------------------------------------------------
MSG_EVENT_NOT_FOUND = "Event with ID {event_id} not found"
MSG_USER_NOT_FOUND = "User with ID {user_id} not found"
MSG_EVENT_CANCELLED = "Cannot register for a cancelled event"
MSG_EVENT_PAST = "Cannot register for past events"
MSG_DEADLINE_PASSED = "Registration deadline has passed"
MSG_EVENT_FULL = "Event is already full"
MSG_ALREADY_REGISTERED = "User is already registered for this event"
MSG_TIME_CONFLICT = "You have a time conflict with another registered event"
MSG_REGISTRATION_NOT_FOUND = "Registration not found"
MSG_ALREADY_CANCELLED = "Registration is already cancelled"

# ---------------------------------------------------------------------------
# Field limits (mirrored in the alembic migration)
# ---------------------------------------------------------------------------
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_LOCATION_LENGTH = 500
MAX_URL_LENGTH = 500
MAX_NAME_LENGTH = 200
MAX_EMAIL_LENGTH = 255
MAX_PHONE_LENGTH = 20
MAX_NOTES_LENGTH = 1000
