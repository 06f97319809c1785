"""
volunteer_portal.api.routes.registrations — Sign-up endpoints
==============================================================

Thin forwarding layer over :mod:`volunteer_portal.services.registration_service`.
Service errors bubble up to the ``PortalError`` handler in ``api.main``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from volunteer_portal.api.deps import (
    get_config,
    get_current_organizer,
    get_current_user,
    get_engine,
)
from volunteer_portal.config import PortalConfig
from volunteer_portal.constants import MAX_NOTES_LENGTH
from volunteer_portal.services import registration_service

router = APIRouter(tags=["registrations"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RegisterRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=MAX_NOTES_LENGTH)


@router.post("/events/{event_id}/register", status_code=201)
def register_for_event(
    event_id: int,
    body: RegisterRequest | None = None,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
    cfg: PortalConfig = Depends(get_config),
):
    """Register the caller for an event (or revive a cancelled registration)."""
    view = registration_service.retry_transient(
        registration_service.register_for_event,
        engine,
        event_id,
        user["user_id"],
        attempts=cfg.register_retry_attempts,
        backoff_ms=cfg.register_retry_backoff_ms,
        notes=body.notes if body else None,
        lock_timeout=cfg.lock_timeout_seconds,
    )
    return view.to_dict()


@router.delete("/events/{event_id}/register", status_code=204)
def cancel_registration(
    event_id: int,
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
    cfg: PortalConfig = Depends(get_config),
):
    registration_service.retry_transient(
        registration_service.cancel_registration,
        engine,
        event_id,
        user["user_id"],
        attempts=cfg.register_retry_attempts,
        backoff_ms=cfg.register_retry_backoff_ms,
        lock_timeout=cfg.lock_timeout_seconds,
    )
    return Response(status_code=204)


@router.get("/users/me/registrations")
def my_registrations(
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    """All of the caller's registrations, cancelled ones included."""
    views = registration_service.list_user_registrations(engine, user["user_id"])
    return [v.to_dict() for v in views]


@router.get("/events/{event_id}/registrations")
def event_registrations(
    event_id: int,
    organizer: dict = Depends(get_current_organizer),
    engine=Depends(get_engine),
):
    """Who signed up for an event.  Organizers and admins only."""
    views = registration_service.list_event_registrations(engine, event_id)
    return [v.to_dict() for v in views]
