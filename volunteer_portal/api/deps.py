"""
volunteer_portal.api.deps — FastAPI dependency injection
=========================================================

Token *verification* only: tokens are issued by the surrounding auth
service and carry ``sub`` (user id) and ``role``.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from volunteer_portal.config import PortalConfig, load_config
from volunteer_portal.database.engine import create_db_engine
from volunteer_portal.database.models import UserRole

_WEAK_SECRETS = frozenset({
    "volunteer-portal-dev-secret-change-me",
    "change-me",
    "changeme",
    "secret",
    "dev",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"

_ORGANIZER_ROLES = frozenset({UserRole.ORGANIZER.value, UserRole.ADMIN.value})


def _secret_problem(secret: str) -> str | None:
    """Say what is wrong with *secret* as a token-verification key, if anything."""
    if not secret.strip():
        return "is not set"
    if secret.strip().lower() in _WEAK_SECRETS:
        return "is a known weak default"
    if len(secret) < _MIN_SECRET_LENGTH:
        return f"is too short ({len(secret)} < {_MIN_SECRET_LENGTH} chars)"
    return None


def _load_jwt_secret() -> str:
    """Read JWT_SECRET, refusing to verify volunteer tokens with an unusable key."""
    secret = os.getenv("JWT_SECRET", "")
    problem = _secret_problem(secret)
    if problem is not None:
        raise RuntimeError(
            f"JWT_SECRET {problem}. Set the key shared with the auth service "
            f"(at least {_MIN_SECRET_LENGTH} random chars) in .env; see .env.example."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> PortalConfig:
    return load_config(os.getenv("PORTAL_CONFIG", "config.yaml"))


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate the bearer JWT and return its payload. Raises 401 if invalid."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    try:
        payload["user_id"] = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User ID not found in token")
    return payload


def get_current_organizer(user: dict = Depends(get_current_user)) -> dict:
    """Like :func:`get_current_user`, but only organizers and admins pass (403)."""
    if user.get("role") not in _ORGANIZER_ROLES:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Organizer or admin role required")
    return user
