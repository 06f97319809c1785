"""
volunteer_portal.errors — Typed Service Errors
===============================================

Every failure the registration core reports is one of three kinds:

* :class:`NotFoundError` — the event or registration does not exist.
* :class:`ConflictError` — the requested transition would break a rule
  (cancelled/past event, deadline, full, duplicate, time conflict,
  already cancelled).
* :class:`TransientStoreError` — the store rejected the transaction because
  of contention (serialization failure, deadlock, lock timeout, a racing
  insert on the same pair).  The only kind that may be retried.

Each class carries the HTTP status and machine code the API layer returns,
so ``api.main`` can map them with a single handler.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base error with a user-facing message and a machine-readable code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    retryable: bool = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
        }


class NotFoundError(PortalError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(PortalError):
    status_code = 409
    code = "CONFLICT"


class TransientStoreError(PortalError):
    status_code = 503
    code = "TRANSIENT_STORE_ERROR"
    retryable = True
