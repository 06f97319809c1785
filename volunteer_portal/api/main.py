"""
volunteer_portal.api.main — FastAPI application entry point
============================================================

Run with::

    uvicorn volunteer_portal.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from volunteer_portal.api.deps import get_engine  # noqa: E402
from volunteer_portal.api.routes.registrations import router as registrations_router  # noqa: E402
from volunteer_portal.database.engine import init_db, run_db  # noqa: E402
from volunteer_portal.errors import PortalError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine, optionally seed demo rows.

    ``SEED_DEMO_DATA=1`` creates any missing tables and inserts the demo
    users and events into an empty database.
    """
    engine = get_engine()
    if _env_flag("SEED_DEMO_DATA"):
        await run_db(init_db, engine, seed_demo=True)
    logger.info("Volunteer Portal API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Volunteer Portal API shutting down")


app = FastAPI(
    title="Volunteer Portal API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Map typed service errors to ``{message, code, status_code}`` bodies."""
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level, "Request failed [%d] %s %s: %s",
        exc.status_code, request.method, request.url.path, exc.message,
    )
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


# Mount routers
app.include_router(registrations_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
