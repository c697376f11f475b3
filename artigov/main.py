"""Artigov API application."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from .api import (
    approvals_router,
    artifacts_router,
    delegations_router,
    project_artifacts_router,
    suggestions_router,
)
from .core.config import ConfigurationError, Environment, settings
from .core.logging_config import setup_logging
from .database import DATABASE_URL, backend_name, get_db, init_db, mask_url, ping
from .exceptions import ArtigovException
from .middleware.exception_handler import artigov_exception_handler, request_validation_handler
from .middleware.request_context import RequestContextMiddleware

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

_CONNECTION_HINTS = {
    "postgresql": (
        ("could not connect", "Is PostgreSQL running, and does DATABASE_URL point at it?"),
        ("connection refused", "Is PostgreSQL running, and does DATABASE_URL point at it?"),
        ("authentication failed", "Check the user and password in DATABASE_URL."),
        ("does not exist", "Create the database first: createdb <name>"),
    ),
    "sqlite": (
        ("unable to open", "The directory holding the SQLite file must exist and be writable."),
    ),
}


def connection_hint(backend: str, error: str) -> str:
    """Pick an operator hint for a failed database connection."""
    lowered = error.lower()
    for needle, hint in _CONNECTION_HINTS.get(backend, ()):
        if needle in lowered:
            return hint
    return "Check DATABASE_URL in .env or the environment."


def _connect_or_exit() -> None:
    masked = mask_url(DATABASE_URL)
    logger.info("Connecting to database: %s", masked)
    try:
        ping()
    except Exception as e:
        logger.critical(
            "Database connection failed | url=%s | hint=%s | error=%s",
            masked, connection_hint(backend_name(), str(e)), e,
        )
        raise SystemExit(1) from e
    init_db()
    logger.info("Database ready (%s)", backend_name())


_connect_or_exit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical("Startup blocked: %s", e)
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT:
        for problem in settings.insecure_settings():
            logger.warning("Development only: %s", problem)

    logger.info(
        "Artigov API %s up | env=%s | db=%s | auth=%s | editors_as_approvers=%s",
        VERSION,
        settings.environment.value,
        backend_name(),
        "bearer" if settings.auth_enabled else "x-user-id",
        settings.include_editors_as_approvers,
    )
    yield
    logger.info("Artigov API shutting down")


app = FastAPI(
    title="Artigov API",
    description=(
        "Versioning and approval workflow for governed project artifacts. "
        "Edits past a draft create new immutable versions; a submitted draft moves "
        "through the project's ordered approval steps, and the final approval "
        "promotes a new baseline.\n\n"
        "**Identity:** with `AUTH_ENABLED=true` send `Authorization: Bearer <token>`; "
        "otherwise send the caller's id in `X-User-Id`."
    ),
    version=VERSION,
    lifespan=lifespan,
)

# CORS is added last so it wraps the request context middleware.
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-Response-Time", "Retry-After"],
)

app.add_exception_handler(ArtigovException, artigov_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)

for router in (
    project_artifacts_router,
    artifacts_router,
    approvals_router,
    suggestions_router,
    delegations_router,
):
    app.include_router(router)


@app.get("/")
def root():
    return {"name": "Artigov API", "version": VERSION, "status": "running"}


_started_at = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Liveness plus a database probe.

    Always 200: a database failure is reported as ``degraded`` in the body.
    """
    try:
        artifact_count = db.execute(text("SELECT COUNT(*) FROM artifacts")).scalar() or 0
        db_status = "ok"
    except Exception:
        logger.exception("Health check database probe failed")
        artifact_count, db_status = 0, "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _started_at),
        "version": VERSION,
        "artifact_count": artifact_count,
    }
