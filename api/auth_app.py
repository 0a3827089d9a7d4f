"""
api/auth_app.py -- FastAPI application for the TaskGate auth service.

Issues and verifies identity tokens. Default port 8080.

Run with:  uvicorn asgi:auth_app --port 8080
           python main.py auth

Lifespan handles startup (credential store, attempt limiter, sweep task) and
shutdown (cancel sweep task, close DB connection) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from api.common import install_common, service_error_handler
from api.dependencies import THROTTLED_PATHS, enforce_attempt_limit
from api.models import HealthResponse
from api.routes.auth import router as auth_router
from auth.limiter import AttemptLimiter
from auth.store import UserStore
from core.config import get_settings
from core.errors import RateLimitExceeded

VERSION = "1.0.0"

logger = logging.getLogger("taskgate.api")


# ---------------------------------------------------------------------------
# Background sweep task
# ---------------------------------------------------------------------------


async def _sweep_loop(app: FastAPI, interval: float) -> None:
    """Drop idle attempt-limiter records every `interval` seconds.

    Without this, every address that ever hit /login would keep a record for
    the life of the process. CancelledError from task.cancel() during shutdown
    propagates out of asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval)
        removed = app.state.attempt_limiter.sweep()
        if removed:
            logger.info("Attempt limiter sweep removed %d idle sources", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    logger.info("TaskGate auth service starting up")
    app.state.user_store = UserStore(settings.auth_db_url)
    app.state.attempt_limiter = AttemptLimiter(
        max_attempts=settings.rate_limit_max_attempts,
        window_seconds=settings.rate_limit_window_seconds,
        max_sources=settings.rate_limit_max_sources,
    )
    logger.info(
        "Attempt limiter initialized (%d per %.0fs)",
        settings.rate_limit_max_attempts,
        settings.rate_limit_window_seconds,
    )
    app.state.sweep_task = asyncio.create_task(_sweep_loop(app, settings.rate_limit_sweep_seconds))

    yield

    app.state.sweep_task.cancel()
    app.state.user_store.close()
    logger.info("TaskGate auth service shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TaskGate Auth Service",
    description="Registration, login, and bearer token verification.",
    version=VERSION,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Attempt limit middleware
#
# Registered before install_common() so it sits inside CORSMiddleware: a
# preflight OPTIONS is answered before it gets here and costs no attempt, and
# a 429 still carries the CORS headers the browser needs to read it.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def attempt_limit(request: Request, call_next):
    """Spend one attempt per /register or /login request before the body is read."""
    if request.url.path in THROTTLED_PATHS and request.method != "OPTIONS":
        try:
            enforce_attempt_limit(request)
        except RateLimitExceeded as exc:
            return await service_error_handler(request, exc)
    return await call_next(request)


install_common(app)

app.include_router(auth_router, tags=["Auth"])


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly on the app (not in a router) so it is always reachable.
# Not throttled -- load balancer probes must never trip the attempt limiter.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and credential store reachability."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(service="auth", version=VERSION, database="ok" if db_ok else "error")
