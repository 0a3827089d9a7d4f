"""
api/tasks_app.py -- FastAPI application for the TaskGate tasks service.

Per-user task records. Holds no signing key: every request is authorized by
the auth service's /verify endpoint through tasks.authz.AuthServiceClient.
Default port 8082.

Run with:  uvicorn asgi:tasks_app --port 8082
           python main.py tasks

Middleware stack (outermost to innermost):
  1. log_requests / CORSMiddleware -- from api.common.install_common
  2. SlowAPIMiddleware             -- enforces per-route limits from api.limiter

Lifespan handles startup (task store, auth client, cache purge task) and
shutdown (cancel purge task, close DB and HTTP session) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded as RequestRateExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.common import error_response, install_common
from api.limiter import limiter
from api.models import HealthResponse
from api.routes.tasks import router as tasks_router
from cache.store import VerificationCache
from core.config import get_settings
from tasks.authz import AuthServiceClient
from tasks.store import TaskStore

VERSION = "1.0.0"

logger = logging.getLogger("taskgate.api")

_CACHE_PURGE_SECONDS = 60


async def _purge_loop(app: FastAPI) -> None:
    """Purge expired verification cache entries every minute."""
    while True:
        await asyncio.sleep(_CACHE_PURGE_SECONDS)
        cache = app.state.auth_client.cache
        if cache is not None:
            cache.purge_expired()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info("TaskGate tasks service starting up")
    app.state.task_store = TaskStore(settings.tasks_db_url)
    cache = None
    if settings.auth_verify_cache_seconds > 0:
        cache = VerificationCache(ttl=settings.auth_verify_cache_seconds)
    app.state.auth_client = AuthServiceClient(
        settings.auth_service_url,
        timeout=settings.auth_verify_timeout_seconds,
        cache=cache,
    )
    logger.info(
        "Authorizing against %s (timeout=%.1fs, cache=%s)",
        settings.auth_service_url,
        settings.auth_verify_timeout_seconds,
        f"{settings.auth_verify_cache_seconds:.0f}s" if cache is not None else "off",
    )
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    app.state.auth_client.close()
    app.state.task_store.close()
    logger.info("TaskGate tasks service shutdown complete")


app = FastAPI(
    title="TaskGate Tasks Service",
    description="Per-user task records, authorized by the TaskGate auth service.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(SlowAPIMiddleware)
# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

install_common(app)

app.include_router(tasks_router, tags=["Tasks"])


@app.exception_handler(RequestRateExceeded)
async def request_rate_handler(request: Request, exc: RequestRateExceeded) -> JSONResponse:
    """Return 429 in the shared error envelope when a slowapi limit is exceeded."""
    response = error_response(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60)))
    return response


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and task store reachability. No auth, no throttle."""
    db_ok = request.app.state.task_store.ping()
    return HealthResponse(service="tasks", version=VERSION, database="ok" if db_ok else "error")
