"""
api/common.py -- HTTP plumbing shared by the auth and tasks applications.

Both services are separate FastAPI apps (separate processes, separate ports),
but they present one face to clients: the same CORS policy, the same request
log line, and the same error envelope. install_common() wires all three onto
an app so neither app module repeats them.

Middleware stack (outermost to innermost) after install_common():
  1. log_requests    -- one log line per request with latency and client
  2. CORSMiddleware  -- answers preflight OPTIONS before any route logic runs;
                        origins come from CORS_ALLOWED_ORIGINS

Exception handlers all return the ErrorResponse envelope so API clients can
parse errors uniformly without inspecting status codes to choose a schema.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse
from core.config import get_settings
from core.errors import InternalError, RateLimitExceeded, ServiceError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("taskgate.api")

_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
_ALLOWED_HEADERS = ["Content-Type", "Authorization"]


# ---------------------------------------------------------------------------
# Client address
# ---------------------------------------------------------------------------


def client_address(request: Request) -> str:
    """Return the address the request came from, used as the rate-limit key.

    X-Forwarded-For / X-Real-IP are honoured only when TRUST_FORWARDED_HEADERS
    is set. Without a proxy that overwrites them, any client can put an
    arbitrary value there and dodge the limiter.
    """
    if get_settings().trust_forwarded_headers:
        forwarded = request.headers.get("X-Forwarded-For", "")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("X-Real-IP", "").strip()
        if real_ip:
            return real_ip
    return request.client.host if request.client else "unknown"


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


def error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render any ServiceError with its own status, code and message.

    InternalError detail is logged server-side and stripped from the response.
    RateLimitExceeded adds Retry-After.
    """
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.detail)
        return error_response(exc.status_code, exc.code, exc.message)
    response = error_response(exc.status_code, exc.code, exc.message, exc.detail)
    if isinstance(exc, RateLimitExceeded):
        response.headers["Retry-After"] = str(exc.retry_after)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the body is not valid JSON or misses/mistypes a field.

    The offending input value is dropped from each error so a mistyped
    password is never echoed back.
    """
    errors = [{key: value for key, value in err.items() if key != "input"} for err in exc.errors()]
    return error_response(400, "invalid_request", "Invalid request.", str(errors))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured error for Starlette/FastAPI HTTP exceptions (404 routes, 405 methods)."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))).model_dump(),
        headers=exc.headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def install_common(app: FastAPI) -> None:
    """Attach CORS, request logging, and the error handlers to app."""
    settings = get_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_methods=_ALLOWED_METHODS,
        allow_headers=_ALLOWED_HEADERS,
        max_age=3600,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            client_address(request),
        )
        return response

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
