"""
api/dependencies.py -- Request guards for both services.

enforce_attempt_limit() guards /register and /login. It is called from the
auth app's attempt_limit middleware rather than through Depends(): FastAPI
parses a JSON body before it resolves route dependencies, and a throttled
client must get 429 even when its body is malformed.

require_user_id() guards every /tasks route. It forwards the caller's
Authorization header to the auth service and yields the user id the auth
service vouches for, or raises Unauthorized (401). It is a plain def
dependency: the authorization client makes a blocking HTTP call, so FastAPI
must run it on a worker thread rather than on the event loop.

The collaborators live on app.state (attempt_limiter, auth_client) and are
created in each app's lifespan, so tests can swap them out.
"""

from __future__ import annotations

import logging

from fastapi import Request

from api.common import client_address
from core.errors import RateLimitExceeded

logger = logging.getLogger("taskgate.api")

THROTTLED_PATHS = frozenset({"/register", "/login"})


def enforce_attempt_limit(request: Request) -> None:
    """Count this request against the caller's login/register budget. Raises 429 when spent."""
    source = client_address(request)
    try:
        request.app.state.attempt_limiter.check_and_record(source)
    except RateLimitExceeded:
        logger.warning("Rate limit exceeded for %s on %s", source, request.url.path)
        raise


def require_user_id(request: Request) -> int:
    """Require a token the auth service accepts. Returns the caller's user id.

    Use as a FastAPI dependency:
        @router.get("/tasks")
        def route(user_id: int = Depends(require_user_id)): ...
    """
    return request.app.state.auth_client.authorize(request.headers.get("Authorization"))
