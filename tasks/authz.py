"""
tasks/authz.py -- Authorization client: asks the auth service who a caller is.

The tasks service holds no signing key and never decodes tokens itself. Every
request's Authorization header is forwarded verbatim to the auth service's
GET /verify endpoint; a 200 answer carrying an integer user_id is the only
thing that authorizes the request.

Failure policy: anything other than a clean 200 with a usable user_id --
connection error, timeout, non-200 status, undecodable body, missing or
non-integer user_id -- raises Unauthorized. There are no retries: a transient
failure surfaces immediately as a 401.

Blocking: authorize() is synchronous. Route dependencies that call it are
plain def functions so FastAPI runs them on a worker thread. The timeout
bounds how long one request can wait on an unreachable auth service.

Caching: with a VerificationCache attached, a successful verification is
reused for the same token until the cache TTL or the token's own expiry,
whichever comes first. Failures are never cached.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import requests

from cache.store import VerificationCache
from core.errors import Unauthorized

logger = logging.getLogger("taskgate.tasks")


class AuthServiceClient:
    """Remote token verification against the auth service.

    Usage:
        client = AuthServiceClient("http://localhost:8080", timeout=3.0)
        user_id = client.authorize(request.headers.get("Authorization"))
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 3.0,
        cache: Optional[VerificationCache] = None,
        session: Optional[Any] = None,
    ) -> None:
        self.verify_url = base_url.rstrip("/") + "/verify"
        self.timeout = timeout
        self.cache = cache
        # Shared session for connection pooling to the auth service. Redirects
        # are never expected from /verify, so none are followed.
        if session is None:
            session = requests.Session()
            session.max_redirects = 0
        self._session = session

    def authorize(self, auth_header: Optional[str]) -> int:
        """Return the user id the auth service vouches for, or raise Unauthorized."""
        if not auth_header or not auth_header.strip():
            raise Unauthorized()

        if self.cache is not None:
            cached = self.cache.get(auth_header)
            if cached is not None:
                return cached

        try:
            resp = self._session.get(
                self.verify_url,
                headers={"Authorization": auth_header},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Auth service verify call failed: %s", e)
            raise Unauthorized() from e

        if resp.status_code != 200:
            raise Unauthorized()

        try:
            body = resp.json()
        except ValueError as e:
            logger.warning("Auth service returned a non-JSON verify response")
            raise Unauthorized() from e

        user_id = body.get("user_id") if isinstance(body, dict) else None
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            logger.warning("Auth service verify response has no usable user_id")
            raise Unauthorized()

        if self.cache is not None:
            self.cache.set(auth_header, user_id, _parse_expiry(body.get("expires_at")))
        return user_id

    def close(self) -> None:
        self._session.close()


def _parse_expiry(value: Any) -> Optional[datetime]:
    """Parse the ISO 8601 expires_at field. None when absent or unparseable."""
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
