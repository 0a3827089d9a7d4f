"""
auth/tokens.py -- Identity token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       user_id, username, iat and exp (iat + TOKEN_TTL_SECONDS, 24h default).
       Tokens are stateless -- nothing is stored server-side, and a token
       stops working only when it expires.

  Verification raises InvalidToken on any failure (bad signature, expired,
       missing exp/iat, wrong claim types). The route layer turns that into
       a 401 with a generic message.

  Bearer parsing: extract_bearer_token() checks the "Bearer " prefix before
       stripping it. A header that is too short, uses another scheme, or
       carries an empty token is rejected rather than sliced blindly.

  JWT_SECRET: sourced from core.config.get_settings() once at module load.
       See core/config.py for the fallback and length policy.

  Secret rotation and token revocation are out of scope: one key signs and
       verifies every token for the lifetime of the process.

Layer rule: no imports from api/, tasks/, or cache/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import Identity
from core.config import get_settings
from core.errors import InvalidToken

_settings = get_settings()

_ALGORITHM = "HS256"
_BEARER_PREFIX = "Bearer "


def create_access_token(user_id: int, username: str, issued_at: datetime | None = None) -> str:
    """Encode a signed JWT asserting the given identity.

    Args:
        user_id:   Numeric user ID stored in the DB.
        username:  Username at issue time.
        issued_at: Override for the iat claim. Defaults to now (UTC). The exp
                   claim is always issued_at + TOKEN_TTL_SECONDS.
    """
    issued = issued_at or datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "username": username,
        "iat": issued,
        "exp": issued + timedelta(seconds=_settings.token_ttl_seconds),
    }
    return jwt.encode(payload, _settings.jwt_secret, algorithm=_ALGORITHM)


def verify_access_token(token: str) -> Identity:
    """Decode and verify a JWT, returning the identity it asserts.

    Raises InvalidToken if the signature does not match, the token has
    expired, or the claim set is malformed.
    """
    try:
        payload = jwt.decode(
            token,
            _settings.jwt_secret,
            algorithms=[_ALGORITHM],
            options={"require_exp": True, "require_iat": True},
        )
    except JWTError as exc:
        raise InvalidToken() from exc

    user_id = payload.get("user_id")
    username = payload.get("username")
    # bool is a subclass of int; a True user_id is a malformed claim, not user 1.
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(username, str):
        raise InvalidToken()
    return Identity(
        user_id=user_id,
        username=username,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


def extract_bearer_token(header: str | None) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header value.

    Raises InvalidToken when the header is missing, uses another scheme, or
    carries no token.
    """
    if not header:
        raise InvalidToken("No token provided.")
    if not header.startswith(_BEARER_PREFIX):
        raise InvalidToken()
    token = header[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise InvalidToken()
    return token
