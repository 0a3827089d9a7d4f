"""
auth/credentials.py -- Credential validation, password hashing, register and login.

Security design decisions:
  Passwords: bcrypt, used directly (no passlib wrapper). Bcrypt's cost factor
       makes brute-force of low-entropy secrets expensive. Cost comes from
       BCRYPT_ROUNDS (default 10, ~100ms per hash).

       bcrypt only looks at the first 72 bytes of its input, and bcrypt 5.x
       raises ValueError on longer input. validate_password() rejects such
       passwords at registration so a stored hash always covers the whole
       password.

  Timing equalization [C1]: authenticate_user() always runs bcrypt, against
       _DUMMY_HASH when the username does not exist, so response time does not
       reveal whether a username is registered.

  Single failure [C2]: unknown username and wrong password raise the same
       InvalidCredentials with the same message.

  The plaintext password is never logged and never stored.

Layer rule: no imports from api/, tasks/, or cache/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import User
from core.config import get_settings
from core.errors import ConflictError, InternalError, InvalidCredentials, ValidationError

if TYPE_CHECKING:
    from auth.store import UserStore

logger = logging.getLogger("taskgate.auth")

_settings = get_settings()

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 32
PASSWORD_MIN_LENGTH = 8
_BCRYPT_MAX_BYTES = 72


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------


def _byte_length(value: str) -> int:
    """Length rules count UTF-8 bytes, so "\u00e9" counts 2 towards every limit."""
    return len(value.encode("utf-8"))


def validate_username(username: str) -> None:
    if _byte_length(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(f"username must be at least {USERNAME_MIN_LENGTH} characters long")
    if _byte_length(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(f"username must be no more than {USERNAME_MAX_LENGTH} characters")


def validate_password(password: str) -> None:
    if _byte_length(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if _byte_length(password) > _BCRYPT_MAX_BYTES:
        raise ValidationError(f"password must be no more than {_BCRYPT_MAX_BYTES} bytes")


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. Malformed hashes and inputs
    bcrypt refuses (over 72 bytes) count as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt for an unknown
# username costs the same as every later one [C1].
_DUMMY_HASH: str = hash_password("taskgate_timing_dummy")


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def register_user(store: UserStore, username: str, password: str) -> User:
    """Validate, hash, and persist a new credential.

    Raises:
        ValidationError: a field breaks a length rule. Storage is not touched.
        ConflictError:   the username is already taken (UNIQUE constraint).
        InternalError:   hashing or any other storage failure.
    """
    validate_username(username)
    validate_password(password)

    try:
        hashed = hash_password(password)
    except ValueError as exc:
        raise InternalError(detail="password hashing failed") from exc

    try:
        user_id = store.create_user(User(username=username, hashed_password=hashed))
    except IntegrityError as exc:
        logger.warning("Registration rejected: username %r already exists", username)
        raise ConflictError("Username already exists.") from exc
    except SQLAlchemyError as exc:
        logger.error("Registration insert failed for %r: %s", username, exc)
        raise InternalError(detail="credential insert failed") from exc

    logger.info("Registered user %r (id=%d)", username, user_id)
    return User(id=user_id, username=username)


def authenticate_user(store: UserStore, username: str, password: str) -> User:
    """Authenticate a username/password pair with timing equalization [C1][C2].

    Always runs bcrypt whether or not the user exists:
    - Unknown username: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success; raises InvalidCredentials on any failure.
    """
    try:
        user = store.get_by_username(username)
    except SQLAlchemyError as exc:
        logger.error("Credential lookup failed: %s", exc)
        raise InternalError(detail="credential lookup failed") from exc

    if user is None or user.hashed_password is None:
        # Equalize timing -- do NOT return early before running bcrypt [C1]
        verify_password(password, _DUMMY_HASH)
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials()
    return user
