"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tasks/models.py -- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/, tasks/, or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A stored credential.

    hashed_password is a bcrypt hash and must never leave the auth service.
    Route handlers build their response from id and username only.
    """

    username: str
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The identity asserted by a verified access token.

    expires_at is None only for identities that were not decoded from a
    token (e.g. test doubles).
    """

    user_id: int
    username: str
    expires_at: datetime | None = None
