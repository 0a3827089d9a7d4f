"""
cache/store.py -- In-memory TTL cache for verified bearer tokens.

The tasks service authorizes every request by calling the auth service's
/verify endpoint. This cache remembers successful verifications for a short
time so a burst of requests with the same token costs one network round trip.

Each entry expires at the earlier of (now + ttl) and the token's own expiry,
so a cached verification never outlives the token it vouches for. Failed
verifications are never stored.

Usage:
    cache = VerificationCache(ttl=30)
    cache.set(token, user_id=42, token_expires_at=exp)
    cache.get(token)        # returns 42 or None
    cache.purge_expired()   # call periodically to trim old entries
"""

import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

_DEFAULT_TTL = 30.0  # seconds


class VerificationCache:
    def __init__(self, ttl: float = _DEFAULT_TTL, clock: Callable[[], float] = time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def get(self, token: str) -> Optional[int]:
        """Return the cached user id for token if it exists and hasn't expired."""
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            user_id, expires = entry
            if self._clock() >= expires:
                del self._entries[token]
                return None
            return user_id

    def set(self, token: str, user_id: int, token_expires_at: Optional[datetime] = None) -> None:
        """Store user_id for token, replacing any existing entry.

        Nothing is stored when ttl is 0 or the token has already expired.
        """
        now = self._clock()
        expires = now + self.ttl
        if token_expires_at is not None:
            if token_expires_at.tzinfo is None:
                token_expires_at = token_expires_at.replace(tzinfo=timezone.utc)
            expires = min(expires, token_expires_at.timestamp())
        if expires <= now:
            return
        with self._lock:
            self._entries[token] = (user_id, expires)

    def purge_expired(self) -> int:
        """Delete all expired entries. Returns number of entries removed."""
        with self._lock:
            now = self._clock()
            expired = [token for token, (_, expires) in self._entries.items() if expires <= now]
            for token in expired:
                del self._entries[token]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
