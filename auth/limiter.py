"""
auth/limiter.py -- Sliding-window attempt limiter for /register and /login.

Protects the credential store from brute force: each source address gets at
most max_attempts accepted attempts inside any trailing window_seconds span.

Algorithm (per check_and_record call, under the lock):
  1. cutoff = now - window_seconds
  2. drop every recorded instant <= cutoff (an attempt exactly at the cutoff
     has left the window)
  3. retained >= max_attempts -> raise RateLimitExceeded; the rejected
     attempt is NOT recorded, so a client hammering the endpoint does not
     extend its own lockout
  4. otherwise append now

Concurrency: the limiter is the only mutable state shared between auth
requests. One threading.Lock serializes every read and write of the mapping.
The lock is held only for the prune/count/append section -- no I/O inside.

Memory: records for quiet sources are dropped by sweep(), which the auth app
runs periodically, and the number of tracked sources is capped at
max_sources. When the cap is hit the least recently active source is evicted.

The instance is owned by the app (app.state.attempt_limiter) rather than
living at module scope, so tests get a fresh limiter and an injected clock.

Layer rule: no imports from api/, tasks/, or cache/.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict, deque
from collections.abc import Callable

from core.errors import RateLimitExceeded

logger = logging.getLogger("taskgate.auth")


class AttemptLimiter:
    """Per-source sliding-window attempt tracker.

    Usage:
        limiter = AttemptLimiter(max_attempts=5, window_seconds=900)
        limiter.check_and_record("203.0.113.7")   # raises RateLimitExceeded on the 6th call
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: float = 15 * 60,
        max_sources: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if max_sources < 1:
            raise ValueError("max_sources must be at least 1")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.max_sources = max_sources
        self._clock = clock
        # OrderedDict keeps sources in least-recently-active order for eviction.
        self._attempts: OrderedDict[str, deque[float]] = OrderedDict()
        self._lock = threading.Lock()

    def check_and_record(self, source_id: str) -> None:
        """Record an attempt from source_id, or raise RateLimitExceeded.

        The Retry-After hint is the time until the oldest retained attempt
        leaves the window, rounded up, at least 1 second.
        """
        removed, evicted, retry_after = 0, None, None
        with self._lock:
            now = self._clock()
            cutoff = now - self.window_seconds
            attempts = self._attempts.get(source_id)
            if attempts is None:
                removed, evicted = self._make_room(cutoff)
                attempts = deque()
                self._attempts[source_id] = attempts
            while attempts and attempts[0] <= cutoff:
                attempts.popleft()
            if len(attempts) >= self.max_attempts:
                retry_after = max(1, math.ceil(attempts[0] - cutoff))
            else:
                attempts.append(now)
                self._attempts.move_to_end(source_id)

        if evicted is not None:
            logger.warning("Attempt limiter full (%d sources); evicted %s", self.max_sources, evicted)
        elif removed:
            logger.info("Attempt limiter swept %d stale sources", removed)
        if retry_after is not None:
            raise RateLimitExceeded(retry_after=retry_after)

    def sweep(self) -> int:
        """Drop sources with no attempts inside the window. Returns the number removed."""
        with self._lock:
            return self._sweep(self._clock() - self.window_seconds)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)

    # ------------------------------------------------------------------
    # Internals -- caller holds self._lock
    # ------------------------------------------------------------------

    def _sweep(self, cutoff: float) -> int:
        stale = [source for source, attempts in self._attempts.items() if not attempts or attempts[-1] <= cutoff]
        for source in stale:
            del self._attempts[source]
        return len(stale)

    def _make_room(self, cutoff: float) -> tuple[int, str | None]:
        """Free a slot for a new source. Returns (stale sources swept, evicted source)."""
        if len(self._attempts) < self.max_sources:
            return 0, None
        removed = self._sweep(cutoff)
        if len(self._attempts) < self.max_sources:
            return removed, None
        evicted, _ = self._attempts.popitem(last=False)
        return removed, evicted
