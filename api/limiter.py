"""
api/limiter.py -- Shared slowapi rate limiter instance for the tasks service.

Import this in both api/tasks_app.py (to mount as middleware) and
api/routes/tasks.py (to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

This is a general request throttle. Login/register throttling has different
rules (rejected attempts are not counted) and lives in auth/limiter.py.
"""

from slowapi import Limiter

from api.common import client_address
from core.config import get_settings

# Keyed like the attempt limiter: forwarded headers count only when
# TRUST_FORWARDED_HEADERS is set.
limiter = Limiter(key_func=client_address, storage_uri="memory://")

TASKS_LIMIT = get_settings().tasks_rate_limit
