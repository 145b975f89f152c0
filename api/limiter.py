"""
api/limiter.py -- The one slowapi Limiter shared by every rate-limited route.

api/main.py mounts it as middleware and api/routes/auth.py applies per-route
limits with @limiter.limit(). A second Limiter instance would keep its own
counters, so limits set through it would never trigger.

Counters live in RATE_LIMIT_STORAGE_URI. The default "memory://" is per
process; point several API instances at a shared backend (e.g. redis://) so
they count /login and OTP requests together.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri=get_settings().rate_limit_storage_uri)
