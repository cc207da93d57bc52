# ticketing/core/limiter.py
"""
Request rate limiter shared by the routers and the app.
Kept in its own module so endpoints can import it without importing main.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ticketing.core.config import settings

# Keyed by client IP; tests switch it off with RATE_LIMIT_ENABLED=false.
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
