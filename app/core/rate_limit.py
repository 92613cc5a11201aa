"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# Rate limiter instance: remote address as key
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
