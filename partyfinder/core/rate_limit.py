"""Shared slowapi limiter for the auth and check-in routes."""
from slowapi import Limiter
from slowapi.util import get_remote_address
from partyfinder.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
