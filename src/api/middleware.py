"""Rate limiting (slowapi), keyed by client address."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config import settings

DEFAULT_LIMIT = "100/minute"
SIGNIN_LIMIT = "10/minute"

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
