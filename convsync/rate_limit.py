"""Rate limiting configuration."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from convsync.config import get_settings

settings = get_settings()

limiter = Limiter(key_func=get_remote_address)

# Each manual sync fans out to many upstream requests
SYNC_RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"
