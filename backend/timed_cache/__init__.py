"""Time-bounded memoization cache.

    cache = TimedCache.with_time_to_keep(timedelta(seconds=60))
    token = cache.get("session", fetch_session_token)
"""

from timed_cache.config import CacheSettings, ConfigurationError, get_settings, validate_config_on_startup
from timed_cache.schemas.cache import CacheStats
from timed_cache.services.async_cache import AsyncTimedCache
from timed_cache.services.cache import TimedCache
from timed_cache.services.entry import Entry
from timed_cache.services.memoize import timed_memoize

__all__ = [
    "AsyncTimedCache",
    "CacheSettings",
    "CacheStats",
    "ConfigurationError",
    "Entry",
    "TimedCache",
    "get_settings",
    "timed_memoize",
    "validate_config_on_startup",
]
