"""Shared FastAPI dependencies."""

from catchfeed.cache import CacheEnvelope
from catchfeed.redis_client import get_redis


def get_feed_cache() -> CacheEnvelope:
    """Cache envelope over the shared Redis client."""
    return CacheEnvelope(get_redis())
