"""Redis pool behind the first-page feed cache."""

import redis.asyncio as redis
from redis.exceptions import RedisError

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    """Open the cache store pool. Values are JSON strings, so responses are decoded."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """The shared cache store client."""
    if _pool is None:
        msg = "Cache store not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def cache_store_status() -> str:
    """``"ok"`` if the cache store answers a PING, else ``"error: ..."``."""
    try:
        await get_redis().ping()
    except (RedisError, OSError, RuntimeError) as exc:
        return f"error: {exc}"
    return "ok"
