"""Timestamped cache envelope over a string key-value store.

Each entry is stored as one JSON document ``{"data": ..., "timestamp": ms}``
under a single key, so a reader sees either the previous value or the new one,
never a mix. The store is injected: in production it is the ``redis.asyncio``
client, in tests any object with async ``get``/``set``/``delete``.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any, Protocol

import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> Any: ...

    async def delete(self, *keys: str) -> Any: ...


class CacheEnvelope:
    """Read/write JSON payloads with a write timestamp; expiry is decided per read."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def read(self, key: str, max_age_seconds: float | None = None) -> Any | None:
        """Return the cached payload, or None when missing, corrupt or expired.

        ``max_age_seconds=None`` ignores age and returns whatever is stored.
        """
        try:
            raw = await self.store.get(key)
        except (RedisError, OSError):
            logger.warning("cache_read_failed", key=key, exc_info=True)
            return None
        if not raw:
            return None

        try:
            entry = json.loads(raw)
        except (TypeError, ValueError):
            logger.info("cache_entry_corrupt", key=key)
            return None
        if not isinstance(entry, dict) or "data" not in entry:
            return None

        timestamp = entry.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return None

        if max_age_seconds is not None:
            age_ms = self._now_ms() - timestamp
            if age_ms >= max_age_seconds * 1000:
                return None

        return entry["data"]

    async def write(self, key: str, value: Any) -> bool:
        """Overwrite ``key`` with ``value`` stamped now. Returns False on store failure."""
        payload = json.dumps({"data": value, "timestamp": self._now_ms()})
        try:
            await self.store.set(key, payload)
        except (RedisError, OSError):
            logger.warning("cache_write_failed", key=key, exc_info=True)
            return False
        return True

    async def clear(self, *keys: str) -> None:
        """Remove entries; failures are logged, never raised."""
        if not keys:
            return
        try:
            await self.store.delete(*keys)
        except (RedisError, OSError):
            logger.warning("cache_clear_failed", keys=list(keys), exc_info=True)
