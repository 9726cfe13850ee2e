"""Balance cache adapters: in-process TTL map and shared Redis.

Both satisfy BalanceCacheProtocol. Values are JSON-compatible snapshots
(dicts of str/int); neither adapter is ever the system of record.
"""

import asyncio
import contextlib
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float  # clock() reading after which the entry is gone


class InMemoryBalanceCache:
    """TTL cache owned by the hosting process.

    Expiry is checked on every read, so an entry is invisible from the instant
    ``ttl`` elapses even if the background sweep has not run yet. The sweep
    only reclaims memory; start it with ``start_cleanup()`` and stop it with
    ``stop_cleanup()`` on shutdown.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        cleanup_interval_seconds: float = 60.0,
    ) -> None:
        self._clock = clock
        self._cleanup_interval = cleanup_interval_seconds
        self._entries: dict[str, CacheEntry] = {}
        self._cleanup_task: asyncio.Task[None] | None = None

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            # Only drop the entry we looked at, not one a concurrent set() replaced.
            if self._entries.get(key) is entry:
                del self._entries[key]
            return None
        return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            self._entries.pop(key, None)
            return
        self._entries[key] = CacheEntry(key, value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    @property
    def cleanup_running(self) -> bool:
        return self._cleanup_task is not None and not self._cleanup_task.done()

    def start_cleanup(self) -> None:
        if self.cleanup_running:
            return
        self._cleanup_task = asyncio.get_running_loop().create_task(
            self._cleanup_loop(), name="balance-cache-cleanup"
        )

    async def stop_cleanup(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval)
            removed = self.purge_expired()
            if removed:
                logger.debug("Balance cache sweep removed %d expired entries", removed)


class RedisBalanceCache:
    """Shared cache for multi-worker deployments. TTL is enforced by Redis (PX)."""

    def __init__(self, client: aioredis.Redis, namespace: str = "ic:") -> None:
        self._redis = client
        self._namespace = namespace

    def _k(self, key: str) -> str:
        return f"{self._namespace}{key}"

    async def get(self, key: str) -> Any | None:
        raw = await self._redis.get(self._k(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            await self._redis.delete(self._k(key))
            return
        ttl_ms = max(1, int(ttl_seconds * 1000))
        await self._redis.set(self._k(key), json.dumps(value), px=ttl_ms)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._k(key))
