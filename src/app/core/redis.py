"""Namespaced Redis key-value store with automatic key prefixing.

Every key is prefixed with ``{KV_KEY_PREFIX}:`` so several deployments can
share one Redis database. Only the get/put/delete/list contract is used by
the rest of the application; values are opaque strings (JSON documents).

The store makes no consistency promises beyond what Redis gives a single
command: callers doing read-modify-write must accept that two concurrent
writers can overwrite each other.
"""

from __future__ import annotations

from typing import Protocol

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from src.app.config import get_settings
from src.app.core.errors import UpstreamError

logger = structlog.get_logger(__name__)

# ── Module-level Redis pool (lazy init) ─────────────────────────────────────

_redis_pool: aioredis.Redis | None = None


def get_redis_pool() -> aioredis.Redis:
    """Get or create the Redis connection pool singleton."""
    global _redis_pool
    if _redis_pool is None:
        settings = get_settings()
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None


# ── Key-Value Interface ─────────────────────────────────────────────────────


class KVStore(Protocol):
    """Minimal durable key-value contract used by the job repository."""

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def list_keys(self, prefix: str = "", limit: int = 1000) -> list[str]: ...


class RedisKVStore:
    """KVStore backed by Redis with a namespace prefix on every key.

    Redis failures are surfaced as UpstreamError so the job pipeline can
    record them like any other stage failure.
    """

    def __init__(self, redis_client: aioredis.Redis, namespace: str | None = None):
        self._redis = redis_client
        self._namespace = namespace if namespace is not None else get_settings().KV_KEY_PREFIX

    def _key(self, key: str) -> str:
        """Generate a namespaced key: {namespace}:{key}."""
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> str | None:
        """Get a value by namespaced key."""
        try:
            return await self._redis.get(self._key(key))
        except RedisError as exc:
            raise UpstreamError(f"KV get failed for {key}: {exc}") from exc

    async def put(self, key: str, value: str) -> None:
        """Store a value under a namespaced key."""
        try:
            await self._redis.set(self._key(key), value)
        except RedisError as exc:
            raise UpstreamError(f"KV put failed for {key}: {exc}") from exc

    async def delete(self, key: str) -> None:
        """Delete a key."""
        try:
            await self._redis.delete(self._key(key))
        except RedisError as exc:
            raise UpstreamError(f"KV delete failed for {key}: {exc}") from exc

    async def list_keys(self, prefix: str = "", limit: int = 1000) -> list[str]:
        """List keys starting with prefix, returned without the namespace."""
        strip = len(self._namespace) + 1
        keys: list[str] = []
        try:
            async for full_key in self._redis.scan_iter(match=self._key(f"{prefix}*")):
                keys.append(full_key[strip:])
                if len(keys) >= limit:
                    break
        except RedisError as exc:
            raise UpstreamError(f"KV list failed for prefix {prefix!r}: {exc}") from exc
        return keys


def get_kv_store() -> RedisKVStore:
    """Get a RedisKVStore using the global Redis pool."""
    return RedisKVStore(get_redis_pool())
