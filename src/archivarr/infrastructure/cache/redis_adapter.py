"""Redis-Adapter - Async Redis via redis.asyncio."""

from __future__ import annotations

import asyncio

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

log = structlog.get_logger(__name__)


class RedisAdapter:
    """Async Redis cache with connection pooling via semaphore.

    - Uses `redis.asyncio.Redis` (async-native, no to_thread needed).
    - Semaphore limits parallel Redis ops (prevents connection exhaustion).
    - Values are stored as UTF-8 text (JSON documents built by callers).
    - Any RedisError reads as a miss / dropped write.

    Args:
        url: Redis URL (e.g. `redis://localhost:6379/0`).
        ttl_seconds: Default TTL.
        max_concurrent: Max parallel Redis ops (default: 50, tunable).
        connect_timeout: Socket connect timeout in seconds.
        socket_timeout: Per-command read timeout in seconds; a stalled
            server surfaces as a RedisError (miss / dropped write).
    """

    name = "redis"

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 1800,
        max_concurrent: int = 50,
        connect_timeout: float = 2.0,
        socket_timeout: float = 2.0,
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self.connect_timeout = connect_timeout
        self.socket_timeout = socket_timeout
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

        log.info(
            "redis_adapter_init",
            url=url,
            default_ttl=ttl_seconds,
            max_concurrent=max_concurrent,
        )

    # --- Context Manager ---
    async def __aenter__(self) -> RedisAdapter:
        """Initialize Redis client and verify the connection (PING).

        Raises:
            RedisError: When the server cannot be reached.
        """
        if self._client is None:
            self._client = Redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.connect_timeout,
                socket_timeout=self.socket_timeout,
            )
            try:
                await self._client.ping()
                log.info("redis_connected", url=self.url)
            except RedisError as e:
                log.error("redis_connection_failed", url=self.url, error=str(e))
                await self.aclose()
                raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Cleanup: close Redis connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.info("redis_closed")

    # --- CachePort implementation ---
    async def get(self, key: str) -> str | None:
        """GET raw text value."""
        if self._client is None:
            raise RuntimeError("Redis not initialized. Use 'async with cache:'")

        async with self._semaphore:
            try:
                value = await self._client.get(key)
            except RedisError as e:
                log.warning("redis_get_error", key=key, error=str(e))
                return None
        log.debug("cache_get", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: str, *, ttl: int | None = None) -> None:
        """SET with TTL (SETEX)."""
        if self._client is None:
            raise RuntimeError("Redis not initialized.")

        expire_time = max(1, ttl if ttl is not None else self.default_ttl)

        async with self._semaphore:
            try:
                await self._client.setex(key, expire_time, value)
                log.debug(
                    "cache_set",
                    key=key,
                    ttl=expire_time,
                    size_bytes=len(value),
                )
            except RedisError as e:
                log.warning("redis_set_error", key=key, error=str(e))

    async def delete(self, key: str) -> bool:
        """DEL Key."""
        if self._client is None:
            return False

        async with self._semaphore:
            try:
                deleted = await self._client.delete(key)
                log.debug("cache_delete", key=key, deleted=deleted > 0)
                return deleted > 0
            except RedisError as e:
                log.warning("redis_delete_error", key=key, error=str(e))
                return False
