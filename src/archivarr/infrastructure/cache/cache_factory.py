"""Cache-Factory - Creates adapters based on config."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import structlog
from redis.exceptions import RedisError

from archivarr.domain.ports.cache import CachePort
from archivarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from archivarr.infrastructure.cache.null_adapter import NullCache
from archivarr.infrastructure.cache.redis_adapter import RedisAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["none", "diskcache", "redis"]


def create_cache(
    backend: CacheBackend = "none",
    *,
    # Diskcache-Config
    directory: str | Path = "./.cache/archivarr",
    # Redis-Config
    redis_url: str = "redis://localhost:6379/0",
    # Shared Config
    ttl_seconds: int = 1800,
    max_concurrent: int = 10,
) -> CachePort:
    """Factory function: creates the cache adapter for *backend*.

    Args:
        backend: "none" (caching disabled), "diskcache" (SQLite) or "redis".
        directory: Diskcache path.
        redis_url: Redis connection string.
        ttl_seconds: Default TTL for both backends.
        max_concurrent: Semaphore limit (diskcache; Redis uses 50).

    Returns:
        CachePort implementation (not yet opened).

    Raises:
        ValueError: If `backend` is unknown.
    """
    log.info("cache_factory_create", backend=backend, ttl=ttl_seconds)
    if backend == "none":
        return NullCache()
    if backend == "diskcache":
        return DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
    if backend == "redis":
        return RedisAdapter(
            url=redis_url,
            ttl_seconds=ttl_seconds,
            max_concurrent=50,  # Redis handles far more parallel ops
        )
    raise ValueError(
        f"Unknown cache backend: {backend!r}. Must be 'none', 'diskcache' or 'redis'."
    )


async def open_cache(
    backend: CacheBackend = "none",
    **kwargs: object,
) -> CachePort:
    """Create and open a cache adapter, degrading to ``NullCache``.

    A backend that cannot be opened (unreachable Redis, unwritable
    cache directory) disables caching for the process lifetime instead
    of failing startup.
    """
    cache = create_cache(backend, **kwargs)  # type: ignore[arg-type]
    try:
        await cache.__aenter__()
    except (RedisError, OSError) as e:
        log.warning(
            "cache_backend_unavailable",
            backend=backend,
            error=str(e),
            fallback="none",
        )
        return NullCache()
    return cache
