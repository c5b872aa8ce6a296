"""Cache Port - Interface for backend-agnostic caching strategies."""

from __future__ import annotations

from typing import Protocol


class CachePort(Protocol):
    """Port for async text key-value cache with TTL support.

    Implementations:
      - RedisAdapter (Redis async client)
      - DiskcacheAdapter (SQLite-based, no daemon)
      - NullCache (always misses, drops writes; used when no backend is available)

    Values are text (JSON documents). Backend errors never propagate:
    a failed read is a miss, a failed write is dropped.

    Each adapter MUST support async context-manager semantics:
        async with cache:
            await cache.set("key", value)
    """

    name: str

    async def get(self, key: str) -> str | None:
        """Retrieve value. None = not found / expired / backend error."""
        ...

    async def set(self, key: str, value: str, *, ttl: int | None = None) -> None:
        """Set value with optional TTL (seconds)."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. True = deleted, False = did not exist."""
        ...

    async def aclose(self) -> None:
        """Cleanup hook (e.g. close Redis connection)."""
        ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
