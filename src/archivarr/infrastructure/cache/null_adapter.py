"""Null cache - used when no cache backend is configured or reachable."""

from __future__ import annotations


class NullCache:
    """CachePort that always misses and silently drops writes."""

    name = "none"

    async def __aenter__(self) -> NullCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        return None

    async def get(self, key: str) -> str | None:
        return None

    async def set(self, key: str, value: str, *, ttl: int | None = None) -> None:
        return None

    async def delete(self, key: str) -> bool:
        return False
