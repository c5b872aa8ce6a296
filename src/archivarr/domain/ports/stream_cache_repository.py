"""Port for resolved stream list persistence."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from archivarr.domain.entities.stremio import CachedStreams, StremioStream


@runtime_checkable
class StreamCacheRepository(Protocol):
    """Async interface for the response cache of resolved stream lists."""

    async def get(self, key: str) -> CachedStreams | None: ...

    async def put(self, key: str, streams: list[StremioStream]) -> int:
        """Store *streams* wholesale; returns the effective TTL in seconds."""
        ...

    def is_stale(self, entry: CachedStreams) -> bool: ...
