"""Resolved stream lists backed by CachePort (redis/diskcache/none)."""

from __future__ import annotations

import json
import random
import time
from collections.abc import Callable

import structlog

from archivarr.domain.entities.stremio import CachedStreams, StremioStream
from archivarr.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)


def _serialize(streams: list[StremioStream], cached_at_ms: int) -> str:
    """``{"data": {"streams": [...]}, "cachedAt": <epoch ms>}``"""
    return json.dumps(
        {
            "data": {"streams": [s.to_dict() for s in streams]},
            "cachedAt": cached_at_ms,
        },
        ensure_ascii=False,
    )


def _deserialize(data: str) -> CachedStreams:
    d = json.loads(data)
    return CachedStreams(
        streams=[StremioStream.from_dict(s) for s in d["data"]["streams"]],
        cached_at_ms=int(d["cachedAt"]),
    )


class CacheStreamRepository:
    """Response cache with negative caching, TTL jitter and staleness.

    Implements ``StreamCacheRepository``.  *clock* returns epoch seconds
    and *rng* a float in [0, 1); both are injectable for tests.
    """

    def __init__(
        self,
        cache: CachePort,
        *,
        ttl_seconds: int = 1800,
        negative_ttl_seconds: int = 120,
        stale_after_seconds: int = 900,
        ttl_jitter: float = 0.1,
        clock: Callable[[], float] = time.time,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.cache = cache
        self.ttl = ttl_seconds
        self.negative_ttl = negative_ttl_seconds
        self.stale_after = stale_after_seconds
        self.jitter = ttl_jitter
        self._clock = clock
        self._rng = rng

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def effective_ttl(self, base: int) -> int:
        """Spread *base* uniformly over ``base * (1 ± jitter/2)``."""
        ttl = round(base * (1 + (self._rng() - 0.5) * self.jitter))
        return max(1, ttl)

    async def get(self, key: str) -> CachedStreams | None:
        """Cached entry for *key*; backend failures and corrupt entries read as a miss."""
        try:
            data = await self.cache.get(key)
        except Exception as e:
            log.warning(
                "stream_cache_get_error", key=key, error=str(e), exc_info=True
            )
            return None
        if data is None:
            return None
        try:
            return _deserialize(data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            log.error("stream_cache_deserialize_error", key=key, error=str(e))
            return None

    async def put(self, key: str, streams: list[StremioStream]) -> int:
        base = self.ttl if streams else self.negative_ttl
        ttl = self.effective_ttl(base)
        try:
            await self.cache.set(key, _serialize(streams, self._now_ms()), ttl=ttl)
        except Exception as e:
            # Dropped write; the caller still serves the computed streams.
            log.warning(
                "stream_cache_set_error", key=key, error=str(e), exc_info=True
            )
            return ttl
        log.debug(
            "stream_cache_saved",
            key=key,
            streams=len(streams),
            ttl=ttl,
            negative=not streams,
        )
        return ttl

    def age_seconds(self, entry: CachedStreams) -> float:
        return (self._now_ms() - entry.cached_at_ms) / 1000

    def is_stale(self, entry: CachedStreams) -> bool:
        return self.age_seconds(entry) > self.stale_after
