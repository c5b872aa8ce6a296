"""Zero-impact in-memory pipeline metrics.

All counters are plain Python integers manipulated inside the single-threaded
async event loop. No locks and no I/O.

``time.perf_counter_ns()`` is used for timing (monotonic, nanosecond
resolution, near-zero overhead).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class UpstreamStats:
    """Accumulated statistics for one upstream endpoint."""

    calls: int = 0
    errors: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable summary."""
        avg_ms = (
            round(self.total_duration_ns / self.calls / 1_000_000, 1)
            if self.calls
            else 0.0
        )
        return {
            "calls": self.calls,
            "errors": self.errors,
            "avg_duration_ms": avg_ms,
        }


@dataclass
class CacheStats:
    """Response cache outcome counters."""

    hits: int = 0
    misses: int = 0
    stale_hits: int = 0
    refreshes: int = 0
    refresh_failures: int = 0

    def snapshot(self) -> dict[str, object]:
        lookups = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stale_hits": self.stale_hits,
            "refreshes": self.refreshes,
            "refresh_failures": self.refresh_failures,
            "hit_ratio": round(self.hits / lookups, 3) if lookups else 0.0,
        }


@dataclass
class MetricsCollector:
    """Central in-memory metrics collector.

    Thread-safety is not required: the async event loop is
    single-threaded, so plain integer increments are atomic enough.
    """

    requests: int = 0
    _upstreams: dict[str, UpstreamStats] = field(default_factory=dict)
    _cache: CacheStats = field(default_factory=CacheStats)
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_request(self) -> None:
        self.requests += 1

    def record_upstream_call(
        self,
        upstream: str,
        duration_ns: int,
        *,
        success: bool,
    ) -> None:
        """Record one upstream call (metadata, archive search, file listing)."""
        stats = self._upstreams.get(upstream)
        if stats is None:
            stats = UpstreamStats()
            self._upstreams[upstream] = stats

        stats.calls += 1
        stats.total_duration_ns += duration_ns
        if not success:
            stats.errors += 1

    def record_cache_hit(self, *, stale: bool = False) -> None:
        self._cache.hits += 1
        if stale:
            self._cache.stale_hits += 1

    def record_cache_miss(self) -> None:
        self._cache.misses += 1

    def record_refresh(self, *, success: bool) -> None:
        self._cache.refreshes += 1
        if not success:
            self._cache.refresh_failures += 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def upstream_errors(self, upstream: str | None = None) -> int:
        """Error count for one upstream, or the total across all of them."""
        if upstream is not None:
            stats = self._upstreams.get(upstream)
            return stats.errors if stats else 0
        return sum(s.errors for s in self._upstreams.values())

    def upstream_calls(self, upstream: str) -> int:
        stats = self._upstreams.get(upstream)
        return stats.calls if stats else 0

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_ns = time.perf_counter_ns() - self._start_ns
        uptime_s = round(uptime_ns / 1_000_000_000, 1)

        return {
            "uptime_seconds": uptime_s,
            "requests": self.requests,
            "cache": self._cache.snapshot(),
            "upstreams": {
                name: stats.snapshot()
                for name, stats in sorted(self._upstreams.items())
            },
            "upstream_errors": self.upstream_errors(),
        }
