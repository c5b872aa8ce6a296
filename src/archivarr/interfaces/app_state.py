"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from archivarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from archivarr.application.use_cases.stremio_stream import StremioStreamUseCase
    from archivarr.domain.ports import (
        ArchiveClientPort,
        CachePort,
        MetadataClientPort,
        StreamCacheRepository,
    )
    from archivarr.infrastructure.concurrency import (
        RequestDeduplicator,
        UpstreamLimiter,
    )
    from archivarr.infrastructure.metrics import MetricsCollector
    from archivarr.infrastructure.refresh import BackgroundRefresher


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort
    http_client: httpx.AsyncClient

    # Process-wide registries (owned here, handed to the components)
    metrics: MetricsCollector
    upstream_limiter: UpstreamLimiter
    upstream_dedup: RequestDeduplicator
    pipeline_dedup: RequestDeduplicator
    refresher: BackgroundRefresher

    # Upstream clients
    metadata_client: MetadataClientPort
    archive_client: ArchiveClientPort

    # Response cache
    stream_cache: StreamCacheRepository

    # Use case
    stremio_stream_uc: StremioStreamUseCase
