"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from archivarr.application.use_cases.stremio_stream import StremioStreamUseCase
from archivarr.infrastructure.archive import InternetArchiveClient
from archivarr.infrastructure.cache import open_cache
from archivarr.infrastructure.concurrency import RequestDeduplicator, UpstreamLimiter
from archivarr.infrastructure.metadata import CinemetaClient
from archivarr.infrastructure.metrics import MetricsCollector
from archivarr.infrastructure.persistence.stream_cache import CacheStreamRepository
from archivarr.infrastructure.refresh import BackgroundRefresher
from archivarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Metrics (recorded into by everything below)
        2. Cache backend (degrades to NullCache when unavailable)
        3. HTTP client
        4. Upstream limiter + deduplicators
        5. Metadata and archive clients
        6. Response cache + background refresher
        7. Stremio stream use case
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Metrics collector
    state.metrics = MetricsCollector()

    # 2) Cache backend (selected once; never branched on per call)
    state.cache = await open_cache(
        config.cache.backend,
        directory=str(config.cache.directory),
        redis_url=config.cache.redis_url,
        ttl_seconds=config.cache.ttl_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    log.info(
        "cache_initialized",
        configured=config.cache.backend,
        active=state.cache.name,
    )

    # 3) HTTP client shared by all upstream calls
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.upstream.timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=True,
    )
    log.info("http_client_initialized", timeout=config.upstream.timeout_seconds)

    # 4) Admission gate + single-flight registries
    state.upstream_limiter = UpstreamLimiter(config.upstream.concurrency)
    state.upstream_dedup = RequestDeduplicator(state.upstream_limiter, name="upstream")
    # Not limiter-gated: a pipeline run must never hold the slot its own calls wait for.
    state.pipeline_dedup = RequestDeduplicator(name="pipeline")
    log.info("upstream_limiter_initialized", capacity=config.upstream.concurrency)

    # 5) Upstream clients
    state.metadata_client = CinemetaClient(
        http_client=state.http_client,
        deduplicator=state.upstream_dedup,
        metrics=state.metrics,
        base_url=config.upstream.cinemeta_url,
        timeout_seconds=config.upstream.timeout_seconds,
    )
    state.archive_client = InternetArchiveClient(
        http_client=state.http_client,
        deduplicator=state.upstream_dedup,
        cache=state.cache,
        metrics=state.metrics,
        search_url=config.upstream.archive_search_url,
        metadata_url=config.upstream.archive_metadata_url,
        download_url=config.upstream.archive_download_url,
        timeout_seconds=config.upstream.timeout_seconds,
        files_ttl_seconds=config.cache.files_ttl_seconds,
        files_empty_ttl_seconds=config.cache.files_empty_ttl_seconds,
    )

    # 6) Response cache + stale-while-revalidate
    state.stream_cache = CacheStreamRepository(
        state.cache,
        ttl_seconds=config.cache.ttl_seconds,
        negative_ttl_seconds=config.cache.negative_ttl_seconds,
        stale_after_seconds=config.cache.stale_after_seconds,
        ttl_jitter=config.cache.ttl_jitter,
    )
    state.refresher = BackgroundRefresher(metrics=state.metrics)

    # 7) Use case
    state.stremio_stream_uc = StremioStreamUseCase(
        metadata=state.metadata_client,
        archive=state.archive_client,
        stream_cache=state.stream_cache,
        refresher=state.refresher,
        pipeline_dedup=state.pipeline_dedup,
        config=config.stremio,
        metrics=state.metrics,
    )

    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.refresher.aclose()
        log.info("refresher_stopped")

        await state.http_client.aclose()
        log.info("http_client_closed")

        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
