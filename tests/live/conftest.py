"""Shared fixtures for live smoke tests.

These tests hit the real metadata service and archive; network errors
and upstream outages are handled gracefully via pytest.skip().
"""

from __future__ import annotations

import httpx
import pytest

from archivarr.infrastructure.archive import InternetArchiveClient
from archivarr.infrastructure.concurrency import RequestDeduplicator, UpstreamLimiter
from archivarr.infrastructure.metadata import CinemetaClient
from archivarr.infrastructure.metrics import MetricsCollector

LIVE_TIMEOUT = 20.0


@pytest.fixture()
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture()
async def live_http() -> httpx.AsyncClient:
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(LIVE_TIMEOUT),
        headers={"User-Agent": "Archivarr/0.1.0 (live tests)"},
        follow_redirects=True,
    ) as client:
        yield client


@pytest.fixture()
def dedup() -> RequestDeduplicator:
    return RequestDeduplicator(UpstreamLimiter(4))


@pytest.fixture()
def cinemeta(live_http, dedup, metrics) -> CinemetaClient:
    return CinemetaClient(
        http_client=live_http,
        deduplicator=dedup,
        metrics=metrics,
        timeout_seconds=LIVE_TIMEOUT,
    )


@pytest.fixture()
def archive(live_http, dedup, metrics) -> InternetArchiveClient:
    return InternetArchiveClient(
        http_client=live_http,
        deduplicator=dedup,
        metrics=metrics,
        timeout_seconds=LIVE_TIMEOUT,
    )
