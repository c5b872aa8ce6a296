"""Tests for InternetArchiveClient (search and file listings)."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from archivarr.infrastructure.archive.client import (
    InternetArchiveClient,
    parse_file,
    parse_hits,
)
from archivarr.infrastructure.concurrency import RequestDeduplicator, UpstreamLimiter
from archivarr.infrastructure.metrics import MetricsCollector

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

_SEARCH_URL = "https://archive.org/services/search/beta/page_production/"
_METADATA_URL = "https://archive.org/metadata"


def _search_response(*fields: dict) -> dict:
    return {
        "response": {
            "body": {"hits": {"hits": [{"fields": f} for f in fields]}},
        }
    }


_FILES_RESPONSE = {
    "result": [
        {
            "name": "The.Matrix.1999.mp4",
            "source": "original",
            "format": "h.264",
            "length": "8160.5",
            "size": "2147483648",
            "height": "1080",
        },
        {"name": "The.Matrix.1999.srt", "source": "original", "size": "40000"},
        {"name": "The.Matrix.1999.ia.mp4", "source": "derivative", "length": "01:30:00"},
        {"source": "metadata"},
    ]
}


@pytest.fixture()
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture()
def client(http_client: httpx.AsyncClient, fake_cache, metrics) -> InternetArchiveClient:
    return InternetArchiveClient(
        http_client=http_client,
        deduplicator=RequestDeduplicator(UpstreamLimiter(2)),
        cache=fake_cache,
        metrics=metrics,
        timeout_seconds=2.0,
    )


@pytest.fixture()
def slow_client(
    http_client: httpx.AsyncClient, fake_cache, metrics
) -> InternetArchiveClient:
    return InternetArchiveClient(
        http_client=http_client,
        deduplicator=RequestDeduplicator(UpstreamLimiter(2)),
        cache=fake_cache,
        metrics=metrics,
        timeout_seconds=0.01,
    )


async def _stall(request: httpx.Request) -> httpx.Response:
    await asyncio.sleep(1.0)
    return httpx.Response(200, json={})


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParsing:
    def test_hits_accept_list_valued_fields(self) -> None:
        items = parse_hits(
            _search_response(
                {"identifier": "a", "title": ["Part", "One"], "description": "d"},
                {"identifier": "", "title": "skipped"},
                {"identifier": "b"},
            )
        )
        assert [(i.identifier, i.title, i.description) for i in items] == [
            ("a", "Part One", "d"),
            ("b", "", ""),
        ]

    def test_hits_unexpected_shape_raises(self) -> None:
        with pytest.raises(KeyError):
            parse_hits({"response": {}})

    def test_file_duration_formats(self) -> None:
        f = parse_file({"name": "a.mp4", "length": "01:30:00"})
        assert f is not None
        assert f.length_seconds == 5400.0
        g = parse_file({"name": "b.mp4", "length": "123.5", "height": "0"})
        assert g is not None
        assert g.length_seconds == 123.5
        assert g.height is None

    def test_file_bad_duration_is_unknown(self) -> None:
        f = parse_file({"name": "a.mp4", "length": "n/a"})
        assert f is not None
        assert f.length_seconds is None

    def test_file_without_name(self) -> None:
        assert parse_file({"size": "10"}) is None


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------


class TestSearch:
    @respx.mock
    async def test_sends_query_and_limits(self, client: InternetArchiveClient) -> None:
        route = respx.get(_SEARCH_URL).respond(
            200,
            json=_search_response(
                {"identifier": "the-matrix-1999", "title": "The Matrix"},
            ),
        )

        items = await client.search("title:(matrix)", 5, sort="week:desc")

        assert [i.identifier for i in items] == ["the-matrix-1999"]
        params = route.calls.last.request.url.params
        assert params["user_query"] == "title:(matrix)"
        assert params["hits_per_page"] == "5"
        assert params["sort"] == "week:desc"

    @respx.mock
    async def test_no_sort_param_when_unsorted(self, client: InternetArchiveClient) -> None:
        route = respx.get(_SEARCH_URL).respond(200, json=_search_response())

        assert await client.search("q", 15) == []
        assert "sort" not in route.calls.last.request.url.params

    @respx.mock
    async def test_result_bounded_by_max_rows(self, client: InternetArchiveClient) -> None:
        respx.get(_SEARCH_URL).respond(
            200,
            json=_search_response(*({"identifier": f"item-{n}"} for n in range(10))),
        )

        items = await client.search("q", 3)

        assert len(items) == 3

    @respx.mock
    async def test_upstream_error_reads_as_empty(
        self, client: InternetArchiveClient, metrics: MetricsCollector
    ) -> None:
        respx.get(_SEARCH_URL).respond(502)

        assert await client.search("q", 5) == []
        assert metrics.upstream_errors("archive_search") == 1

    @respx.mock
    async def test_malformed_payload_counts_once(
        self, client: InternetArchiveClient, metrics: MetricsCollector
    ) -> None:
        respx.get(_SEARCH_URL).respond(200, json={"response": {}})

        assert await client.search("q", 5) == []
        assert metrics.upstream_calls("archive_search") == 1
        assert metrics.upstream_errors("archive_search") == 1

    @respx.mock
    async def test_concurrent_identical_searches_collapse(
        self, client: InternetArchiveClient
    ) -> None:
        route = respx.get(_SEARCH_URL).respond(
            200, json=_search_response({"identifier": "x"})
        )

        await asyncio.gather(*(client.search("q", 5) for _ in range(6)))

        assert route.call_count == 1

    @respx.mock
    async def test_timeout_reads_as_empty(
        self, slow_client: InternetArchiveClient, metrics: MetricsCollector
    ) -> None:
        respx.get(_SEARCH_URL).mock(side_effect=_stall)

        assert await slow_client.search("q", 5) == []
        assert metrics.upstream_calls("archive_search") == 1
        assert metrics.upstream_errors("archive_search") == 1


# ---------------------------------------------------------------------------
# list_files
# ---------------------------------------------------------------------------


class TestListFiles:
    @respx.mock
    async def test_parses_files(self, client: InternetArchiveClient) -> None:
        respx.get(f"{_METADATA_URL}/the-matrix-1999/files").respond(
            200, json=_FILES_RESPONSE
        )

        files = await client.list_files("the-matrix-1999")

        assert [f.name for f in files] == [
            "The.Matrix.1999.mp4",
            "The.Matrix.1999.srt",
            "The.Matrix.1999.ia.mp4",
        ]
        video = files[0]
        assert video.length_seconds == 8160.5
        assert video.size_bytes == 2_147_483_648
        assert video.height == 1080
        assert video.format == "h.264"
        assert files[1].length_seconds is None

    @respx.mock
    async def test_listing_is_cached(self, client: InternetArchiveClient, fake_cache) -> None:
        route = respx.get(f"{_METADATA_URL}/the-matrix-1999/files").respond(
            200, json=_FILES_RESPONSE
        )

        first = await client.list_files("the-matrix-1999")
        second = await client.list_files("the-matrix-1999")

        assert route.call_count == 1
        assert first == second
        assert fake_cache.ttls["archive:files:the-matrix-1999"] == 21_600

    @respx.mock
    async def test_empty_listing_cached_briefly(
        self, client: InternetArchiveClient, fake_cache
    ) -> None:
        respx.get(f"{_METADATA_URL}/empty-item/files").respond(200, json={"result": []})

        assert await client.list_files("empty-item") == []
        assert fake_cache.ttls["archive:files:empty-item"] == 600

    @respx.mock
    async def test_failure_not_cached(
        self, client: InternetArchiveClient, fake_cache
    ) -> None:
        route = respx.get(f"{_METADATA_URL}/flaky/files").respond(500)

        assert await client.list_files("flaky") == []
        assert "archive:files:flaky" not in fake_cache.store

        route.respond(200, json=_FILES_RESPONSE)
        assert len(await client.list_files("flaky")) == 3

    @respx.mock
    async def test_corrupt_cache_entry_refetched(
        self, client: InternetArchiveClient, fake_cache
    ) -> None:
        fake_cache.store["archive:files:the-matrix-1999"] = "{not json"
        route = respx.get(f"{_METADATA_URL}/the-matrix-1999/files").respond(
            200, json=_FILES_RESPONSE
        )

        files = await client.list_files("the-matrix-1999")

        assert route.call_count == 1
        assert len(files) == 3
        assert json.loads(fake_cache.store["archive:files:the-matrix-1999"])

    @respx.mock
    async def test_without_cache(self, http_client: httpx.AsyncClient) -> None:
        client = InternetArchiveClient(
            http_client=http_client, deduplicator=RequestDeduplicator()
        )
        route = respx.get(f"{_METADATA_URL}/x/files").respond(200, json=_FILES_RESPONSE)

        await client.list_files("x")
        await client.list_files("x")

        assert route.call_count == 2

    @respx.mock
    async def test_timeout_reads_as_empty_and_is_not_cached(
        self,
        slow_client: InternetArchiveClient,
        metrics: MetricsCollector,
        fake_cache,
    ) -> None:
        respx.get(f"{_METADATA_URL}/slow-item/files").mock(side_effect=_stall)

        assert await slow_client.list_files("slow-item") == []
        assert metrics.upstream_errors("archive_files") == 1
        assert "archive:files:slow-item" not in fake_cache.store

    @respx.mock
    async def test_broken_listing_cache_falls_through_to_fetch(
        self, client: InternetArchiveClient, fake_cache
    ) -> None:
        fake_cache.get = AsyncMock(side_effect=sqlite3.OperationalError("disk I/O error"))
        fake_cache.set = AsyncMock(side_effect=sqlite3.OperationalError("disk I/O error"))
        route = respx.get(f"{_METADATA_URL}/the-matrix-1999/files").respond(
            200, json=_FILES_RESPONSE
        )

        files = await client.list_files("the-matrix-1999")

        assert route.call_count == 1
        assert len(files) == 3


class TestDownloadUrl:
    def test_quotes_names(self, client: InternetArchiveClient) -> None:
        assert client.download_url("show-s01", "Show S01E05.mkv") == (
            "https://archive.org/download/show-s01/Show%20S01E05.mkv"
        )

    def test_keeps_subdirectories(self, client: InternetArchiveClient) -> None:
        assert client.download_url("box", "disc 1/ep1.mp4") == (
            "https://archive.org/download/box/disc%201/ep1.mp4"
        )
