"""Shared test fixtures for the Archivarr test suite."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx
import pytest

from archivarr.domain.entities.stremio import (
    CanonicalMetadata,
    CandidateFile,
    CandidateItem,
    EpisodeInfo,
)

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def movie_meta() -> CanonicalMetadata:
    """The Matrix (1999), 136 min."""
    return CanonicalMetadata(
        title="The Matrix",
        year=1999,
        runtime_seconds=136 * 60,
        director_surname="Wachowski",
        genres=("Action", "Sci-Fi"),
    )


@pytest.fixture()
def series_meta() -> CanonicalMetadata:
    return CanonicalMetadata(
        title="Show",
        year=2001,
        genres=("Comedy",),
        episodes=(
            EpisodeInfo(season=1, episode=4, name="The Dinner Party"),
            EpisodeInfo(season=1, episode=5, name="Pilot (Part 2)"),
            EpisodeInfo(season=2, episode=5, name="Reunion"),
        ),
    )


@pytest.fixture()
def movie_item() -> CandidateItem:
    return CandidateItem(
        identifier="the-matrix-1999",
        title="The Matrix (1999)",
        description="Classic sci-fi, BluRay rip",
    )


@pytest.fixture()
def movie_file() -> CandidateFile:
    return CandidateFile(
        name="The.Matrix.1999.mp4",
        length_seconds=8160.0,
        size_bytes=2_147_483_648,
        height=1080,
        format="h.264",
        source="original",
    )


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@dataclass
class FakeCache:
    """In-memory CachePort recording the TTL of every write."""

    name: str = "fake"
    store: dict[str, str] = field(default_factory=dict)
    ttls: dict[str, int | None] = field(default_factory=dict)

    async def __aenter__(self) -> FakeCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        return None

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, *, ttl: int | None = None) -> None:
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.store.pop(key, None) is not None


@pytest.fixture()
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    """Real httpx.AsyncClient for use with respx mocking."""
    async with httpx.AsyncClient() as client:
        yield client
