"""Tests for Stremio add-on router endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from archivarr.interfaces.api.stremio.router import build_manifest, router

_STREAM = {
    "url": "https://archive.org/download/the-matrix-1999/The.Matrix.1999.mp4",
    "name": "🔵 Archive.org BluRay 1080p h.264",
    "description": "The Matrix (1999)",
    "subtitles": [],
    "behaviorHints": {
        "notWebReady": False,
        "videoSize": 2147483648,
        "filename": "THE.MATRIX.1999.BLURAY.1080p.H264.mp4",
    },
}


def _make_app(stremio_stream_uc: AsyncMock | None = None) -> FastAPI:
    """Create a minimal FastAPI app with the stremio router."""
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.state.stremio_stream_uc = stremio_stream_uc or AsyncMock()
    return app


class TestManifest:
    def test_manifest_fields(self) -> None:
        manifest = build_manifest()
        assert manifest["id"] == "org.stremio.internet-archive"
        assert manifest["resources"] == ["stream"]
        assert manifest["types"] == ["movie", "series"]
        assert manifest["idPrefixes"] == ["tt"]
        assert manifest["catalogs"] == []

    def test_manifest_endpoint(self) -> None:
        client = TestClient(_make_app())

        resp = client.get("/api/v1/stremio/manifest.json")

        assert resp.status_code == 200
        assert resp.json() == build_manifest()
        assert resp.headers["access-control-allow-origin"] == "*"


class TestStreamEndpoint:
    def test_movie(self) -> None:
        uc = AsyncMock()
        uc.resolve_movie_streams.return_value = {"streams": [_STREAM]}
        client = TestClient(_make_app(uc))

        resp = client.get("/api/v1/stremio/stream/movie/tt0133093.json")

        assert resp.status_code == 200
        assert resp.json() == {"streams": [_STREAM]}
        assert resp.headers["access-control-allow-origin"] == "*"
        uc.resolve_movie_streams.assert_awaited_once_with("tt0133093")

    def test_series_passes_composite_id(self) -> None:
        uc = AsyncMock()
        uc.resolve_series_streams.return_value = {"streams": []}
        client = TestClient(_make_app(uc))

        resp = client.get("/api/v1/stremio/stream/series/tt0903747:1:5.json")

        assert resp.status_code == 200
        assert resp.json() == {"streams": []}
        uc.resolve_series_streams.assert_awaited_once_with("tt0903747:1:5")

    def test_unknown_type_returns_empty(self) -> None:
        uc = AsyncMock()
        client = TestClient(_make_app(uc))

        resp = client.get("/api/v1/stremio/stream/channel/tt0133093.json")

        assert resp.status_code == 200
        assert resp.json() == {"streams": []}
        uc.resolve_movie_streams.assert_not_awaited()
        uc.resolve_series_streams.assert_not_awaited()
