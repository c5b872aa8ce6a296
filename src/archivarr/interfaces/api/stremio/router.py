"""Stremio add-on API endpoints (manifest, stream)."""

from __future__ import annotations

from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from archivarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/stremio", tags=["stremio"])

_ADDON_ID = "org.stremio.internet-archive"
_ADDON_VERSION = "0.1.0"

# Stremio clients fetch add-on resources cross-origin.
_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}


def build_manifest() -> dict[str, Any]:
    """Build the Stremio add-on manifest."""
    return {
        "id": _ADDON_ID,
        "version": _ADDON_VERSION,
        "name": "Internet Archive",
        "description": "Movies and series episodes streamed directly from archive.org",
        "types": ["movie", "series"],
        "catalogs": [],
        "resources": ["stream"],
        "idPrefixes": ["tt"],
        "behaviorHints": {
            "adult": False,
            "configurable": False,
        },
    }


@router.get("/manifest.json")
async def stremio_manifest() -> JSONResponse:
    """Serve the Stremio add-on manifest."""
    return JSONResponse(content=build_manifest(), headers=_CORS_HEADERS)


@router.get("/stream/{content_type}/{stream_id}.json")
async def stremio_stream(
    request: Request,
    content_type: str,
    stream_id: str,
) -> JSONResponse:
    """Resolve archive streams for a movie (``tt…``) or episode (``tt…:s:e``).

    Always answers ``{"streams": [...]}``; unknown types and ids get an
    empty list instead of an error page.
    """
    state = cast(AppState, request.app.state)
    uc = state.stremio_stream_uc

    log.info("stremio_stream_request", content_type=content_type, stream_id=stream_id)

    if content_type == "movie":
        payload = await uc.resolve_movie_streams(stream_id)
    elif content_type == "series":
        payload = await uc.resolve_series_streams(stream_id)
    else:
        log.debug("stremio_unsupported_type", content_type=content_type)
        payload = {"streams": []}

    return JSONResponse(content=payload, headers=_CORS_HEADERS)
