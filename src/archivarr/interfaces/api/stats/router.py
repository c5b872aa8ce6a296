"""Runtime stats endpoint (in-memory counters and registry sizes)."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from archivarr.interfaces.app_state import AppState

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("")
async def stats(request: Request) -> JSONResponse:
    """Return in-memory runtime metrics.

    Includes request and cache counters, per-upstream call stats, limiter
    utilisation, in-flight dedup keys and running refreshes.
    """
    state = cast(AppState, request.app.state)

    data: dict[str, Any] = {}

    m = getattr(state, "metrics", None)
    if m is not None:
        data.update(m.snapshot())

    limiter = getattr(state, "upstream_limiter", None)
    if limiter is not None:
        data["limiter"] = limiter.snapshot()

    dedup = [
        registry.snapshot()
        for registry in (
            getattr(state, "upstream_dedup", None),
            getattr(state, "pipeline_dedup", None),
        )
        if registry is not None
    ]
    if dedup:
        data["dedup"] = dedup

    refresher = getattr(state, "refresher", None)
    if refresher is not None:
        data["refresh"] = refresher.snapshot()

    cache = getattr(state, "cache", None)
    data["cache_backend"] = cache.name if cache is not None else "none"

    return JSONResponse(content=data)
