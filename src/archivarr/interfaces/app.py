"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from starlette.responses import Response

from archivarr.infrastructure.config import AppConfig
from archivarr.interfaces.app_state import AppState
from archivarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration ONLY, NO resource initialization.

    Resources (HTTP client, cache, upstream clients) are created in lifespan().
    """
    app = FastAPI(
        title="Archivarr",
        description="Stremio add-on streaming movies and series from the Internet Archive",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from archivarr.interfaces.api.stats import router as stats_router
    from archivarr.interfaces.api.stremio import router as stremio_router

    app.include_router(stremio_router.router, prefix="/api/v1")
    app.include_router(stats_router.router, prefix="/api/v1")

    @app.get("/api/v1/healthz")
    async def healthz() -> dict[str, str]:
        """Liveness probe: 200 as long as the process is running."""
        cache = getattr(app.state, "cache", None)
        return {
            "status": "ok",
            "cache": cache.name if cache is not None else "none",
        }

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            status_code = getattr(locals().get("response", None), "status_code", 500)

            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
