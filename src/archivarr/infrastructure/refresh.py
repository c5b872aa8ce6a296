"""Background stale-while-revalidate refreshes.

``BackgroundRefresher`` owns both the detached refresh tasks and the set
of keys currently being refreshed, so at most one refresh per key runs
at a time.  Tasks are kept referenced until done and every outcome is
logged; nothing here ever raises into the foreground request path.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from archivarr.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)

RefreshFn = Callable[[], Awaitable[bool]]


class BackgroundRefresher:
    """Runs at most one refresh per cache key in the background.

    A refresh callable returns True when it replaced the cache entry and
    False when it deliberately kept the old one.  Exceptions count as
    failures.
    """

    def __init__(self, metrics: MetricsCollector | None = None) -> None:
        self._metrics = metrics
        self._refreshing: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def active(self) -> int:
        return len(self._refreshing)

    def is_refreshing(self, key: str) -> bool:
        return key in self._refreshing

    def schedule(self, key: str, refresh: RefreshFn) -> bool:
        """Start a refresh for *key* unless one is already running.

        Returns True when a new refresh task was started.
        """
        if key in self._refreshing:
            log.debug("refresh_already_running", key=key)
            return False

        self._refreshing.add(key)
        task = asyncio.create_task(self._run(key, refresh), name=f"refresh:{key}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        log.debug("refresh_scheduled", key=key)
        return True

    async def _run(self, key: str, refresh: RefreshFn) -> None:
        success = False
        try:
            success = await refresh()
            if success:
                log.info("refresh_completed", key=key)
            else:
                log.warning("refresh_kept_stale_entry", key=key)
        except asyncio.CancelledError:
            log.debug("refresh_cancelled", key=key)
            raise
        except Exception:
            log.warning("refresh_failed", key=key, exc_info=True)
        finally:
            self._refreshing.discard(key)
            if self._metrics is not None:
                self._metrics.record_refresh(success=success)

    async def wait_idle(self) -> None:
        """Wait until every scheduled refresh has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding refreshes (shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        log.debug("refresher_closed", cancelled=len(tasks))

    def snapshot(self) -> dict[str, object]:
        return {"refreshing": sorted(self._refreshing)}
