"""Upstream admission gate and single-flight request collapsing.

Two cooperating pieces shared across all concurrent Stremio requests:

``UpstreamLimiter``
    Counting gate with a fixed capacity.  Every outbound call to the
    metadata service or the archive holds one slot; callers beyond
    capacity wait in submission order (``asyncio.Semaphore`` wakes
    waiters FIFO).

``RequestDeduplicator``
    In-flight registry keyed by a logical request key
    (``meta:movie:tt0133093``, ``archive:files:<identifier>``, ...).
    The first caller starts the producer, later callers await the same
    task.  The key is dropped the moment the task settles, so a failed
    call never blocks future attempts.

Both are plain asyncio objects: the registry is only mutated between
awaits on the single event-loop thread, so no locks are needed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


class UpstreamLimiter:
    """Application-level singleton capping concurrent upstream calls.

    Parameters:
        capacity: Maximum simultaneously outstanding upstream calls.
    """

    def __init__(self, capacity: int = 6) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._sem = asyncio.Semaphore(capacity)
        self._in_use = 0
        self._waiting = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def waiting(self) -> int:
        return self._waiting

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one upstream slot for the duration of the block."""
        self._waiting += 1
        try:
            await self._sem.acquire()
        finally:
            self._waiting -= 1
        self._in_use += 1
        try:
            yield
        finally:
            self._in_use -= 1
            self._sem.release()

    def snapshot(self) -> dict[str, int]:
        return {
            "capacity": self._capacity,
            "in_use": self._in_use,
            "waiting": self._waiting,
        }


class RequestDeduplicator:
    """Single-flight execution keyed by logical request key.

    When a *limiter* is given, the producer runs inside one of its
    slots; waiters sharing an in-flight call do not take extra slots.

    Callers await the shared task through :func:`asyncio.shield`, so a
    cancelled caller does not cancel the work other callers wait for.
    """

    def __init__(
        self,
        limiter: UpstreamLimiter | None = None,
        *,
        name: str = "upstream",
    ) -> None:
        self._limiter = limiter
        self._name = name
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    def is_pending(self, key: str) -> bool:
        return key in self._inflight

    async def run(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the result of the in-flight call for *key*, starting one if needed."""
        task = self._inflight.get(key)
        if task is not None:
            log.debug("dedup_join", registry=self._name, key=key)
            return await asyncio.shield(task)

        task = asyncio.ensure_future(self._execute(key, producer))
        self._inflight[key] = task
        task.add_done_callback(self._observe)
        return await asyncio.shield(task)

    def _observe(self, task: asyncio.Task[Any]) -> None:
        # Marks the exception retrieved even if every waiter was cancelled.
        if not task.cancelled() and task.exception() is not None:
            log.debug(
                "dedup_task_failed",
                registry=self._name,
                error=repr(task.exception()),
            )

    async def _execute(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        try:
            if self._limiter is None:
                return await producer()
            async with self._limiter.slot():
                return await producer()
        finally:
            # Registration happens before this task is first scheduled,
            # so the entry seen here is always our own.
            self._inflight.pop(key, None)

    def snapshot(self) -> dict[str, object]:
        return {"name": self._name, "in_flight": sorted(self._inflight)}
