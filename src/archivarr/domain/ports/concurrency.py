"""Concurrency ports for upstream admission and request collapsing."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class UpstreamLimiterPort(Protocol):
    """Process-wide cap on simultaneous outbound upstream calls."""

    @property
    def capacity(self) -> int: ...

    def slot(self) -> AbstractAsyncContextManager[None]:
        """Hold one upstream slot (async context manager, FIFO admission)."""
        ...


@runtime_checkable
class DeduplicatorPort(Protocol):
    """Collapses concurrent calls sharing a logical key into one operation."""

    async def run(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the shared result of the in-flight call for *key*.

        Starts *producer* when no call for *key* is pending.
        """
        ...
