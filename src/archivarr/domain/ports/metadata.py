"""Port for title metadata lookups."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from archivarr.domain.entities.stremio import CanonicalMetadata, StremioContentType


@runtime_checkable
class MetadataClientPort(Protocol):
    """Async interface for resolving an external id to canonical metadata."""

    async def resolve(
        self, kind: StremioContentType, external_id: str
    ) -> CanonicalMetadata | None:
        """Return canonical metadata, or None when the title is unknown.

        Upstream failures are reported as None as well; this method never
        raises for network or payload problems.
        """
        ...
