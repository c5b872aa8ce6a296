"""Port for the media archive (search index + per-item file listings)."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from archivarr.domain.entities.stremio import CandidateFile, CandidateItem


@runtime_checkable
class ArchiveClientPort(Protocol):
    """Async interface for archive search and file listing.

    Both operations return an empty list on any upstream failure.
    """

    async def search(
        self, query: str, max_rows: int, sort: str | None = None
    ) -> list[CandidateItem]: ...

    async def list_files(self, identifier: str) -> list[CandidateFile]: ...

    def download_url(self, identifier: str, file_name: str) -> str: ...
