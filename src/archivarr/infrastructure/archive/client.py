"""Internet Archive client: full-text search and per-item file listings.

Every request passes through the shared upstream deduplicator (and with
it the upstream limiter) and is bounded by a per-call timeout.  Failures
of any kind read as an empty result.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Callable
from dataclasses import asdict
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import structlog

from archivarr.domain.entities.stremio import CandidateFile, CandidateItem
from archivarr.domain.ports.cache import CachePort
from archivarr.domain.ports.concurrency import DeduplicatorPort
from archivarr.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)

_SEARCH_URL = "https://archive.org/services/search/beta/page_production/"
_METADATA_URL = "https://archive.org/metadata"
_DOWNLOAD_URL = "https://archive.org/download"

_UPSTREAM_SEARCH = "archive_search"
_UPSTREAM_FILES = "archive_files"

T = TypeVar("T")


def _text(value: Any) -> str:
    """Search fields come back as a string or a list of strings."""
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value)


def _parse_duration(value: Any) -> float | None:
    """Seconds from ``"5423.12"`` or ``"01:30:23"``; None when absent."""
    if value is None or value == "":
        return None
    text = str(value)
    if ":" in text:
        seconds = 0.0
        for part in text.split(":"):
            seconds = seconds * 60 + float(part)
        return seconds
    return float(text)


def _parse_int(value: Any) -> int | None:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def parse_hits(payload: Any) -> list[CandidateItem]:
    """Extract candidate items from a search response.

    Raises KeyError/TypeError on an unexpected payload shape.
    """
    hits = payload["response"]["body"]["hits"]["hits"] or []
    items: list[CandidateItem] = []
    for hit in hits:
        fields = hit["fields"]
        identifier = _text(fields.get("identifier"))
        if not identifier:
            continue
        items.append(
            CandidateItem(
                identifier=identifier,
                title=_text(fields.get("title")),
                description=_text(fields.get("description")),
            )
        )
    return items


def parse_file(raw: dict[str, Any]) -> CandidateFile | None:
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        return None
    try:
        length = _parse_duration(raw.get("length"))
    except ValueError:
        length = None
    return CandidateFile(
        name=name,
        length_seconds=length,
        size_bytes=_parse_int(raw.get("size")) or 0,
        height=_parse_int(raw.get("height")) or None,
        format=_text(raw.get("format")),
        source=_text(raw.get("source")),
    )


def parse_files(payload: Any) -> list[CandidateFile]:
    """Extract file records from a ``/metadata/<id>/files`` response."""
    records = payload.get("result") or []
    files = [parse_file(raw) for raw in records if isinstance(raw, dict)]
    return [f for f in files if f is not None]


class InternetArchiveClient:
    """Async Internet Archive client.

    Implements ``ArchiveClientPort``.  File listings are optionally cached
    in *cache* (hit and empty-listing TTLs); upstream failures are never
    cached.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        deduplicator: DeduplicatorPort,
        cache: CachePort | None = None,
        metrics: MetricsCollector | None = None,
        search_url: str = _SEARCH_URL,
        metadata_url: str = _METADATA_URL,
        download_url: str = _DOWNLOAD_URL,
        timeout_seconds: float = 10.0,
        files_ttl_seconds: int = 21_600,
        files_empty_ttl_seconds: int = 600,
    ) -> None:
        self._http = http_client
        self._dedup = deduplicator
        self._cache = cache
        self._metrics = metrics
        self._search_url = search_url
        self._metadata_url = metadata_url.rstrip("/")
        self._download_url = download_url.rstrip("/")
        self._timeout = timeout_seconds
        self._files_ttl = files_ttl_seconds
        self._files_empty_ttl = files_empty_ttl_seconds

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_parsed(
        self,
        upstream: str,
        url: str,
        parse: Callable[[Any], T],
        params: dict[str, Any] | None = None,
    ) -> T | None:
        """Time-bounded GET decoded by *parse*. None on any failure."""
        started = time.perf_counter_ns()
        success = False
        try:
            resp = await asyncio.wait_for(
                self._http.get(url, params=params), timeout=self._timeout
            )
            resp.raise_for_status()
            result = parse(resp.json())
            success = True
            return result
        except httpx.HTTPStatusError as e:
            log.warning(
                f"{upstream}_http_error",
                url=url,
                status=e.response.status_code,
            )
            return None
        except httpx.HTTPError:
            log.warning(f"{upstream}_network_error", url=url, exc_info=True)
            return None
        except TimeoutError:
            log.warning(f"{upstream}_timeout", url=url, timeout=self._timeout)
            return None
        except (ValueError, KeyError, TypeError, AttributeError):
            log.warning(f"{upstream}_malformed_response", url=url, exc_info=True)
            return None
        finally:
            if self._metrics is not None:
                self._metrics.record_upstream_call(
                    upstream, time.perf_counter_ns() - started, success=success
                )

    async def _fetch_search(
        self, query: str, max_rows: int, sort: str | None
    ) -> list[CandidateItem]:
        params: dict[str, Any] = {"user_query": query, "hits_per_page": max_rows}
        if sort:
            params["sort"] = sort
        items = await self._get_parsed(
            _UPSTREAM_SEARCH, self._search_url, parse_hits, params
        )
        if items is None:
            return []
        # Result length is bounded by hits_per_page.
        return items[:max_rows]

    async def _fetch_files(self, identifier: str) -> list[CandidateFile] | None:
        url = f"{self._metadata_url}/{quote(identifier)}/files"
        files = await self._get_parsed(_UPSTREAM_FILES, url, parse_files)
        if files is None:
            return None
        await self._store_files(identifier, files)
        return files

    async def _cached_files(self, identifier: str) -> list[CandidateFile] | None:
        if self._cache is None or self._files_ttl <= 0:
            return None
        try:
            raw = await self._cache.get(f"archive:files:{identifier}")
        except Exception as e:
            log.warning(
                "archive_files_cache_get_error", identifier=identifier, error=str(e)
            )
            return None
        if raw is None:
            return None
        try:
            return [CandidateFile(**record) for record in json.loads(raw)]
        except (ValueError, TypeError):
            log.error("archive_files_cache_corrupt", identifier=identifier)
            return None

    async def _store_files(self, identifier: str, files: list[CandidateFile]) -> None:
        if self._cache is None or self._files_ttl <= 0:
            return
        ttl = self._files_ttl if files else self._files_empty_ttl
        if ttl <= 0:
            return
        try:
            await self._cache.set(
                f"archive:files:{identifier}",
                json.dumps([asdict(f) for f in files]),
                ttl=ttl,
            )
        except Exception as e:
            log.warning(
                "archive_files_cache_set_error", identifier=identifier, error=str(e)
            )

    # ------------------------------------------------------------------
    # Public API (ArchiveClientPort)
    # ------------------------------------------------------------------

    async def search(
        self, query: str, max_rows: int, sort: str | None = None
    ) -> list[CandidateItem]:
        """Run a boolean full-text query; at most *max_rows* hits."""
        key = f"archive:search:{sort or ''}:{max_rows}:{query}"
        items = await self._dedup.run(
            key, lambda: self._fetch_search(query, max_rows, sort)
        )
        log.debug("archive_search_done", query=query, hits=len(items))
        return items

    async def list_files(self, identifier: str) -> list[CandidateFile]:
        """File records of one archive item; ``[]`` on failure."""
        cached = await self._cached_files(identifier)
        if cached is not None:
            log.debug("archive_files_cache_hit", identifier=identifier)
            return cached

        files = await self._dedup.run(
            f"archive:files:{identifier}", lambda: self._fetch_files(identifier)
        )
        return files if files is not None else []

    def download_url(self, identifier: str, file_name: str) -> str:
        return f"{self._download_url}/{quote(identifier)}/{quote(file_name)}"
