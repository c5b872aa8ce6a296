"""Cinemeta metadata client (async httpx, single-flighted)."""

from __future__ import annotations

import asyncio
import re
import time
from typing import Any

import httpx
import structlog

from archivarr.domain.entities.stremio import (
    CanonicalMetadata,
    EpisodeInfo,
    StremioContentType,
)
from archivarr.domain.ports.concurrency import DeduplicatorPort
from archivarr.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)

_BASE_URL = "https://v3-cinemeta.strem.io"
_UPSTREAM = "metadata"

_RUNTIME_RE = re.compile(r"\s*(\d+)")
_YEAR_RE = re.compile(r"\d{4}")


def _parse_runtime(value: Any) -> int:
    """``"120 min"`` -> 7200 seconds; 0 when unknown."""
    m = _RUNTIME_RE.match(str(value or ""))
    return int(m.group(1)) * 60 if m else 0


def _parse_year(meta: dict[str, Any]) -> int | None:
    # Series carry ranges such as "2008–2013" in both fields.
    for field_name in ("year", "releaseInfo"):
        m = _YEAR_RE.search(str(meta.get(field_name) or ""))
        if m:
            return int(m.group(0))
    return None


def _director_surname(meta: dict[str, Any]) -> str:
    directors = meta.get("director") or []
    if not directors or not isinstance(directors[0], str):
        return ""
    tokens = directors[0].split()
    return tokens[-1] if tokens else ""


def _parse_episodes(videos: Any) -> tuple[EpisodeInfo, ...]:
    episodes: list[EpisodeInfo] = []
    for video in videos or []:
        season = video.get("season")
        number = video.get("episode", video.get("number"))
        if season is None or number is None:
            continue
        episodes.append(
            EpisodeInfo(
                season=int(season),
                episode=int(number),
                name=str(video.get("name") or video.get("title") or ""),
            )
        )
    return tuple(episodes)


def parse_meta(meta: Any) -> CanonicalMetadata | None:
    """Map a Cinemeta ``meta`` object to CanonicalMetadata.

    Returns None when the object carries no title.  Raises
    TypeError/ValueError/AttributeError on structurally broken payloads.
    """
    if not meta or not meta.get("name"):
        return None
    return CanonicalMetadata(
        title=str(meta["name"]),
        year=_parse_year(meta),
        runtime_seconds=_parse_runtime(meta.get("runtime")),
        director_surname=_director_surname(meta),
        genres=tuple(str(g) for g in meta.get("genres") or ()),
        episodes=_parse_episodes(meta.get("videos")),
    )


class CinemetaClient:
    """Resolves IMDb ids to canonical metadata via Cinemeta.

    Implements ``MetadataClientPort``.  Lookups are collapsed per
    ``meta:<kind>:<id>`` through the shared upstream deduplicator, which
    also holds a limiter slot for the duration of the request.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        deduplicator: DeduplicatorPort,
        metrics: MetricsCollector | None = None,
        base_url: str = _BASE_URL,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._http = http_client
        self._dedup = deduplicator
        self._metrics = metrics
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds

    async def resolve(
        self, kind: StremioContentType, external_id: str
    ) -> CanonicalMetadata | None:
        key = f"meta:{kind}:{external_id}"
        return await self._dedup.run(key, lambda: self._lookup(kind, external_id))

    async def _lookup(
        self, kind: StremioContentType, external_id: str
    ) -> CanonicalMetadata | None:
        url = f"{self._base_url}/meta/{kind}/{external_id}.json"
        started = time.perf_counter_ns()
        success = False
        try:
            resp = await asyncio.wait_for(self._http.get(url), timeout=self._timeout)
            if resp.status_code == 404:
                log.debug("cinemeta_not_found", kind=kind, imdb_id=external_id)
                success = True
                return None
            resp.raise_for_status()
            meta = parse_meta(resp.json().get("meta"))
            success = True
        except httpx.HTTPStatusError:
            log.warning("cinemeta_http_error", imdb_id=external_id, exc_info=True)
            return None
        except httpx.HTTPError:
            log.warning("cinemeta_network_error", imdb_id=external_id, exc_info=True)
            return None
        except TimeoutError:
            log.warning(
                "cinemeta_timeout", imdb_id=external_id, timeout=self._timeout
            )
            return None
        except (ValueError, TypeError, AttributeError, KeyError):
            log.warning("cinemeta_malformed_response", imdb_id=external_id, exc_info=True)
            return None
        finally:
            if self._metrics is not None:
                self._metrics.record_upstream_call(
                    _UPSTREAM, time.perf_counter_ns() - started, success=success
                )

        if meta is None:
            log.debug("cinemeta_missing_title", kind=kind, imdb_id=external_id)
            return None
        if meta.runtime_seconds == 0 and kind == "movie":
            log.warning("cinemeta_runtime_unknown", imdb_id=external_id)
        log.debug(
            "cinemeta_resolved",
            imdb_id=external_id,
            title=meta.title,
            year=meta.year,
            episodes=len(meta.episodes),
        )
        return meta
