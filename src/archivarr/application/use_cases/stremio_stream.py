"""Stremio stream resolution use case.

IMDb id -> response cache -> Cinemeta metadata -> archive search
-> per-item file listings -> file matching -> StremioStream list.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol, cast

import structlog

from archivarr.domain.entities.stremio import (
    CachedStreams,
    CandidateFile,
    CandidateItem,
    CanonicalMetadata,
    StremioContentType,
    StremioStream,
    StremioStreamRequest,
    StremioSubtitle,
)
from archivarr.domain.ports.archive import ArchiveClientPort
from archivarr.domain.ports.concurrency import DeduplicatorPort
from archivarr.domain.ports.metadata import MetadataClientPort
from archivarr.domain.ports.stream_cache_repository import StreamCacheRepository
from archivarr.infrastructure.stremio.file_matcher import (
    EpisodeMatcher,
    extract_quality,
    is_derivative_file,
    is_subtitle_file,
    is_video_file,
    meets_runtime,
)
from archivarr.infrastructure.stremio.query_builder import (
    build_movie_query,
    build_series_query,
)
from archivarr.infrastructure.stremio.stream_formatter import (
    build_stream,
    release_slug,
)

# ---------------------------------------------------------------------------
# Protocols: what this use case needs from its collaborators.
# ---------------------------------------------------------------------------


class _StremioConfig(Protocol):
    """Configuration values consumed by StremioStreamUseCase."""

    max_streams_movie: int
    max_streams_series: int
    min_runtime_ratio: float


class _Refresher(Protocol):
    """Schedules at most one background refresh per key."""

    def schedule(self, key: str, refresh: Callable[[], Awaitable[bool]]) -> bool: ...


class _MetricsRecorder(Protocol):
    def record_request(self) -> None: ...

    def record_cache_hit(self, *, stale: bool = False) -> None: ...

    def record_cache_miss(self) -> None: ...


log = structlog.get_logger(__name__)

# Newest weekly views first; the index ranks movie matches poorly otherwise.
MOVIE_SORT = "week:desc"


def parse_stream_id(content_type: str, raw_id: str) -> StremioStreamRequest | None:
    """Parse a Stremio stream id.

    Movies: ``tt1234567``.
    Series: ``tt1234567:1:5`` (season 1, episode 5).
    Anything else yields None.
    """
    if content_type not in ("movie", "series"):
        return None
    ct = cast(StremioContentType, content_type)

    parts = raw_id.split(":")
    imdb_id = parts[0]
    if not imdb_id.startswith("tt"):
        return None

    if ct == "movie":
        return StremioStreamRequest(imdb_id=imdb_id, content_type=ct)

    if len(parts) != 3:
        return None
    try:
        season = int(parts[1])
        episode = int(parts[2])
    except ValueError:
        return None
    if season < 0 or episode < 0:
        return None
    return StremioStreamRequest(
        imdb_id=imdb_id,
        content_type=ct,
        season=season,
        episode=episode,
    )


def _subtitles(
    archive: ArchiveClientPort,
    item: CandidateItem,
    files: Sequence[CandidateFile],
) -> tuple[StremioSubtitle, ...]:
    return tuple(
        StremioSubtitle(id=f.name, url=archive.download_url(item.identifier, f.name))
        for f in files
    )


class StremioStreamUseCase:
    """Resolve Stremio stream requests into direct archive links.

    Flow:
        1. Serve from the response cache; a stale entry is returned as-is
           and refreshed in the background.
        2. On a miss, run the pipeline once per key (concurrent requests
           for the same title share the run) and cache the result, empty
           results included.
        3. Pipeline: metadata -> search query -> archive search -> file
           listings (concurrently, in hit order) -> matching -> formatting.

    Nothing raises to the caller: every failure ends in ``[]`` or a
    previously cached list.
    """

    def __init__(
        self,
        *,
        metadata: MetadataClientPort,
        archive: ArchiveClientPort,
        stream_cache: StreamCacheRepository,
        refresher: _Refresher,
        pipeline_dedup: DeduplicatorPort,
        config: _StremioConfig,
        metrics: _MetricsRecorder | None = None,
    ) -> None:
        self._metadata = metadata
        self._archive = archive
        self._cache = stream_cache
        self._refresher = refresher
        self._pipeline_dedup = pipeline_dedup
        self._max_streams_movie = config.max_streams_movie
        self._max_streams_series = config.max_streams_series
        self._min_runtime_ratio = config.min_runtime_ratio
        self._metrics = metrics

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def resolve_movie_streams(self, external_id: str) -> dict[str, Any]:
        """``{"streams": [...]}`` for a movie id such as ``tt0133093``."""
        request = parse_stream_id("movie", external_id)
        if request is None:
            return {"streams": []}
        streams = await self.execute(request)
        return {"streams": [s.to_dict() for s in streams]}

    async def resolve_series_streams(self, composite_id: str) -> dict[str, Any]:
        """``{"streams": [...]}`` for ``<imdb id>:<season>:<episode>``."""
        request = parse_stream_id("series", composite_id)
        if request is None:
            log.debug("stremio_invalid_series_id", stream_id=composite_id)
            return {"streams": []}
        streams = await self.execute(request)
        return {"streams": [s.to_dict() for s in streams]}

    async def execute(self, request: StremioStreamRequest) -> list[StremioStream]:
        """Resolve streams for a parsed request (cache first)."""
        if self._metrics is not None:
            self._metrics.record_request()
        key = request.cache_key
        try:
            entry = await self._cache.get(key)
            if entry is not None:
                return self._serve_cached(request, entry)

            if self._metrics is not None:
                self._metrics.record_cache_miss()
            return await self._pipeline_dedup.run(
                key, lambda: self._resolve_and_store(request)
            )
        except Exception:
            log.error(
                "stremio_pipeline_error",
                imdb_id=request.imdb_id,
                key=key,
                exc_info=True,
            )
            return []

    # ------------------------------------------------------------------
    # Cache handling
    # ------------------------------------------------------------------

    def _serve_cached(
        self, request: StremioStreamRequest, entry: CachedStreams
    ) -> list[StremioStream]:
        stale = self._cache.is_stale(entry)
        if self._metrics is not None:
            self._metrics.record_cache_hit(stale=stale)
        log.debug(
            "stremio_cache_hit",
            key=request.cache_key,
            stale=stale,
            stream_count=len(entry.streams),
        )
        if stale:
            self._refresher.schedule(
                request.cache_key, lambda: self._refresh(request, entry)
            )
        return list(entry.streams)

    async def _resolve_and_store(
        self, request: StremioStreamRequest
    ) -> list[StremioStream]:
        streams = await self._resolve(request)
        await self._cache.put(request.cache_key, streams)
        return streams

    async def _refresh(
        self, request: StremioStreamRequest, stale: CachedStreams
    ) -> bool:
        """Recompute a stale entry; keep it when the recompute looks like an outage."""
        streams = await self._resolve(request)
        if not streams and stale.streams:
            # An upstream outage also reads as [], keep the known streams.
            log.warning(
                "stremio_refresh_empty",
                key=request.cache_key,
                stale_count=len(stale.streams),
            )
            return False
        await self._cache.put(request.cache_key, streams)
        return True

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _resolve(self, request: StremioStreamRequest) -> list[StremioStream]:
        meta = await self._metadata.resolve(request.content_type, request.imdb_id)
        if meta is None:
            log.info(
                "stremio_title_not_found",
                imdb_id=request.imdb_id,
                content_type=request.content_type,
            )
            return []

        if request.is_episode:
            streams = await self._resolve_episode(request, meta)
        else:
            streams = await self._resolve_movie(request, meta)

        log.info(
            "stremio_search_complete",
            imdb_id=request.imdb_id,
            title=meta.title,
            season=request.season,
            episode=request.episode,
            stream_count=len(streams),
        )
        return streams

    async def _list_all_files(
        self, items: Sequence[CandidateItem]
    ) -> list[list[CandidateFile]]:
        """File listings for *items*, in hit order; failed listings read as empty."""
        results = await asyncio.gather(
            *(self._archive.list_files(item.identifier) for item in items),
            return_exceptions=True,
        )
        listings: list[list[CandidateFile]] = []
        for item, result in zip(items, results):
            if isinstance(result, BaseException):
                log.warning(
                    "stremio_list_files_failed",
                    identifier=item.identifier,
                    error=repr(result),
                )
                listings.append([])
            else:
                listings.append(result)
        return listings

    async def _resolve_movie(
        self, request: StremioStreamRequest, meta: CanonicalMetadata
    ) -> list[StremioStream]:
        query = build_movie_query(meta)
        log.info("stremio_search_start", imdb_id=request.imdb_id, query=query)

        items = await self._archive.search(
            query, self._max_streams_movie, sort=MOVIE_SORT
        )
        listings = await self._list_all_files(items)

        streams: list[StremioStream] = []
        for item, files in zip(items, listings):
            videos = [
                f
                for f in files
                if is_video_file(f.name)
                and meets_runtime(f, meta.runtime_seconds, self._min_runtime_ratio)
            ]
            if not videos:
                log.debug("stremio_item_no_video", identifier=item.identifier)
                continue
            subtitles = _subtitles(
                self._archive, item, [f for f in files if is_subtitle_file(f.name)]
            )
            streams.extend(self._format(item, videos, subtitles, meta))
        return streams

    async def _resolve_episode(
        self, request: StremioStreamRequest, meta: CanonicalMetadata
    ) -> list[StremioStream]:
        season = cast(int, request.season)
        episode = cast(int, request.episode)

        info = meta.find_episode(season, episode)
        if info is None:
            log.debug(
                "stremio_episode_unknown",
                imdb_id=request.imdb_id,
                season=season,
                episode=episode,
            )
        episode_name = info.name if info is not None else ""

        query = build_series_query(meta, episode_name)
        log.info(
            "stremio_search_start",
            imdb_id=request.imdb_id,
            season=season,
            episode=episode,
            query=query,
        )
        items = await self._archive.search(query, self._max_streams_series)

        candidates: list[tuple[CandidateItem, EpisodeMatcher]] = []
        for item in items:
            title_and_id = item.title + item.identifier
            matcher = EpisodeMatcher.for_item(
                title_and_id, season, episode, episode_name
            )
            if matcher.item_in_wrong_season(title_and_id):
                log.debug("stremio_item_wrong_season", identifier=item.identifier)
                continue
            candidates.append((item, matcher))

        listings = await self._list_all_files([item for item, _ in candidates])

        streams: list[StremioStream] = []
        for (item, matcher), files in zip(candidates, listings):
            videos = [
                f
                for f in files
                if is_video_file(f.name)
                and not is_derivative_file(f.name)
                and matcher.matches(f.name)
            ]
            if not videos:
                log.debug("stremio_item_no_episode", identifier=item.identifier)
                continue
            subtitles = _subtitles(
                self._archive,
                item,
                [f for f in files if is_subtitle_file(f.name) and matcher.matches(f.name)],
            )
            streams.extend(
                self._format(
                    item, videos, subtitles, meta, season=season, episode=episode
                )
            )
        return streams

    def _format(
        self,
        item: CandidateItem,
        videos: Sequence[CandidateFile],
        subtitles: tuple[StremioSubtitle, ...],
        meta: CanonicalMetadata,
        *,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[StremioStream]:
        # One quality tag per item, taken from its title, first video and description.
        quality = extract_quality(item.title + videos[0].name + item.description)
        streams: list[StremioStream] = []
        for f in videos:
            slug = release_slug(
                meta.title,
                meta.year,
                season,
                episode,
                quality=quality,
                resolution=f.height,
                extension=f.extension,
                fmt=f.format,
            )
            streams.append(
                build_stream(
                    url=self._archive.download_url(item.identifier, f.name),
                    item_title=item.title,
                    file=f,
                    quality=quality,
                    slug=slug,
                    subtitles=subtitles,
                )
            )
        return streams
