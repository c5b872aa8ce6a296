"""Domain entities for Stremio addon support.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

StremioContentType = Literal["movie", "series"]


@dataclass(frozen=True)
class StremioStreamRequest:
    """Parsed Stremio stream request.

    Created from URL path: ``tt1234567`` (movie) or
    ``tt1234567:1:5`` (series, season 1, episode 5).
    """

    imdb_id: str
    content_type: StremioContentType
    season: int | None = None
    episode: int | None = None

    @property
    def is_episode(self) -> bool:
        return self.season is not None and self.episode is not None

    @property
    def cache_key(self) -> str:
        """Response cache key, e.g. ``stream:series:tt0903747:1:5``."""
        if self.is_episode:
            return (
                f"stream:{self.content_type}:{self.imdb_id}"
                f":{self.season}:{self.episode}"
            )
        return f"stream:{self.content_type}:{self.imdb_id}"


@dataclass(frozen=True)
class EpisodeInfo:
    """One known episode of a series."""

    season: int
    episode: int
    name: str = ""


@dataclass(frozen=True)
class CanonicalMetadata:
    """Normalized title metadata used to build queries and filters."""

    title: str
    year: int | None = None
    runtime_seconds: int = 0  # 0 = unknown
    director_surname: str = ""
    genres: tuple[str, ...] = ()
    episodes: tuple[EpisodeInfo, ...] = ()

    def find_episode(self, season: int, episode: int) -> EpisodeInfo | None:
        for ep in self.episodes:
            if ep.season == season and ep.episode == episode:
                return ep
        return None


@dataclass(frozen=True)
class CandidateItem:
    """One search index hit (an archive item)."""

    identifier: str
    title: str = ""
    description: str = ""


@dataclass(frozen=True)
class CandidateFile:
    """One file record from an archive item's file listing."""

    name: str
    length_seconds: float | None = None
    size_bytes: int = 0
    height: int | None = None
    format: str = ""
    source: str = ""

    @property
    def extension(self) -> str:
        """Lower-cased three-letter extension (``mkv``, ``mp4``, ``srt``)."""
        return self.name[-3:].lower()


@dataclass(frozen=True)
class StremioSubtitle:
    """Stremio subtitle track."""

    id: str
    url: str
    lang: str = "en"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "url": self.url, "lang": self.lang}


@dataclass(frozen=True)
class BehaviorHints:
    """Stremio ``behaviorHints`` for a direct file stream."""

    not_web_ready: bool
    video_size: int
    filename: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "notWebReady": self.not_web_ready,
            "videoSize": self.video_size,
            "filename": self.filename,
        }


@dataclass(frozen=True)
class StremioStream:
    """Stremio protocol Stream object (JSON-serializable)."""

    url: str  # Direct download URL on the archive
    name: str  # Bold title in Stremio UI, e.g. "🔵 Archive.org WEB 1080p h.264"
    description: str  # Multi-line details below the name
    subtitles: tuple[StremioSubtitle, ...] = ()
    behavior_hints: BehaviorHints | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the Stremio wire format."""
        data: dict[str, Any] = {
            "url": self.url,
            "name": self.name,
            "description": self.description,
            "subtitles": [s.to_dict() for s in self.subtitles],
        }
        if self.behavior_hints is not None:
            data["behaviorHints"] = self.behavior_hints.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StremioStream:
        """Rebuild a stream from its wire format (inverse of ``to_dict``)."""
        hints = data.get("behaviorHints")
        return cls(
            url=data["url"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            subtitles=tuple(
                StremioSubtitle(id=s["id"], url=s["url"], lang=s.get("lang", "en"))
                for s in data.get("subtitles", [])
            ),
            behavior_hints=BehaviorHints(
                not_web_ready=bool(hints.get("notWebReady", False)),
                video_size=int(hints.get("videoSize", 0)),
                filename=hints.get("filename", ""),
            )
            if hints
            else None,
        )


@dataclass(frozen=True)
class CachedStreams:
    """A resolved stream list as stored in the response cache."""

    streams: list[StremioStream] = field(default_factory=list)
    cached_at_ms: int = 0
