from .stremio import (
    BehaviorHints,
    CachedStreams,
    CandidateFile,
    CandidateItem,
    CanonicalMetadata,
    EpisodeInfo,
    StremioContentType,
    StremioStream,
    StremioStreamRequest,
    StremioSubtitle,
)

__all__ = [
    "BehaviorHints",
    "CachedStreams",
    "CandidateFile",
    "CandidateItem",
    "CanonicalMetadata",
    "EpisodeInfo",
    "StremioContentType",
    "StremioStream",
    "StremioStreamRequest",
    "StremioSubtitle",
]
