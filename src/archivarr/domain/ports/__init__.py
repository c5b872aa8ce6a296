from .archive import ArchiveClientPort
from .cache import CachePort
from .concurrency import DeduplicatorPort, UpstreamLimiterPort
from .metadata import MetadataClientPort
from .stream_cache_repository import StreamCacheRepository

__all__ = [
    "ArchiveClientPort",
    "CachePort",
    "DeduplicatorPort",
    "MetadataClientPort",
    "StreamCacheRepository",
    "UpstreamLimiterPort",
]
