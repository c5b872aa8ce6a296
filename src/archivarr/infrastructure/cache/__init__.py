"""Cache Infrastructure - Backend-Implementations."""

from .cache_factory import CacheBackend, create_cache, open_cache
from .diskcache_adapter import DiskcacheAdapter
from .null_adapter import NullCache
from .redis_adapter import RedisAdapter

__all__ = [
    "CacheBackend",
    "DiskcacheAdapter",
    "NullCache",
    "RedisAdapter",
    "create_cache",
    "open_cache",
]
