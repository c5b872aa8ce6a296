from __future__ import annotations

from .load import load_config
from .schema import AppConfig, CacheConfig, EnvOverrides, StremioConfig, UpstreamConfig

__all__ = [
    "AppConfig",
    "CacheConfig",
    "EnvOverrides",
    "StremioConfig",
    "UpstreamConfig",
    "load_config",
]
