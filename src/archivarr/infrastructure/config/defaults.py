"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "archivarr",
    "environment": "dev",
    "http": {
        "user_agent": "Archivarr/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "upstream": {
        "concurrency": 6,
        "timeout_seconds": 10.0,
    },
    "cache": {
        "backend": "none",
        "ttl_seconds": 1800,
        "negative_ttl_seconds": 120,
        "stale_after_seconds": 900,
        "ttl_jitter": 0.1,
    },
    "stremio": {
        "max_streams_movie": 5,
        "max_streams_series": 15,
        "min_runtime_ratio": 0.7,
    },
}
