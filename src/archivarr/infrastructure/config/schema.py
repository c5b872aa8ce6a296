"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseSettings):
    """Response cache configuration (backend-agnostic)."""

    backend: Literal["none", "diskcache", "redis"] = Field(
        default="none",
        description="Cache backend: 'none' (disabled), 'diskcache' (SQLite) or 'redis'",
    )

    # Diskcache settings
    directory: Path = Field(
        default=Path("./.cache/archivarr"),
        description="Diskcache SQLite DB path",
    )

    # Redis settings
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when backend=redis)",
    )

    ttl_seconds: int = Field(
        default=1800,
        description="Base TTL for non-empty stream lists (seconds).",
    )
    negative_ttl_seconds: int = Field(
        default=120,
        description="Base TTL for empty stream lists (seconds).",
    )
    stale_after_seconds: int = Field(
        default=900,
        description="Age after which a cached stream list is refreshed in the background.",
    )
    ttl_jitter: float = Field(
        default=0.1,
        description="Fraction of the base TTL randomised (±jitter/2) per write.",
    )
    files_ttl_seconds: int = Field(
        default=21_600,
        description="TTL for cached archive file listings (seconds). 0 = disabled.",
    )
    files_empty_ttl_seconds: int = Field(
        default=600,
        description="TTL for cached empty archive file listings (seconds).",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",  # Env vars: CACHE_BACKEND, CACHE_REDIS_URL, ...
        case_sensitive=False,
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator(
        "ttl_seconds",
        "negative_ttl_seconds",
        "stale_after_seconds",
        "files_ttl_seconds",
        "files_empty_ttl_seconds",
    )
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache TTLs must be >= 0")
        return v

    @field_validator("ttl_jitter")
    @classmethod
    def _validate_jitter(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError("ttl_jitter must be in [0, 1)")
        return v


class UpstreamConfig(BaseModel):
    """Outbound calls to the metadata service and the archive."""

    concurrency: int = Field(
        default=6,
        description="Max simultaneously outstanding upstream calls (process-wide).",
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="Per-call timeout in seconds.",
    )
    cinemeta_url: str = Field(
        default="https://v3-cinemeta.strem.io",
        description="Base URL of the title metadata service.",
    )
    archive_search_url: str = Field(
        default="https://archive.org/services/search/beta/page_production/",
        description="Full-text search endpoint of the archive.",
    )
    archive_metadata_url: str = Field(
        default="https://archive.org/metadata",
        description="Per-item metadata endpoint of the archive.",
    )
    archive_download_url: str = Field(
        default="https://archive.org/download",
        description="Base URL for direct file downloads.",
    )

    @field_validator("concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("upstream concurrency must be >= 1")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("upstream timeout_seconds must be > 0")
        return v


class StremioConfig(BaseModel):
    """Configuration for Stremio stream resolution.

    All values configurable via YAML (stremio section).
    """

    max_streams_movie: int = Field(
        default=5,
        description="Search hits fetched for a movie (bounds the result list).",
    )
    max_streams_series: int = Field(
        default=15,
        description="Search hits fetched for a series episode.",
    )
    min_runtime_ratio: float = Field(
        default=0.7,
        description="Movie files must run longer than this fraction of the canonical runtime.",
    )

    @field_validator("max_streams_movie", "max_streams_series")
    @classmethod
    def _validate_max_streams(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max streams must be >= 1")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/upstream/logging/cache/stremio).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="archivarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_user_agent: str = Field(
        default="Archivarr/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    stremio: StremioConfig = Field(default_factory=StremioConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {"user_agent": self.http_user_agent},
            "logging": {"level": self.log_level, "format": self.log_format},
            "upstream": self.upstream.model_dump(),
            "stremio": self.stremio.model_dump(),
            "cache": self.cache.model_dump(mode="json"),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read ARCHIVARR_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - ARCHIVARR_UPSTREAM_CONCURRENCY
    - ARCHIVARR_UPSTREAM_TIMEOUT_SECONDS
    - ARCHIVARR_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="ARCHIVARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    upstream_concurrency: Optional[int] = None
    upstream_timeout_seconds: Optional[float] = None

    max_streams_movie: Optional[int] = None
    max_streams_series: Optional[int] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)


class CacheEnvOverrides(CacheConfig):
    """``CACHE_*`` environment variables, reported only when actually set."""

    def to_update_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
