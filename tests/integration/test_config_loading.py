"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml

from archivarr.infrastructure.config.load import load_config

pytestmark = pytest.mark.integration


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "archivarr-test",
        "environment": "test",
        "http": {"user_agent": "TestAgent/1.0"},
        "logging": {"level": "DEBUG", "format": "console"},
        "upstream": {"concurrency": 3, "timeout_seconds": 5.0},
        "cache": {
            "backend": "diskcache",
            "directory": str(tmp_path / "cache"),
            "ttl_seconds": 600,
        },
        "stremio": {"max_streams_series": 20},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, no ENV, no CLI: pure defaults."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "archivarr"
        assert config.environment == "dev"
        assert config.log_level == "INFO"
        assert config.log_format == "console"
        assert config.upstream.concurrency == 6
        assert config.upstream.timeout_seconds == 10.0
        assert config.cache.backend == "none"
        assert config.cache.ttl_seconds == 1800
        assert config.cache.negative_ttl_seconds == 120
        assert config.cache.stale_after_seconds == 900
        assert config.stremio.max_streams_movie == 5
        assert config.stremio.max_streams_series == 15

    def test_defaults_derive_log_format_from_environment(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"


class TestYamlOverrides:
    """YAML values override defaults."""

    def test_yaml_overrides_defaults(self, yaml_config: Path, tmp_path: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "archivarr-test"
        assert config.http_user_agent == "TestAgent/1.0"
        assert config.log_level == "DEBUG"
        assert config.upstream.concurrency == 3
        assert config.cache.backend == "diskcache"
        assert config.cache.directory == tmp_path / "cache"
        assert config.cache.ttl_seconds == 600
        assert config.stremio.max_streams_series == 20

    def test_yaml_partial_override_preserves_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"cache": {"ttl_seconds": 60}}), encoding="utf-8")

        config = load_config(config_path=path)
        assert config.cache.ttl_seconds == 60
        assert config.cache.negative_ttl_seconds == 120
        assert config.stremio.max_streams_movie == 5

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)

    def test_invalid_value_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"upstream": {"concurrency": 0}}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(config_path=path)


class TestEnvOverrides:
    """Environment variables override YAML and defaults."""

    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ARCHIVARR_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("ARCHIVARR_UPSTREAM_CONCURRENCY", "9")

        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.upstream.concurrency == 9
        assert config.app_name == "archivarr-test"

    def test_cache_env_overrides(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CACHE_BACKEND", "redis")
        monkeypatch.setenv("CACHE_REDIS_URL", "redis://cache:6379/2")

        config = load_config(config_path=yaml_config)
        assert config.cache.backend == "redis"
        assert config.cache.redis_url == "redis://cache:6379/2"
        # Unset CACHE_* variables do not clobber YAML values.
        assert config.cache.ttl_seconds == 600

    def test_dotenv_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ARCHIVARR_MAX_STREAMS_MOVIE", raising=False)
        dotenv = tmp_path / ".env"
        dotenv.write_text("ARCHIVARR_MAX_STREAMS_MOVIE=8\n", encoding="utf-8")

        try:
            config = load_config(dotenv_path=dotenv)
        finally:
            os.environ.pop("ARCHIVARR_MAX_STREAMS_MOVIE", None)
        assert config.stremio.max_streams_movie == 8

    def test_missing_dotenv_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    """CLI overrides beat everything (highest precedence)."""

    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ARCHIVARR_LOG_LEVEL", "WARNING")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR", "cache_backend": "none"},
        )
        assert config.log_level == "ERROR"
        assert config.cache.backend == "none"

    def test_cli_overrides_with_sectioned_format(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"upstream": {"timeout_seconds": 2.5}},
        )
        assert config.upstream.timeout_seconds == 2.5
        assert config.upstream.concurrency == 3

    def test_sectioned_dump(self) -> None:
        dumped = load_config().to_sectioned_dict()
        assert dumped["http"] == {"user_agent": "Archivarr/0.1.0"}
        assert dumped["logging"] == {"level": "INFO", "format": "console"}
        assert dumped["cache"]["backend"] == "none"
