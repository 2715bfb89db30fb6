"""
Centralized configuration for devbootstrap.

Uses Pydantic BaseSettings for environment variable integration
and validation. All configurable values should be defined here.

Configuration sources (in order of precedence):
1. Explicit constructor arguments (CLI flags are passed this way)
2. Environment variables (DEVBOOTSTRAP_*)
3. .env file
4. Default values

Example:
    from devbootstrap.config import get_config

    config = get_config()
    print(config.compose_file)  # From DEVBOOTSTRAP_COMPOSE_FILE or default

    # Override at runtime
    config = get_config(settle_seconds=0)
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from devbootstrap.timeouts import (
    DOCKER_READY_INTERVAL_S,
    DOCKER_READY_TIMEOUT_S,
    HTTP_HEALTH_CHECK_TIMEOUT_S,
    SERVICE_SETTLE_DELAY_S,
    SUBPROCESS_INSTALL_TIMEOUT_S,
    TOOLCHAIN_READY_INTERVAL_S,
    TOOLCHAIN_READY_TIMEOUT_S,
)

DEFAULT_HEALTH_ENDPOINTS: Dict[str, str] = {
    "gateway": "http://localhost:8080/health",
    "auth": "http://localhost:8081/health",
    "storage": "http://localhost:9000/minio/health/live",
    "search": "http://localhost:9200/_cluster/health",
}

# AggregateHealth always covers this many named services
HEALTH_SERVICE_COUNT = 4


class DevBootstrapConfig(BaseSettings):
    """
    Central configuration for devbootstrap.

    All settings can be overridden via environment variables
    prefixed with DEVBOOTSTRAP_.

    Example:
        export DEVBOOTSTRAP_COMPOSE_FILE=deploy/docker-compose.yml
        export DEVBOOTSTRAP_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVBOOTSTRAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Input files
    manifest_path: str = Field(
        default="versions.yaml",
        description="Versions/URL manifest for installable dependencies",
    )
    compose_file: str = Field(
        default="docker-compose.yml",
        description="Compose manifest describing the backing services",
    )
    temp_dir: str = Field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "devbootstrap"),
        description="Directory for downloaded installer artifacts",
    )

    # Logging (always stderr; stdout carries the event stream)
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for devbootstrap",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format",
    )

    # Readiness polling
    docker_ready_interval_s: float = Field(default=DOCKER_READY_INTERVAL_S, gt=0)
    docker_ready_timeout_s: float = Field(default=DOCKER_READY_TIMEOUT_S, gt=0)
    toolchain_ready_interval_s: float = Field(default=TOOLCHAIN_READY_INTERVAL_S, gt=0)
    toolchain_ready_timeout_s: float = Field(default=TOOLCHAIN_READY_TIMEOUT_S, gt=0)

    # Service bring-up
    settle_seconds: float = Field(
        default=SERVICE_SETTLE_DELAY_S,
        ge=0,
        description="Delay between starting services and verifying health",
    )
    health_timeout_s: float = Field(
        default=HTTP_HEALTH_CHECK_TIMEOUT_S,
        gt=0,
        description="Per-request timeout for service health probes",
    )
    health_endpoints: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_HEALTH_ENDPOINTS),
        description="Service name to health URL (JSON when set from env)",
    )

    # Prerequisite checks
    internet_check_url: str = Field(
        default="https://www.google.com",
        description="URL probed to decide internet reachability",
    )
    min_free_disk_gb: float = Field(
        default=10.0,
        ge=0,
        description="Free disk below this raises a prerequisites warning",
    )

    subprocess_timeout_s: int = Field(
        default=SUBPROCESS_INSTALL_TIMEOUT_S,
        ge=1,
        description="Timeout for installer and compose subprocesses",
    )

    # Tracing
    otlp_endpoint: Optional[str] = Field(
        default=None,
        description="OTLP gRPC endpoint; tracing is disabled when unset",
    )

    @field_validator("manifest_path", "compose_file", "temp_dir")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ and environment variables in paths."""
        return os.path.expanduser(os.path.expandvars(v))

    @field_validator("otlp_endpoint")
    @classmethod
    def validate_endpoint(cls, v: Optional[str]) -> Optional[str]:
        """Strip the protocol prefix (the gRPC exporter adds its own)."""
        if not v:
            return None
        if v.startswith("http://"):
            v = v[7:]
        elif v.startswith("https://"):
            v = v[8:]
        return v

    @field_validator("health_endpoints")
    @classmethod
    def validate_health_endpoints(cls, v: Dict[str, str]) -> Dict[str, str]:
        if len(v) != HEALTH_SERVICE_COUNT:
            raise ValueError(
                f"exactly {HEALTH_SERVICE_COUNT} health endpoints are required, got {len(v)}"
            )
        return v

    def get_temp_path(self) -> Path:
        return Path(self.temp_dir)

    def get_compose_path(self) -> Path:
        return Path(self.compose_file)


# Global singleton
_config: Optional[DevBootstrapConfig] = None


def get_config(**overrides) -> DevBootstrapConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.

    Args:
        **overrides: Override any config values

    Returns:
        DevBootstrapConfig instance
    """
    global _config

    if overrides or _config is None:
        _config = DevBootstrapConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
