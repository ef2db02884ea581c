"""Throttling configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_throttle_settings() -> "ThrottleSettings":
    """Build throttle settings from environment."""

    return ThrottleSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class ThrottleSettings(BaseSettings):
    """Throttle backend configuration.

    The ``local`` backend keeps gate state in process memory. The ``redis``
    backend shares it between every process pointed at the same server.
    """

    enabled: bool = Field(
        True,
        description="Enforce throttles declared on HTTP routes",
    )
    backend: str = Field(
        "local",
        description="Throttle state backend: 'local' or 'redis'",
    )
    default_capacity: int = Field(
        1,
        description="Timestamp slots for time-based throttles created without a capacity",
        ge=1,
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL used by the redis backend",
    )
    redis_key_prefix: str = Field(
        "throttle:",
        description="Prefix applied to every Redis key holding throttle state",
    )
    redis_socket_timeout_seconds: float = Field(
        1.0,
        description="Socket connect/read timeout for the Redis round trip",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="THROTTLE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output is 'file'")
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    throttle: ThrottleSettings = Field(default_factory=_build_throttle_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
