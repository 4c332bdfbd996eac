"""
Quote Sync Configuration System.

This module provides a type-safe configuration system using Pydantic.
Settings can be loaded from:
1. Environment variables (prefixed with QUOTE_SYNC_)
2. Config file (TOML or JSON)
3. CLI arguments (highest priority)

Example usage:
    from quote_sync.config import Settings

    # Load from environment
    settings = Settings()

    # Or with explicit values
    settings = Settings(
        remote={"base_url": "http://localhost:8000", "collection": "quotes"},
        sync={"interval_seconds": 60},
    )
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RemoteConfig(BaseModel):
    """Remote collection endpoint and transport limits."""

    base_url: str = Field(
        default="https://jsonplaceholder.typicode.com",
        description="Base URL of the remote authority",
    )
    collection: str = Field(
        default="posts",
        min_length=1,
        description="Collection path under the base URL",
    )
    limit_param: str = Field(
        default="limit",
        min_length=1,
        description="Query parameter carrying the pull limit",
    )
    pull_limit: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum remote items fetched per pull",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=300,
        description="Per-request timeout",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per request on transport errors",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Base delay between attempts (multiplied by attempt number)",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("collection")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        return v.strip("/")

    @property
    def collection_url(self) -> str:
        """Full URL of the remote collection."""
        return f"{self.base_url}/{self.collection}"


class SyncOptions(BaseModel):
    """Options controlling sync behavior."""

    interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between periodic sync cycles",
    )
    state_dir: Path = Field(
        default=Path(".quote-sync"),
        description="Directory holding the local JSON documents",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path (None = console only)",
    )
    format: str = Field(
        default="rich",
        pattern="^(rich|json|simple)$",
        description="Log format: rich (colored), json, or simple",
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Max log file size before rotation",
    )
    backup_count: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Number of rotated log files to keep",
    )


class Settings(BaseSettings):
    """
    Main settings class for Quote Sync.

    Settings are loaded in this priority (highest first):
    1. Explicit constructor arguments
    2. Environment variables (QUOTE_SYNC_* prefix)
    3. Config file (if specified)
    4. Defaults

    Example:
        # From environment
        export QUOTE_SYNC_REMOTE__BASE_URL="http://localhost:8000"
        export QUOTE_SYNC_SYNC__INTERVAL_SECONDS=60
        settings = Settings()

        # From config file
        settings = Settings.from_file("config.toml")
    """

    model_config = SettingsConfigDict(
        env_prefix="QUOTE_SYNC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    sync: SyncOptions = Field(default_factory=SyncOptions)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "Settings":
        """Load settings from a TOML or JSON config file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text()

        if path.suffix in (".toml", ".tml"):
            import tomllib

            data = tomllib.loads(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")

        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save current settings to a config file."""
        path = Path(path)
        data = self.model_dump(mode="json", exclude_none=True)

        if path.suffix in (".toml", ".tml"):
            lines = []
            for key, value in data.items():
                if isinstance(value, dict):
                    lines.append(f"\n[{key}]")
                    for k, v in value.items():
                        lines.append(f"{k} = {json.dumps(v)}")
                else:
                    lines.append(f"{key} = {json.dumps(value)}")
            path.write_text("\n".join(lines).lstrip("\n") + "\n")
        else:
            path.write_text(json.dumps(data, indent=2))

    @property
    def state_dir(self) -> Path:
        """Directory holding the local JSON documents."""
        return self.sync.state_dir


def load_settings(
    config_file: Path | str | None = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings with optional config file and overrides.

    Args:
        config_file: Optional path to config file
        **overrides: Top-level settings sections to override (highest priority)

    Returns:
        Configured Settings instance
    """
    if config_file:
        settings = Settings.from_file(config_file)
        if overrides:
            data = settings.model_dump()
            for key, value in overrides.items():
                if isinstance(value, dict) and isinstance(data.get(key), dict):
                    data[key].update(value)
                else:
                    data[key] = value
            return Settings.model_validate(data)
        return settings
    return Settings(**overrides)
