"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .enums import DEFAULT_SYNCABLE_TYPES


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class HistoryConfig(BaseModel):
    max_size: int = Field(default=1000, ge=1)  # Oldest evicted first


class DeadLetterConfig(BaseModel):
    max_size: int = Field(default=1000, ge=1)  # Oldest evicted first


class SyncConfig(BaseModel):
    enabled: bool = False
    backend: Literal["memory", "redis"] = "memory"
    channel_name: str = "nexus_events"
    origin: str = "local"  # Scopes the redis channel name
    redis_url: str = "redis://localhost:6379/0"
    syncable_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SYNCABLE_TYPES)
    )


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    metrics_enabled: bool = False
    metrics_port: int = 9090


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    name: str = "default"  # Labels this dispatcher's queue-depth gauge
    default_source: str = "unknown"

    history: HistoryConfig = Field(default_factory=HistoryConfig)
    dead_letters: DeadLetterConfig = Field(default_factory=DeadLetterConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "NEXUS_EVENTS_", "env_nested_delimiter": "__"}

    def validate_sync(self) -> None:
        """Reject sync settings that cannot produce a working channel."""
        from .errors import ConfigError

        if not self.sync.enabled:
            return

        if not self.sync.channel_name:
            raise ConfigError("Cross-context sync requires a channel_name.")
        if self.sync.backend == "redis" and not self.sync.redis_url:
            raise ConfigError(
                "Cross-context sync on the redis backend requires redis_url."
            )


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)

    if overrides:
        data.update(overrides)

    return Settings(**data)
