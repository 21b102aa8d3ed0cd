"""Test settings defaults, env/TOML loading and sync validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from nexus_events.bus.bus import create_dispatcher
from nexus_events.core.config import (
    DeadLetterConfig,
    HistoryConfig,
    Settings,
    SyncConfig,
    load_settings,
)
from nexus_events.core.enums import DEFAULT_SYNCABLE_TYPES
from nexus_events.core.errors import ConfigError


def test_defaults(settings):
    assert settings.default_source == "unknown"
    assert settings.history.max_size == 1000
    assert settings.sync.enabled is False
    assert settings.sync.backend == "memory"
    assert settings.sync.syncable_types == list(DEFAULT_SYNCABLE_TYPES)
    assert settings.observability.log_format == "json"


def test_history_size_must_be_positive():
    with pytest.raises(ValidationError):
        HistoryConfig(max_size=0)


def test_unknown_backend_rejected():
    with pytest.raises(ValidationError):
        SyncConfig(backend="kafka")


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("NEXUS_EVENTS_DEFAULT_SOURCE", "web")
    monkeypatch.setenv("NEXUS_EVENTS_HISTORY__MAX_SIZE", "25")

    settings = Settings()

    assert settings.default_source == "web"
    assert settings.history.max_size == 25


def test_load_from_toml(tmp_path):
    path = tmp_path / "events.toml"
    path.write_text(
        'default_source = "worker"\n'
        "\n"
        "[history]\n"
        "max_size = 50\n"
        "\n"
        "[sync]\n"
        "enabled = true\n"
        'channel_name = "tabs"\n'
        'syncable_types = ["a", "b"]\n'
    )

    settings = load_settings(path)

    assert settings.default_source == "worker"
    assert settings.history.max_size == 50
    assert settings.sync.enabled is True
    assert settings.sync.channel_name == "tabs"
    assert settings.sync.syncable_types == ["a", "b"]


def test_missing_config_file_uses_defaults(tmp_path):
    settings = load_settings(tmp_path / "absent.toml")
    assert settings.history.max_size == 1000


def test_overrides_applied():
    settings = load_settings(overrides={"default_source": "override"})
    assert settings.default_source == "override"


class TestValidateSync:
    def test_disabled_sync_always_valid(self):
        Settings(sync=SyncConfig(channel_name="")).validate_sync()

    def test_empty_channel_name_rejected(self):
        settings = Settings(sync=SyncConfig(enabled=True, channel_name=""))
        with pytest.raises(ConfigError, match="channel_name"):
            settings.validate_sync()

    def test_redis_requires_url(self):
        settings = Settings(
            sync=SyncConfig(enabled=True, backend="redis", redis_url=""),
        )
        with pytest.raises(ConfigError, match="redis_url"):
            settings.validate_sync()

    def test_valid_redis_sync(self):
        Settings(sync=SyncConfig(enabled=True, backend="redis")).validate_sync()


def test_create_dispatcher_uses_settings():
    settings = Settings(
        name="worker-1",
        default_source="svc",
        history=HistoryConfig(max_size=2),
        dead_letters=DeadLetterConfig(max_size=4),
    )
    dispatcher = create_dispatcher(settings)

    assert dispatcher._history.max_size == 2
    assert dispatcher._dead_letters.maxlen == 4
    assert dispatcher._name == "worker-1"
    assert dispatcher._default_source == "svc"


def test_dead_letter_size_must_be_positive(monkeypatch):
    with pytest.raises(ValidationError):
        DeadLetterConfig(max_size=0)

    monkeypatch.setenv("NEXUS_EVENTS_DEAD_LETTERS__MAX_SIZE", "7")
    assert Settings().dead_letters.max_size == 7
