"""Test the command-line entry point."""

from __future__ import annotations

from click.testing import CliRunner

from nexus_events.bus.schemas import list_event_types
from nexus_events.cli import _redis_settings, main


def test_types_lists_every_event_type():
    result = CliRunner().invoke(main, ["types"])

    assert result.exit_code == 0
    assert result.output.split() == list_event_types()


def test_publish_rejects_invalid_json():
    result = CliRunner().invoke(main, ["publish", "user.login", "{not json"])

    assert result.exit_code != 0
    assert "invalid JSON" in result.output


def test_redis_settings_keep_file_values(tmp_path):
    path = tmp_path / "events.toml"
    path.write_text('[sync]\nchannel_name = "tabs"\norigin = "site"\n')

    settings = _redis_settings(str(path))

    assert settings.sync.backend == "redis"
    assert settings.sync.channel_name == "tabs"
    assert settings.sync.origin == "site"
