"""Shared fixtures for the nexus-events test suite."""

from __future__ import annotations

import pytest

from nexus_events.bus.channels import BroadcastMessage, MemoryChannelHub
from nexus_events.bus.dispatcher import EventDispatcher
from nexus_events.core.config import Settings


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    """Return default settings."""
    return Settings()


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

@pytest.fixture
def dispatcher() -> EventDispatcher:
    """Return a fresh EventDispatcher with default middleware."""
    return EventDispatcher()


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------

@pytest.fixture
def channel_hub() -> MemoryChannelHub:
    """Private hub so in-memory channels never leak across tests."""
    return MemoryChannelHub()


class RecordingChannel:
    """Broadcast channel that keeps posted messages and exposes its listener."""

    def __init__(self, name: str = "recording") -> None:
        self.name = name
        self.posted: list[BroadcastMessage] = []
        self.listener = None
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self, listener) -> None:
        self.listener = listener
        self._open = True

    async def post(self, message: BroadcastMessage) -> None:
        self.posted.append(message)

    async def close(self) -> None:
        self._open = False


@pytest.fixture
def recording_channel() -> RecordingChannel:
    return RecordingChannel()
