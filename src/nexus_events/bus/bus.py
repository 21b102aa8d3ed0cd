"""Event core factories.

Build dispatchers and broadcast channels from ``Settings``.  There is no
module-level bus instance: the application creates one at start-up and
passes it to its collaborators; tests create as many isolated ones as they
need.
"""

from __future__ import annotations

from collections.abc import Callable

from nexus_events.core.config import Settings

from .channels import MemoryBroadcastChannel, MemoryChannelHub, RedisBroadcastChannel
from .dispatcher import EventDispatcher


def create_dispatcher(
    settings: Settings | None = None,
    on_handler_error: Callable[
        [str, str, str, Exception], None
    ] | None = None,
) -> EventDispatcher:
    """Create a dispatcher with default middleware installed.

    Args:
        settings: Source of the history bound and default event source.
        on_handler_error: Optional callback
            ``(event_type, subscription_id, event_id, exc)`` invoked when a
            handler raises.  Useful for external metrics.
    """
    settings = settings or Settings()
    return EventDispatcher(
        history_max_size=settings.history.max_size,
        dead_letter_max_size=settings.dead_letters.max_size,
        name=settings.name,
        default_source=settings.default_source,
        on_handler_error=on_handler_error,
    )


def create_channel(
    settings: Settings | None = None,
    hub: MemoryChannelHub | None = None,
) -> MemoryBroadcastChannel | RedisBroadcastChannel:
    """Create the broadcast channel selected by ``settings.sync.backend``.

    - memory: MemoryBroadcastChannel on *hub*.  Without a hub the channel
      gets a fresh one of its own; pass the same hub to every dispatcher
      that should share events.
    - redis: RedisBroadcastChannel (cross-process)
    """
    settings = settings or Settings()
    sync = settings.sync
    if sync.backend == "redis":
        return RedisBroadcastChannel(
            name=sync.channel_name,
            redis_url=sync.redis_url,
            origin=sync.origin,
        )
    return MemoryBroadcastChannel(
        sync.channel_name, hub=hub if hub is not None else MemoryChannelHub(),
    )
