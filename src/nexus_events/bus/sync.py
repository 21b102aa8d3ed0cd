"""Cross-context sync: rebroadcast allow-listed events to other contexts.

Outbound: a dispatch hook sees every event that passed the middleware
pipeline and finished its subscriber pass.  Allow-listed events are posted
on the channel as ``{type, payload, metadata}`` where metadata is the
event's own metadata plus ``originalSource`` and an ISO-8601 ``timestamp``.
A failing local handler does not stop the rebroadcast: the pass counts as
finished once every subscriber has been invoked, whatever it raised.  Only
a middleware veto keeps an event local.

Inbound: messages are re-emitted locally with ``source="broadcast"`` and
``skip_history=True`` (the originating context already recorded them).
Events whose source is ``"broadcast"`` are never posted again, which keeps
two contexts from bouncing the same event back and forth forever.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from nexus_events.core.enums import DEFAULT_SYNCABLE_TYPES
from nexus_events.core.events import Event
from nexus_events.observability import metrics

from .channels import BroadcastChannel, BroadcastMessage
from .dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

BROADCAST_SOURCE = "broadcast"


def build_message(event: Event) -> BroadcastMessage:
    """Wire message for *event*."""
    metadata = dict(event.metadata or {})
    metadata["originalSource"] = event.source
    metadata["timestamp"] = event.timestamp.isoformat()
    return BroadcastMessage(type=event.type, payload=event.payload, metadata=metadata)


class CrossContextSync:
    """Bridges one dispatcher to a broadcast channel."""

    def __init__(
        self,
        dispatcher: EventDispatcher,
        channel: BroadcastChannel,
        syncable_types: Iterable[str] = DEFAULT_SYNCABLE_TYPES,
    ) -> None:
        self._dispatcher = dispatcher
        self._channel = channel
        self._syncable_types = frozenset(syncable_types)
        self._running = False
        self._messages_sent = 0
        self._messages_received = 0

    @property
    def syncable_types(self) -> frozenset[str]:
        return self._syncable_types

    def is_syncable(self, event: Event) -> bool:
        return event.source != BROADCAST_SOURCE and event.type in self._syncable_types

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._running:
            return
        await self._channel.open(self._on_message)
        self._dispatcher.add_dispatch_hook(self._on_dispatched)
        self._running = True
        logger.info(
            "Cross-context sync started on %s (%d syncable types)",
            self._channel.name,
            len(self._syncable_types),
        )

    async def stop(self) -> None:
        if not self._running:
            return
        self._dispatcher.remove_dispatch_hook(self._on_dispatched)
        await self._channel.close()
        self._running = False
        logger.info("Cross-context sync stopped on %s", self._channel.name)

    # ------------------------------------------------------------------
    # Outbound / inbound
    # ------------------------------------------------------------------

    async def broadcast(self, event: Event) -> None:
        """Post *event* to the channel, whatever its type."""
        await self._channel.post(build_message(event))
        self._messages_sent += 1
        metrics.record_broadcast("out")
        logger.debug("Event broadcast type=%s id=%s", event.type, event.id)

    async def _on_dispatched(self, event: Event) -> None:
        if self.is_syncable(event):
            await self.broadcast(event)

    async def _on_message(self, message: BroadcastMessage) -> None:
        self._messages_received += 1
        metrics.record_broadcast("in")
        await self._dispatcher.emit(
            message.type,
            message.payload,
            metadata=message.metadata,
            source=BROADCAST_SOURCE,
            skip_history=True,
        )

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def messages_sent(self) -> int:
        return self._messages_sent

    @property
    def messages_received(self) -> int:
        return self._messages_received
