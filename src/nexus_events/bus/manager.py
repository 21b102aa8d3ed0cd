"""Unified BusManager facade for the event core.

Composes the dispatcher, optional cross-context sync, optional aggregate
event store and the business flows into a single entry point with one
lifecycle.

Usage::

    from nexus_events.bus.manager import BusManager

    mgr = BusManager.from_config(settings)
    await mgr.start()

    mgr.dispatcher.on("investment.completed", handler, priority=10)
    await mgr.emit("investment.completed", payload, user_id="u1")

    metrics = mgr.get_metrics()

    await mgr.stop()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from nexus_events.core.config import Settings
from nexus_events.infrastructure.event_store import InMemoryEventStore

from .channels import MemoryChannelHub
from .dispatcher import EventDispatcher
from .middleware import event_store_middleware, schema_validation_middleware
from .sync import CrossContextSync

logger = logging.getLogger(__name__)


class BusManager:
    """Owns the dispatcher and its optional companions.

    Parameters
    ----------
    dispatcher:
        The event dispatcher.
    sync:
        Cross-context sync bridge (``None`` to disable).
    event_store:
        Aggregate event store fed by ``event_store_middleware``
        (``None`` to disable).
    register_flows:
        Subscribe the default business flows on ``start()``.
    """

    def __init__(
        self,
        dispatcher: EventDispatcher,
        sync: CrossContextSync | None = None,
        event_store: InMemoryEventStore | None = None,
        register_flows: bool = False,
    ) -> None:
        self._dispatcher = dispatcher
        self._register_flows = register_flows
        self._sync = sync
        self._event_store = event_store
        self._flow_unsubscribers: list[Callable[[], None]] = []
        self._running = False

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        settings: Settings | None = None,
        *,
        on_handler_error: Callable[
            [str, str, str, Exception], None
        ] | None = None,
        validate_payloads: bool = False,
        enable_event_store: bool = False,
        register_flows: bool = False,
        channel: Any | None = None,
        hub: MemoryChannelHub | None = None,
    ) -> BusManager:
        """Build a fully wired BusManager from configuration.

        Parameters
        ----------
        settings:
            Loaded settings; defaults to ``Settings()``.
        on_handler_error:
            Optional callback ``(event_type, subscription_id, event_id, exc)``.
        validate_payloads:
            Install ``schema_validation_middleware`` (default ``False``).
        enable_event_store:
            Create an ``InMemoryEventStore`` fed from aggregate events.
        register_flows:
            Subscribe the default business flows on start.
        channel:
            Broadcast channel override.  When ``None`` and sync is enabled,
            the channel comes from ``settings.sync.backend``.
        hub:
            Hub for the memory backend.  Managers given the same hub share
            syncable events; without one the manager gets a private hub.

        Returns
        -------
        BusManager
        """
        from nexus_events.bus.bus import create_channel, create_dispatcher

        settings = settings or Settings()
        settings.validate_sync()

        dispatcher = create_dispatcher(settings, on_handler_error=on_handler_error)

        if validate_payloads:
            dispatcher.use(schema_validation_middleware())

        event_store = None
        if enable_event_store:
            event_store = InMemoryEventStore()
            dispatcher.use(event_store_middleware(event_store))

        sync = None
        if settings.sync.enabled or channel is not None:
            sync = CrossContextSync(
                dispatcher,
                channel if channel is not None else create_channel(settings, hub=hub),
                settings.sync.syncable_types,
            )

        return cls(
            dispatcher=dispatcher,
            sync=sync,
            event_store=event_store,
            register_flows=register_flows,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start sync and subscribe business flows."""
        if self._running:
            return
        if self._register_flows:
            from nexus_events.flows import register_business_flows

            self._flow_unsubscribers = register_business_flows(self._dispatcher)
        if self._sync is not None:
            await self._sync.start()
        self._running = True
        logger.info("BusManager started")

    async def stop(self) -> None:
        """Drain in-flight events, then stop sync and drop flows."""
        if not self._running:
            return
        await self._dispatcher.wait_idle()
        if self._sync is not None:
            await self._sync.stop()
        for unsubscribe in self._flow_unsubscribers:
            unsubscribe()
        self._flow_unsubscribers.clear()
        self._running = False
        logger.info("BusManager stopped")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    @property
    def sync(self) -> CrossContextSync | None:
        """The cross-context bridge (``None`` if disabled)."""
        return self._sync

    @property
    def event_store(self) -> InMemoryEventStore | None:
        """The aggregate event store (``None`` if disabled)."""
        return self._event_store

    @property
    def is_running(self) -> bool:
        return self._running

    async def emit(self, event_type: str | Enum, payload: Any = None, **options: Any) -> None:
        """Emit through the dispatcher.

        Delegates to ``dispatcher.emit()``.
        """
        await self._dispatcher.emit(event_type, payload, **options)

    # ------------------------------------------------------------------
    # Unified metrics
    # ------------------------------------------------------------------

    def get_metrics(self) -> dict[str, Any]:
        """Combined dispatcher, sync and store stats."""
        metrics: dict[str, Any] = {
            **self._dispatcher.get_stats(),
            "messages_processed": self._dispatcher.messages_processed,
            "error_counts": self._dispatcher.get_error_counts(),
            "dead_letter_count": len(self._dispatcher.dead_letters),
            "queue_size": self._dispatcher.queue_size,
            "state": self._dispatcher.state.value,
        }
        if self._sync is not None:
            metrics["broadcast_sent"] = self._sync.messages_sent
            metrics["broadcast_received"] = self._sync.messages_received
        if self._event_store is not None:
            metrics["stored_events"] = len(self._event_store)
        return metrics
