"""Subscription registry: per-event-type handlers in priority order.

Within one event type, subscriptions are kept in descending priority.
Equal priorities keep registration order: a new subscription is inserted
*after* every existing one of the same priority, so the order never depends
on a sort implementation.

The dispatcher never iterates the live lists; it asks for a ``snapshot()``
so handlers may subscribe/unsubscribe while a dispatch pass is running.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from nexus_events.core.events import Event
from nexus_events.core.ids import new_subscription_id

logger = logging.getLogger(__name__)

# Handlers may be plain functions or coroutine functions.
EventHandler = Callable[[Event], Awaitable[None] | None]


@dataclass(frozen=True)
class Subscription:
    """A registered interest in one event type."""

    id: str
    event_type: str
    handler: EventHandler
    once: bool = False
    priority: float = 0


class SubscriptionRegistry:
    """Ordered handler lists keyed by event type."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def add(
        self,
        event_type: str,
        handler: EventHandler,
        *,
        once: bool = False,
        priority: float = 0,
    ) -> Subscription:
        """Insert a subscription at its priority position and return it."""
        subscription = Subscription(
            id=new_subscription_id(),
            event_type=event_type,
            handler=handler,
            once=once,
            priority=priority,
        )
        subscribers = self._subscriptions.setdefault(event_type, [])

        index = len(subscribers)
        for i, existing in enumerate(subscribers):
            if existing.priority < priority:
                index = i
                break
        subscribers.insert(index, subscription)

        logger.debug(
            "Event subscription added type=%s id=%s priority=%s",
            event_type,
            subscription.id,
            priority,
        )
        return subscription

    def remove(self, event_type: str, subscription_id: str | None = None) -> int:
        """Remove one subscription by id, or every subscription for the type.

        Returns the number of subscriptions removed.
        """
        subscribers = self._subscriptions.get(event_type)
        if not subscribers:
            return 0

        if subscription_id is None:
            del self._subscriptions[event_type]
            logger.debug("All subscriptions removed for type=%s", event_type)
            return len(subscribers)

        for i, subscription in enumerate(subscribers):
            if subscription.id == subscription_id:
                del subscribers[i]
                if not subscribers:
                    del self._subscriptions[event_type]
                logger.debug(
                    "Event subscription removed type=%s id=%s",
                    event_type,
                    subscription_id,
                )
                return 1
        return 0

    def snapshot(self, event_type: str) -> list[Subscription]:
        """Copy of the current subscriber list for *event_type*."""
        return list(self._subscriptions.get(event_type, ()))

    def subscription_ids(self, event_type: str) -> list[str]:
        return [s.id for s in self._subscriptions.get(event_type, ())]

    def event_types(self) -> list[str]:
        return list(self._subscriptions)

    def total(self) -> int:
        return sum(len(subs) for subs in self._subscriptions.values())

    def stats(self) -> dict[str, Any]:
        return {
            "total_subscriptions": self.total(),
            "event_types": len(self.event_types()),
        }
