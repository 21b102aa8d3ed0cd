"""Business reactions wired onto the dispatcher.

- ``user.registered``: welcome email + registration conversion.
- ``investment.completed``: success notification, conversion worth the
  invested amount, and cache invalidation for the user and property.

Follow-up events are emitted from inside the handlers, so they are queued
and delivered after the triggering event's subscriber pass completes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from nexus_events.bus.dispatcher import EventDispatcher
from nexus_events.bus.schemas import (
    InvestmentCompletedPayload,
    UserRegisteredPayload,
    validate_payload,
)
from nexus_events.core.enums import EventType
from nexus_events.core.events import Event

logger = logging.getLogger(__name__)

FLOW_SOURCE = "business_flows"


def register_business_flows(dispatcher: EventDispatcher) -> list[Callable[[], None]]:
    """Subscribe the default flows; returns their unsubscribe handles."""

    async def on_user_registered(event: Event) -> None:
        payload: UserRegisteredPayload = validate_payload(
            EventType.USER_REGISTERED, event.payload,
        )
        await dispatcher.emit(
            EventType.EMAIL_SENT,
            {"to": payload.email, "template": "welcome", "user_id": payload.user_id},
            source=FLOW_SOURCE,
            user_id=payload.user_id,
        )
        await dispatcher.emit(
            EventType.CONVERSION,
            {"type": "user_registration", "user_id": payload.user_id, "value": 1},
            source=FLOW_SOURCE,
            user_id=payload.user_id,
        )

    async def on_investment_completed(event: Event) -> None:
        payload: InvestmentCompletedPayload = validate_payload(
            EventType.INVESTMENT_COMPLETED, event.payload,
        )
        await dispatcher.emit(
            EventType.NOTIFICATION_SENT,
            {
                "user_id": payload.user_id,
                "type": "investment_success",
                "data": {
                    "investment_id": payload.investment_id,
                    "property_id": payload.property_id,
                    "amount": payload.amount,
                },
            },
            source=FLOW_SOURCE,
            user_id=payload.user_id,
        )
        await dispatcher.emit(
            EventType.CONVERSION,
            {
                "type": "investment_completion",
                "user_id": payload.user_id,
                "value": payload.amount,
            },
            source=FLOW_SOURCE,
            user_id=payload.user_id,
        )
        await dispatcher.emit(
            EventType.CACHE_INVALIDATED,
            {
                "patterns": [
                    f"user:{payload.user_id}:investments",
                    f"property:{payload.property_id}:stats",
                ],
            },
            source=FLOW_SOURCE,
        )

    unsubscribers = [
        dispatcher.on(EventType.USER_REGISTERED, on_user_registered),
        dispatcher.on(EventType.INVESTMENT_COMPLETED, on_investment_completed),
    ]
    logger.info("Business event flows registered")
    return unsubscribers
