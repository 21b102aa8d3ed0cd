"""Middleware pipeline: ordered pre-delivery transform/veto functions.

A middleware receives the event and returns either an event (the same one
or a transformed copy) which is handed to the next middleware and finally
to subscribers, or a falsy value to veto, in which case the event is not
delivered.  Middlewares may be plain functions or coroutine functions.

Default middlewares
-------------------
*  ``validation_middleware``: rejects events without ``id``/``type``.
*  ``logging_middleware``: debug log of every event that passed validation.

Optional middlewares
--------------------
*  ``schema_validation_middleware``: payload check against the schema
   registry (``bus/schemas.py``).
*  ``event_store_middleware``: appends aggregate events to an
   ``InMemoryEventStore``.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable

from pydantic import ValidationError

from nexus_events.core.events import Event
from nexus_events.infrastructure.event_store import InMemoryEventStore

from .schemas import get_payload_class

logger = logging.getLogger(__name__)

Middleware = Callable[[Event], Awaitable[Event | None] | Event | None]


class MiddlewarePipeline:
    """Runs middlewares strictly in registration order."""

    def __init__(self) -> None:
        self._middlewares: list[Middleware] = []

    def use(self, middleware: Middleware) -> None:
        self._middlewares.append(middleware)
        logger.debug(
            "Middleware added: %s",
            getattr(middleware, "__name__", type(middleware).__name__),
        )

    async def run(self, event: Event) -> Event | None:
        """Pass *event* through every middleware.

        Returns the resulting event, or ``None`` if a middleware vetoed it.
        Exceptions raised by a middleware propagate to the caller.
        """
        current = event
        for middleware in list(self._middlewares):
            result = middleware(current)
            if inspect.isawaitable(result):
                result = await result
            if not result:
                logger.debug(
                    "Event stopped by middleware id=%s type=%s",
                    event.id,
                    event.type,
                )
                return None
            current = result
        return current

    def __len__(self) -> int:
        return len(self._middlewares)


# ---------------------------------------------------------------------------
# Default middlewares
# ---------------------------------------------------------------------------

async def validation_middleware(event: Event) -> Event | None:
    """Veto events lacking an ``id`` or ``type``."""
    if not event.id or not event.type:
        logger.error(
            "Invalid event format id=%r type=%r source=%s",
            event.id,
            event.type,
            event.source,
        )
        return None
    return event


async def logging_middleware(event: Event) -> Event:
    logger.debug(
        "Event processed type=%s id=%s source=%s",
        event.type,
        event.id,
        event.source,
    )
    return event


DEFAULT_MIDDLEWARES: tuple[Middleware, ...] = (
    validation_middleware,
    logging_middleware,
)


# ---------------------------------------------------------------------------
# Optional middlewares
# ---------------------------------------------------------------------------

def schema_validation_middleware(*, strict: bool = False) -> Middleware:
    """Build a middleware validating payloads of registered event types.

    Event types without a registered payload model pass untouched unless
    *strict* is set, in which case they are vetoed as well.
    """

    async def _validate(event: Event) -> Event | None:
        payload_cls = get_payload_class(event.type)
        if payload_cls is None:
            if strict:
                logger.warning("Unregistered event type vetoed: %s", event.type)
                return None
            return event
        if isinstance(event.payload, payload_cls):
            return event
        try:
            payload_cls.model_validate(event.payload)
        except ValidationError as exc:
            logger.warning(
                "Payload rejected for type=%s id=%s: %s",
                event.type,
                event.id,
                exc.errors(include_url=False),
            )
            return None
        return event

    return _validate


def event_store_middleware(store: InMemoryEventStore) -> Middleware:
    """Build a middleware appending aggregate events to *store*.

    Only events whose metadata carries an ``aggregate_id`` are stored.
    """

    async def _record(event: Event) -> Event:
        if event.metadata and event.metadata.get("aggregate_id"):
            store.append(event)
        return event

    return _record
