"""Single-flight event dispatcher.

Accepts named events, records them in a bounded history, runs them through
the middleware pipeline and delivers them to priority-ordered subscribers.

Ordering
--------
The dispatcher is either IDLE or PROCESSING.  ``emit()`` while IDLE
processes the event inside the caller's ``await``.  ``emit()`` while
PROCESSING (including from inside a handler) appends the event to a FIFO
queue and returns immediately.  When an event finishes, the next queued
event is processed in a new event-loop task, never by a recursive call, so
stack depth stays bounded under sustained emission.  The state stays
PROCESSING between those tasks, so a fresh ``emit()`` can never overtake
events already queued.

Handlers run strictly one after another; no two handlers ever run
concurrently, for the same event or for different events.

Failure policy
--------------
Handler errors are logged, counted and dead-lettered; they never stop the
remaining handlers and never reach the ``emit()`` caller.  A middleware
that raises aborts its event the same way a veto does.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from nexus_events.core.enums import DispatcherState
from nexus_events.core.errors import InvalidEventError
from nexus_events.core.events import Event, event_type_name
from nexus_events.observability import metrics
from nexus_events.observability.logger import dispatch_context

from .history import EventHistory
from .middleware import DEFAULT_MIDDLEWARES, Middleware, MiddlewarePipeline
from .registry import EventHandler, SubscriptionRegistry

logger = logging.getLogger(__name__)

# Called with each event that passed the pipeline and finished its
# subscriber pass.
DispatchHook = Callable[[Event], Awaitable[None] | None]


@dataclass
class DeadLetter:
    """Record of a handler failure."""

    event_type: str
    event_id: str
    subscription_id: str
    error: str
    timestamp: float = field(default_factory=time.monotonic)


class EventDispatcher:
    """In-process publish/subscribe core.

    Parameters
    ----------
    history_max_size:
        Bound of the event history; the oldest event is evicted first.
    dead_letter_max_size:
        Bound of the dead-letter list; the oldest record is evicted first.
    name:
        Label of this dispatcher's queue-depth gauge.  Dispatchers sharing
        a name share the gauge.
    default_source:
        ``source`` given to events emitted without one.
    on_handler_error:
        Optional callback ``(event_type, subscription_id, event_id, exc)``
        invoked when a handler raises.  Useful for external alerting.
    install_default_middleware:
        Install the validation and logging middlewares (default ``True``).
    """

    def __init__(
        self,
        *,
        history_max_size: int = 1000,
        dead_letter_max_size: int = 1000,
        name: str = "default",
        default_source: str = "unknown",
        on_handler_error: Callable[
            [str, str, str, Exception], None
        ] | None = None,
        install_default_middleware: bool = True,
    ) -> None:
        self._registry = SubscriptionRegistry()
        self._pipeline = MiddlewarePipeline()
        self._history = EventHistory(history_max_size)
        self._name = name
        self._default_source = default_source
        self._on_handler_error = on_handler_error
        self._hooks: list[DispatchHook] = []

        self._state = DispatcherState.IDLE
        self._queue: deque[Event] = deque()
        self._drain_task: asyncio.Task[None] | None = None
        self._idle = asyncio.Event()
        self._idle.set()

        # Observability
        self._error_counts: dict[str, int] = defaultdict(int)
        self._dead_letters: deque[DeadLetter] = deque(maxlen=dead_letter_max_size)
        self._messages_processed: int = 0

        if install_default_middleware:
            for middleware in DEFAULT_MIDDLEWARES:
                self._pipeline.use(middleware)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on(
        self,
        event_type: str | Enum,
        handler: EventHandler,
        *,
        once: bool = False,
        priority: float = 0,
    ) -> Callable[[], None]:
        """Subscribe *handler* to *event_type*.

        Returns a function that removes exactly this subscription.
        """
        name = event_type_name(event_type)
        subscription = self._registry.add(
            name, handler, once=once, priority=priority,
        )

        def unsubscribe() -> None:
            self._registry.remove(name, subscription.id)

        return unsubscribe

    def once(
        self,
        event_type: str | Enum,
        handler: EventHandler,
        *,
        priority: float = 0,
    ) -> Callable[[], None]:
        """Subscribe *handler* for the next successful delivery only."""
        return self.on(event_type, handler, once=True, priority=priority)

    def off(self, event_type: str | Enum, subscription_id: str | None = None) -> None:
        """Remove one subscription by id, or all subscriptions for the type."""
        self._registry.remove(event_type_name(event_type), subscription_id)

    def subscription_ids(self, event_type: str | Enum) -> list[str]:
        """Subscription ids for *event_type*, in invocation order."""
        return self._registry.subscription_ids(event_type_name(event_type))

    # ------------------------------------------------------------------
    # Middleware and hooks
    # ------------------------------------------------------------------

    def use(self, middleware: Middleware) -> None:
        """Append *middleware* to the pipeline."""
        self._pipeline.use(middleware)

    def add_dispatch_hook(self, hook: DispatchHook) -> None:
        """Observe every event that completed a subscriber pass."""
        self._hooks.append(hook)

    def remove_dispatch_hook(self, hook: DispatchHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    async def emit(
        self,
        event_type: str | Enum,
        payload: Any = None,
        *,
        source: str | None = None,
        user_id: str | None = None,
        session_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        skip_history: bool = False,
    ) -> None:
        """Create an event and dispatch it.

        Raises
        ------
        InvalidEventError
            If *event_type* is empty or not a string.  Nothing is
            recorded in that case.
        """
        name = event_type_name(event_type)
        if not isinstance(name, str) or not name:
            raise InvalidEventError(
                f"Event type must be a non-empty string, got {event_type!r}"
            )

        event = Event(
            type=name,
            payload=payload,
            source=source or self._default_source,
            user_id=user_id,
            session_id=session_id,
            metadata=metadata,
        )
        logger.debug("Event emitted type=%s id=%s", name, event.id)
        metrics.record_emitted(name)

        if not skip_history:
            self._history.append(event)

        await self._submit(event)

    async def _submit(self, event: Event) -> None:
        if self._state is DispatcherState.PROCESSING:
            self._queue.append(event)
            metrics.update_queue_depth(self._name, len(self._queue))
            return

        self._state = DispatcherState.PROCESSING
        self._idle.clear()
        try:
            await self._process(event)
        finally:
            self._advance()

    def _advance(self) -> None:
        """Schedule the next queued event, or go idle."""
        metrics.update_queue_depth(self._name, len(self._queue))
        if not self._queue:
            self._state = DispatcherState.IDLE
            self._drain_task = None
            self._idle.set()
            return
        next_event = self._queue.popleft()
        self._drain_task = asyncio.get_running_loop().create_task(
            self._process_queued(next_event),
            name=f"dispatch-{next_event.type}",
        )

    async def _process_queued(self, event: Event) -> None:
        try:
            await self._process(event)
        finally:
            self._advance()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def _process(self, event: Event) -> None:
        with dispatch_context(event.id, event.type):
            await self._dispatch(event)

    async def _dispatch(self, event: Event) -> None:
        """Middleware, then every subscriber in order, then hooks."""
        try:
            processed = await self._pipeline.run(event)
        except Exception:
            logger.exception(
                "Event processing error in middleware id=%s type=%s",
                event.id,
                event.type,
            )
            metrics.record_vetoed(event.type)
            return

        if processed is None:
            metrics.record_vetoed(event.type)
            return

        subscribers = self._registry.snapshot(processed.type)
        completed_once: list[str] = []

        for subscription in subscribers:
            try:
                result = subscription.handler(processed)
                if inspect.isawaitable(result):
                    await result
                self._messages_processed += 1
                if subscription.once:
                    completed_once.append(subscription.id)
            except Exception as exc:
                self._record_handler_error(processed, subscription.id, exc)

        for subscription_id in completed_once:
            self._registry.remove(processed.type, subscription_id)

        metrics.record_delivered(processed.type)

        for hook in list(self._hooks):
            try:
                result = hook(processed)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Dispatch hook failed for id=%s type=%s",
                    processed.id,
                    processed.type,
                )

    def _record_handler_error(
        self, event: Event, subscription_id: str, exc: Exception,
    ) -> None:
        self._error_counts[event.type] += 1
        self._dead_letters.append(
            DeadLetter(
                event_type=event.type,
                event_id=event.id,
                subscription_id=subscription_id,
                error=str(exc),
            )
        )
        metrics.record_handler_error(event.type)
        logger.exception(
            "Event handler error event_type=%s subscription_id=%s error=%s",
            event.type,
            subscription_id,
            exc,
        )

        if self._on_handler_error is not None:
            try:
                self._on_handler_error(event.type, subscription_id, event.id, exc)
            except Exception:
                logger.warning("on_handler_error callback failed", exc_info=True)

    async def wait_idle(self) -> None:
        """Wait until the queue is drained and the dispatcher is idle."""
        await self._idle.wait()

    @property
    def state(self) -> DispatcherState:
        return self._state

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # History and replay
    # ------------------------------------------------------------------

    def get_history(
        self,
        event_type: str | Enum | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """Recorded events in emission order, optionally filtered/limited."""
        name = event_type_name(event_type) if event_type is not None else None
        return self._history.get(name, limit)

    def clear_history(self) -> None:
        self._history.clear()
        logger.info("Event history cleared")

    async def replay(
        self,
        from_event_id: str,
        event_type: str | Enum | None = None,
    ) -> None:
        """Re-dispatch every recorded event strictly after *from_event_id*.

        Each replayed event is a copy under a fresh id, with
        ``metadata["replayed_from"]`` naming the original.  Copies are
        recorded in history and queued like any other emission.  An
        unknown *from_event_id* is logged and ignored.
        """
        name = event_type_name(event_type) if event_type is not None else None
        events = self._history.after(from_event_id, name)
        if events is None:
            logger.warning("Event id not found for replay: %s", from_event_id)
            return

        logger.info(
            "Replaying %d events after %s", len(events), from_event_id,
        )
        for original in events:
            copy = original.replay_copy()
            metrics.record_emitted(copy.type)
            self._history.append(copy)
            await self._submit(copy)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def get_stats(self) -> dict[str, int]:
        """Subscription and history counts."""
        stats = self._registry.stats()
        stats["history_size"] = len(self._history)
        return stats

    def get_error_counts(self) -> dict[str, int]:
        """Return per-event-type handler error counts."""
        return dict(self._error_counts)

    @property
    def dead_letters(self) -> list[DeadLetter]:
        """Access the dead-letter list (read-only snapshot)."""
        return list(self._dead_letters)

    @property
    def messages_processed(self) -> int:
        """Total successful handler invocations."""
        return self._messages_processed

    def clear_dead_letters(self) -> list[DeadLetter]:
        """Drain the dead-letter list and return all entries."""
        drained = list(self._dead_letters)
        self._dead_letters.clear()
        return drained
