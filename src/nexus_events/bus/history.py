"""Bounded event history.

A ``deque`` with ``maxlen`` gives strict FIFO eviction: appending to a full
buffer drops the oldest event, so the length never exceeds ``max_size``.
Reads always return copies; callers can never mutate the buffer.
"""

from __future__ import annotations

from collections import deque

from nexus_events.core.events import Event


class EventHistory:
    """Ordered, bounded buffer of dispatched events."""

    def __init__(self, max_size: int = 1000) -> None:
        if max_size < 1:
            raise ValueError(f"History max_size must be positive, got {max_size}")
        self._events: deque[Event] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._events.maxlen or 0

    def append(self, event: Event) -> None:
        self._events.append(event)

    def get(self, event_type: str | None = None, limit: int | None = None) -> list[Event]:
        """Events in emission order, optionally filtered by type.

        With *limit*, only the most recent ``limit`` matching events.
        """
        if event_type is None:
            events = list(self._events)
        else:
            events = [e for e in self._events if e.type == event_type]

        if limit:
            events = events[-limit:]
        return events

    def after(self, event_id: str, event_type: str | None = None) -> list[Event] | None:
        """Events recorded strictly after *event_id*.

        Returns ``None`` when *event_id* is not in the buffer.
        """
        events = list(self._events)
        for index, event in enumerate(events):
            if event.id == event_id:
                break
        else:
            return None

        following = events[index + 1:]
        if event_type is not None:
            following = [e for e in following if e.type == event_type]
        return following

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
