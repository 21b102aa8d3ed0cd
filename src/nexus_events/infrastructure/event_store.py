"""Aggregate event store for event-sourced state reconstruction.

Design invariants
-----------------
1.  ``append()`` is **idempotent** on ``event.id``; appending the same
    event twice is a silent no-op.
2.  Reads return events in **append order**.
3.  Aggregate membership and versioning come from event metadata:
    ``metadata["aggregate_id"]`` and ``metadata["version"]``.  Events
    without a version count as version 0.
4.  The store is **append-only**; ``clear()`` exists only for testing.
"""

from __future__ import annotations

import logging

from nexus_events.core.events import Event

logger = logging.getLogger(__name__)


def _aggregate_id(event: Event) -> str | None:
    return (event.metadata or {}).get("aggregate_id")


def _version(event: Event) -> int:
    return int((event.metadata or {}).get("version") or 0)


class InMemoryEventStore:
    """List-backed event store.  No persistence across restarts."""

    def __init__(self) -> None:
        self._events: list[Event] = []
        self._seen_ids: set[str] = set()

    def append(self, event: Event) -> None:
        """Append *event*.  No-op if its id is already stored."""
        if event.id in self._seen_ids:
            return
        self._seen_ids.add(event.id)
        self._events.append(event)
        logger.debug("Event stored id=%s type=%s", event.id, event.type)

    def get_events(
        self,
        aggregate_id: str | None = None,
        from_version: int | None = None,
    ) -> list[Event]:
        """Events in append order, optionally for one aggregate.

        With *from_version*, only events whose version is strictly greater.
        """
        out: list[Event] = []
        for event in self._events:
            if aggregate_id is not None and _aggregate_id(event) != aggregate_id:
                continue
            if from_version is not None and _version(event) <= from_version:
                continue
            out.append(event)
        return out

    def get_last_event(self, aggregate_id: str) -> Event | None:
        events = self.get_events(aggregate_id)
        return events[-1] if events else None

    # -- Testing helpers ---------------------------------------------------

    def clear(self) -> None:
        """Remove all events.  Testing only."""
        self._events.clear()
        self._seen_ids.clear()

    def __len__(self) -> int:
        return len(self._events)
