"""Event record dispatched by the bus.

Events are Pydantic models, frozen once created.  Only the dispatcher's
emit path (and replay, as a fresh copy) creates them.  ``metadata`` is
held in a read-only mapping, so a handler cannot rewrite what history and
later subscribers see.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .ids import new_event_id, utc_now


def event_type_name(event_type: str | Enum) -> str:
    """Normalise an event type (plain string or ``EventType`` member) to a string."""
    if isinstance(event_type, Enum):
        return str(event_type.value)
    return event_type


def _freeze(metadata: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if metadata is None:
        return None
    return MappingProxyType(dict(metadata))


class Event(BaseModel):
    """Immutable record of something that happened."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_event_id)
    type: str
    payload: Any = None
    timestamp: datetime = Field(default_factory=utc_now)
    source: str = "unknown"
    user_id: str | None = None
    session_id: str | None = None
    metadata: Mapping[str, Any] | None = None

    @field_validator("metadata", mode="after")
    @classmethod
    def _freeze_metadata(cls, v: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
        return _freeze(v)

    @field_serializer("metadata")
    def _dump_metadata(self, v: Mapping[str, Any] | None) -> dict[str, Any] | None:
        return None if v is None else dict(v)

    def model_copy(
        self, *, update: Mapping[str, Any] | None = None, deep: bool = False,
    ) -> Event:
        # model_copy skips validation; keep copied metadata read-only too.
        if update and "metadata" in update:
            update = {**update, "metadata": _freeze(update["metadata"])}
        return super().model_copy(update=update, deep=deep)

    def replay_copy(self) -> Event:
        """Copy of this event under a fresh id, tagged with the original id."""
        metadata = dict(self.metadata or {})
        metadata["replayed_from"] = self.id
        return self.model_copy(update={"id": new_event_id(), "metadata": metadata})
