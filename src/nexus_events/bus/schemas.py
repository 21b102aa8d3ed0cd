"""Event type → payload schema registry.

Maps well-known event types to their Pydantic payload models.  Used for
payload validation (``schema_validation_middleware``) and by handlers that
want a typed view of ``event.payload``.

Event types missing from ``EVENT_SCHEMAS`` are ad-hoc: their payload is
passed through as-is.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from nexus_events.core.enums import EventType
from nexus_events.core.events import event_type_name


class UserRegisteredPayload(BaseModel):
    user_id: str
    email: str
    registration_method: Literal["email", "social", "wallet"] = "email"


class InvestmentCompletedPayload(BaseModel):
    investment_id: str
    user_id: str
    property_id: str
    amount: float
    currency: str = "USD"
    payment_method: str = ""


class PropertyTokenizedPayload(BaseModel):
    property_id: str
    contract_address: str
    total_shares: int
    share_price: float
    tokenization_date: datetime


class NotificationSentPayload(BaseModel):
    user_id: str
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class EmailSentPayload(BaseModel):
    to: str
    template: str
    user_id: str | None = None


class ConversionPayload(BaseModel):
    type: str
    user_id: str | None = None
    value: float = 0.0


class CacheInvalidatedPayload(BaseModel):
    patterns: list[str] = Field(default_factory=list)


EVENT_SCHEMAS: dict[str, type[BaseModel]] = {
    EventType.USER_REGISTERED.value: UserRegisteredPayload,
    EventType.INVESTMENT_COMPLETED.value: InvestmentCompletedPayload,
    EventType.PROPERTY_TOKENIZED.value: PropertyTokenizedPayload,
    EventType.NOTIFICATION_SENT.value: NotificationSentPayload,
    EventType.EMAIL_SENT.value: EmailSentPayload,
    EventType.CONVERSION.value: ConversionPayload,
    EventType.CACHE_INVALIDATED.value: CacheInvalidatedPayload,
}

# Current schema version per event type.  Bump when a payload schema changes
# in a backward-incompatible way so consumers can detect mismatches.
SCHEMA_VERSIONS: dict[str, int] = {event_type: 1 for event_type in EVENT_SCHEMAS}


def get_payload_class(event_type: str | Enum) -> type[BaseModel] | None:
    """Look up the payload model for an event type."""
    return EVENT_SCHEMAS.get(event_type_name(event_type))


def validate_payload(event_type: str | Enum, payload: Any) -> Any:
    """Return *payload* parsed into its registered model.

    Ad-hoc event types return the payload unchanged.  Raises
    ``pydantic.ValidationError`` for payloads that do not match.
    """
    payload_cls = get_payload_class(event_type)
    if payload_cls is None or isinstance(payload, payload_cls):
        return payload
    return payload_cls.model_validate(payload)


def list_event_types() -> list[str]:
    """All well-known event type names, sorted."""
    return sorted(member.value for member in EventType)
