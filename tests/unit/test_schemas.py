"""Test the payload schema registry."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from nexus_events.bus.schemas import (
    EVENT_SCHEMAS,
    SCHEMA_VERSIONS,
    InvestmentCompletedPayload,
    get_payload_class,
    list_event_types,
    validate_payload,
)
from nexus_events.core.enums import EventType


def test_every_schema_key_is_a_known_event_type():
    known = {member.value for member in EventType}
    assert set(EVENT_SCHEMAS) <= known
    assert set(SCHEMA_VERSIONS) == set(EVENT_SCHEMAS)


def test_lookup_accepts_enum_and_string():
    assert get_payload_class(EventType.INVESTMENT_COMPLETED) is InvestmentCompletedPayload
    assert get_payload_class("investment.completed") is InvestmentCompletedPayload
    assert get_payload_class("custom.thing") is None


def test_validate_payload_parses_dict():
    payload = validate_payload(
        "investment.completed",
        {"investment_id": "i1", "user_id": "u1", "property_id": "p1", "amount": 250},
    )
    assert isinstance(payload, InvestmentCompletedPayload)
    assert payload.amount == 250.0
    assert payload.currency == "USD"


def test_validate_payload_passes_models_through():
    model = InvestmentCompletedPayload(
        investment_id="i1", user_id="u1", property_id="p1", amount=1,
    )
    assert validate_payload("investment.completed", model) is model


def test_validate_payload_rejects_bad_payload():
    with pytest.raises(ValidationError):
        validate_payload("user.registered", {"user_id": "u1"})
    with pytest.raises(ValidationError):
        validate_payload(
            "user.registered",
            {"user_id": "u1", "email": "a@b.c", "registration_method": "fax"},
        )


def test_ad_hoc_payload_unchanged():
    payload = {"anything": [1, 2]}
    assert validate_payload("custom.thing", payload) is payload


def test_list_event_types_sorted_and_complete():
    names = list_event_types()
    assert names == sorted(names)
    assert len(names) == len(EventType)
    assert "analytics.conversion" in names
