"""Test the middleware pipeline: ordering, transform, veto, defaults."""

from __future__ import annotations

import pytest

from nexus_events.bus.dispatcher import EventDispatcher
from nexus_events.bus.middleware import (
    MiddlewarePipeline,
    logging_middleware,
    schema_validation_middleware,
    validation_middleware,
)
from nexus_events.core.events import Event


class TestPipelineOrdering:
    async def test_middlewares_run_in_registration_order(self, dispatcher):
        order = []

        async def first(event):
            order.append("first")
            return event

        def second(event):
            order.append("second")
            return event

        dispatcher.use(first)
        dispatcher.use(second)
        await dispatcher.emit("x")

        assert order == ["first", "second"]

    async def test_transform_reaches_next_middleware_and_subscribers(self, dispatcher):
        received = []

        async def enrich(event):
            return event.model_copy(update={"metadata": {"enriched": True}})

        async def check(event):
            assert event.metadata == {"enriched": True}
            return event.model_copy(update={"payload": event.payload * 2})

        dispatcher.use(enrich)
        dispatcher.use(check)
        dispatcher.on("x", received.append)

        await dispatcher.emit("x", 21)

        assert received[0].payload == 42
        assert received[0].metadata == {"enriched": True}

    async def test_default_middlewares_installed(self):
        assert len(EventDispatcher()._pipeline) == 2
        assert len(EventDispatcher(install_default_middleware=False)._pipeline) == 0


class TestVeto:
    async def test_veto_blocks_all_subscribers(self, dispatcher):
        calls = []

        async def block_v(event):
            return None if event.type == "v" else event

        dispatcher.use(block_v)
        dispatcher.on("v", lambda e: calls.append("v1"), priority=5)
        dispatcher.on("v", lambda e: calls.append("v2"))
        dispatcher.on("ok", lambda e: calls.append("ok"))

        await dispatcher.emit("v")
        await dispatcher.emit("ok")

        assert calls == ["ok"]

    async def test_vetoed_event_stays_in_history(self, dispatcher):
        dispatcher.use(lambda event: False)
        await dispatcher.emit("v", 1)

        history = dispatcher.get_history("v")
        assert [e.payload for e in history] == [1]

    async def test_veto_stops_later_middlewares(self, dispatcher):
        later = []

        dispatcher.use(lambda event: None)
        dispatcher.use(lambda event: later.append(event) or event)
        await dispatcher.emit("x")

        assert later == []

    async def test_vetoed_event_is_not_rebroadcast_by_hooks(self, dispatcher):
        hooked = []
        dispatcher.add_dispatch_hook(hooked.append)
        dispatcher.use(lambda event: None)

        await dispatcher.emit("x")
        assert hooked == []

    async def test_raising_middleware_aborts_event_only(self, dispatcher):
        received = []

        def explode(event):
            if event.payload == "bad":
                raise RuntimeError("middleware broke")
            return event

        dispatcher.use(explode)
        dispatcher.on("x", lambda e: received.append(e.payload))

        await dispatcher.emit("x", "bad")
        await dispatcher.emit("x", "good")

        assert received == ["good"]


class TestDefaultMiddlewares:
    async def test_validation_rejects_missing_type(self):
        assert await validation_middleware(Event(type="")) is None

    async def test_validation_rejects_missing_id(self):
        assert await validation_middleware(Event(id="", type="x")) is None

    async def test_validation_passes_well_formed(self):
        event = Event(type="x")
        assert await validation_middleware(event) is event

    async def test_malformed_transform_is_dropped(self, caplog):
        received = []
        bare = EventDispatcher(install_default_middleware=False)
        bare.use(lambda event: event.model_copy(update={"type": ""}))
        bare.use(validation_middleware)
        bare.on("x", received.append)

        with caplog.at_level("ERROR"):
            await bare.emit("x")

        assert received == []
        assert any("Invalid event format" in r.getMessage() for r in caplog.records)

    async def test_logging_middleware_logs_at_debug(self, caplog):
        event = Event(type="x", source="unit")
        with caplog.at_level("DEBUG", logger="nexus_events.bus.middleware"):
            assert await logging_middleware(event) is event

        assert any(
            r.levelname == "DEBUG" and "type=x" in r.getMessage()
            for r in caplog.records
        )


class TestSchemaValidationMiddleware:
    async def test_valid_payload_passes(self):
        middleware = schema_validation_middleware()
        event = Event(
            type="user.registered",
            payload={"user_id": "u1", "email": "a@b.c"},
        )
        assert await middleware(event) is event

    async def test_invalid_payload_vetoed(self):
        middleware = schema_validation_middleware()
        event = Event(type="user.registered", payload={"email": "a@b.c"})
        assert await middleware(event) is None

    async def test_unregistered_type_passes_unless_strict(self):
        event = Event(type="custom.thing", payload=object())
        assert await schema_validation_middleware()(event) is event
        assert await schema_validation_middleware(strict=True)(event) is None


class TestPipelineDirect:
    async def test_empty_pipeline_returns_event(self):
        pipeline = MiddlewarePipeline()
        event = Event(type="x")
        assert await pipeline.run(event) is event

    async def test_pipeline_propagates_exceptions(self):
        pipeline = MiddlewarePipeline()

        def broken(event):
            raise KeyError("missing")

        pipeline.use(broken)
        with pytest.raises(KeyError):
            await pipeline.run(Event(type="x"))
