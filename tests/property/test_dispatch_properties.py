"""Property test: dispatcher ordering and history invariants.

Uses hypothesis to generate subscription priorities, emission sequences and
history bounds, and verifies that delivery order and history contents never
depend on anything but priority, registration order and emission order.
"""

import asyncio

from hypothesis import given, settings, strategies as st

from nexus_events.bus.dispatcher import EventDispatcher


priorities = st.lists(st.integers(min_value=-5, max_value=5), min_size=1, max_size=20)


@given(priorities=priorities)
@settings(max_examples=100)
def test_invocation_order_is_stable_priority_order(priorities):
    """Descending priority; ties keep registration order."""

    async def run() -> list[int]:
        dispatcher = EventDispatcher()
        calls: list[int] = []
        for index, priority in enumerate(priorities):
            dispatcher.on("p", lambda e, index=index: calls.append(index), priority=priority)
        await dispatcher.emit("p")
        return calls

    calls = asyncio.run(run())

    expected = sorted(range(len(priorities)), key=lambda i: -priorities[i])
    assert calls == expected


@given(
    max_size=st.integers(min_value=1, max_value=20),
    count=st.integers(min_value=0, max_value=60),
)
@settings(max_examples=100)
def test_history_never_exceeds_bound(max_size, count):
    """History keeps exactly the last ``max_size`` events in emission order."""

    async def run() -> list[int]:
        dispatcher = EventDispatcher(history_max_size=max_size)
        for n in range(count):
            await dispatcher.emit("h", n)
        return [e.payload for e in dispatcher.get_history()]

    payloads = asyncio.run(run())

    assert len(payloads) == min(max_size, count)
    assert payloads == list(range(count))[-max_size:]


@given(fanout=st.lists(st.integers(min_value=0, max_value=4), min_size=1, max_size=10))
@settings(max_examples=50)
def test_queued_events_delivered_fifo(fanout):
    """Events emitted from handlers are delivered in emission order, once each."""

    async def run() -> tuple[list[str], list[str]]:
        dispatcher = EventDispatcher()
        emitted: list[str] = []
        delivered: list[str] = []

        async def root(event) -> None:
            for i, width in enumerate(fanout):
                for j in range(width):
                    label = f"{i}.{j}"
                    emitted.append(label)
                    await dispatcher.emit("leaf", label)

        dispatcher.on("root", root)
        dispatcher.on("leaf", lambda e: delivered.append(e.payload))
        await dispatcher.emit("root")
        await dispatcher.wait_idle()
        return emitted, delivered

    emitted, delivered = asyncio.run(run())

    assert delivered == emitted
