"""Broadcast channels connecting execution contexts of the same origin.

A channel carries ``BroadcastMessage`` objects between contexts.  Like a
browser ``BroadcastChannel``, a context never receives its own messages,
and delivery is fire-and-forget: no acknowledgement, no retry, no ordering
guarantee *between* contexts.

Implementations:

*  ``MemoryBroadcastChannel``: in-process hub keyed by channel name.
   For tests and for several dispatchers living in one process.  Channels
   only see each other through the ``MemoryChannelHub`` they were given;
   there is no process-wide hub.
*  ``RedisBroadcastChannel``: Redis pub/sub on ``"{origin}:{name}"``.
   Messages travel in a JSON envelope ``{"sender", "data"}`` so a context
   can drop its own echo.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

import redis.asyncio as aioredis
from pydantic import BaseModel, Field, ValidationError

from nexus_events.core.errors import ChannelClosedError
from nexus_events.core.ids import new_id

logger = logging.getLogger(__name__)

MessageListener = Callable[["BroadcastMessage"], Awaitable[None]]


class BroadcastMessage(BaseModel):
    """Wire format of a cross-context event."""

    type: str = Field(min_length=1)
    payload: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)


def decode_message(data: Any) -> BroadcastMessage | None:
    """Validate an inbound message; ``None`` if it is malformed."""
    try:
        return BroadcastMessage.model_validate(data)
    except ValidationError:
        logger.warning("Malformed broadcast message dropped: %r", data)
        return None


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class BroadcastChannel(Protocol):
    """Shared, origin-scoped channel between execution contexts."""

    name: str

    async def open(self, listener: MessageListener) -> None:
        """Start receiving; *listener* is awaited for each inbound message."""
        ...

    async def post(self, message: BroadcastMessage) -> None:
        """Send *message* to every other context on the channel."""
        ...

    async def close(self) -> None: ...

    @property
    def is_open(self) -> bool: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class MemoryChannelHub:
    """Registry of open in-memory channels, grouped by name."""

    def __init__(self) -> None:
        self._members: dict[str, list[MemoryBroadcastChannel]] = defaultdict(list)

    def join(self, channel: MemoryBroadcastChannel) -> None:
        self._members[channel.name].append(channel)

    def leave(self, channel: MemoryBroadcastChannel) -> None:
        members = self._members.get(channel.name, [])
        if channel in members:
            members.remove(channel)

    def peers(self, channel: MemoryBroadcastChannel) -> list[MemoryBroadcastChannel]:
        return [c for c in self._members.get(channel.name, []) if c is not channel]


class MemoryBroadcastChannel:
    """In-process broadcast channel.

    Each channel owns an inbox drained by a reader task, so messages from
    one poster arrive in posting order and the poster never waits on the
    receivers' handlers.
    """

    def __init__(
        self,
        name: str = "nexus_events",
        *,
        hub: MemoryChannelHub,
    ) -> None:
        self.name = name
        self._hub = hub
        self._inbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._listener: MessageListener | None = None
        self._reader: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self._reader is not None

    async def open(self, listener: MessageListener) -> None:
        self._listener = listener
        self._hub.join(self)
        self._reader = asyncio.create_task(
            self._read_loop(), name=f"channel-{self.name}",
        )

    async def post(self, message: BroadcastMessage) -> None:
        if not self.is_open:
            raise ChannelClosedError(self.name)
        # Same structured-clone semantics as the wire: receivers get JSON data.
        data = json.loads(message.model_dump_json())
        for peer in self._hub.peers(self):
            peer._inbox.put_nowait(data)

    async def close(self) -> None:
        self._hub.leave(self)
        if self._reader is not None:
            self._reader.cancel()
            await asyncio.gather(self._reader, return_exceptions=True)
            self._reader = None

    async def _read_loop(self) -> None:
        while True:
            data = await self._inbox.get()
            message = decode_message(data)
            if message is None or self._listener is None:
                continue
            try:
                await self._listener(message)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Broadcast listener failed on %s", self.name)


# ---------------------------------------------------------------------------
# Redis implementation
# ---------------------------------------------------------------------------

class RedisBroadcastChannel:
    """Broadcast channel backed by Redis pub/sub.

    The Redis channel is ``"{origin}:{name}"`` so unrelated deployments
    sharing a Redis never see each other's events.
    """

    def __init__(
        self,
        name: str = "nexus_events",
        redis_url: str = "redis://localhost:6379/0",
        origin: str = "local",
        poll_timeout: float = 1.0,
    ) -> None:
        self.name = name
        self._redis_url = redis_url
        self._origin = origin
        self._poll_timeout = poll_timeout
        self._context_id = new_id()
        self._redis: aioredis.Redis | None = None
        self._pubsub: Any = None
        self._listener: MessageListener | None = None
        self._reader: asyncio.Task[None] | None = None

    @property
    def channel_key(self) -> str:
        return f"{self._origin}:{self.name}"

    @property
    def context_id(self) -> str:
        return self._context_id

    @property
    def is_open(self) -> bool:
        return self._redis is not None

    async def open(self, listener: MessageListener) -> None:
        """Connect to Redis, subscribe and start the reader loop."""
        self._listener = listener
        self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self.channel_key)
        self._reader = asyncio.create_task(
            self._read_loop(), name=f"channel-{self.channel_key}",
        )

    async def post(self, message: BroadcastMessage) -> None:
        if not self._redis:
            raise ChannelClosedError(self.name)
        await self._redis.publish(self.channel_key, self.encode(message))

    async def close(self) -> None:
        """Stop the reader loop and close the Redis connection."""
        if self._reader is not None:
            self._reader.cancel()
            await asyncio.gather(self._reader, return_exceptions=True)
            self._reader = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.channel_key)
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def encode(self, message: BroadcastMessage) -> str:
        """Wrap *message* in this context's envelope."""
        return json.dumps({
            "sender": self._context_id,
            "data": json.loads(message.model_dump_json()),
        })

    def decode(self, raw: str) -> BroadcastMessage | None:
        """Unwrap an envelope; ``None`` for own echoes and malformed input."""
        try:
            envelope = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.warning("Malformed broadcast envelope: %r", raw)
            return None
        if not isinstance(envelope, dict) or "data" not in envelope:
            logger.warning("Malformed broadcast envelope: %r", raw)
            return None
        if envelope.get("sender") == self._context_id:
            return None
        return decode_message(envelope["data"])

    async def _read_loop(self) -> None:
        assert self._pubsub is not None

        while True:
            try:
                raw = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=self._poll_timeout,
                )
                if raw is None:
                    continue

                message = self.decode(raw.get("data"))
                if message is None or self._listener is None:
                    continue
                await self._listener(message)

            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Broadcast reader error on %s", self.channel_key)
                await asyncio.sleep(1)
