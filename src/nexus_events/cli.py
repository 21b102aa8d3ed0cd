"""CLI entry point for the event core."""

from __future__ import annotations

import json

import click

from .bus.schemas import list_event_types
from .core.config import Settings, load_settings


def _redis_settings(config: str | None) -> Settings:
    """Load settings with the channel forced onto the redis backend."""
    settings = load_settings(config)
    settings.sync = settings.sync.model_copy(update={"backend": "redis"})
    return settings


@click.group()
def main() -> None:
    """Nexus event core tools."""


@main.command()
def types() -> None:
    """List the well-known event types."""
    for name in list_event_types():
        click.echo(name)


@main.command()
@click.argument("event_type")
@click.argument("payload", default="null")
@click.option("--config", default=None, help="Config file path")
@click.option("--source", default="cli", help="Source recorded as originalSource")
def publish(event_type: str, payload: str, config: str | None, source: str) -> None:
    """Post EVENT_TYPE with a JSON PAYLOAD on the broadcast channel."""
    import asyncio

    from .bus.channels import BroadcastMessage
    from .core.ids import utc_now

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}", param_hint="PAYLOAD")

    settings = _redis_settings(config)
    message = BroadcastMessage(
        type=event_type,
        payload=data,
        metadata={"originalSource": source, "timestamp": utc_now().isoformat()},
    )

    async def _post() -> None:
        from .bus.bus import create_channel

        channel = create_channel(settings)

        async def _ignore(_message: BroadcastMessage) -> None:
            return None

        await channel.open(_ignore)
        try:
            await channel.post(message)
        finally:
            await channel.close()

    asyncio.run(_post())
    click.echo(f"published {event_type}")


@main.command()
@click.option("--config", default=None, help="Config file path")
def listen(config: str | None) -> None:
    """Print broadcast messages as they arrive (Ctrl+C to stop)."""
    import asyncio

    from .bus.bus import create_channel
    from .bus.channels import BroadcastMessage
    from .observability.logger import setup_logging

    settings = _redis_settings(config)
    setup_logging(settings.observability.log_level, settings.observability.log_format)

    if settings.observability.metrics_enabled:
        from .observability.metrics import start_metrics_server

        start_metrics_server(
            settings.observability.metrics_port, settings.sync.channel_name,
        )

    async def _print(message: BroadcastMessage) -> None:
        click.echo(message.model_dump_json())

    async def _listen() -> None:
        channel = create_channel(settings)
        await channel.open(_print)
        try:
            await asyncio.Event().wait()
        finally:
            await channel.close()

    try:
        asyncio.run(_listen())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
