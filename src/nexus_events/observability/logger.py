"""Structured logging for the event core.

Uses structlog on top of stdlib logging: modules keep calling
``logging.getLogger(__name__)``; ``setup_logging`` decides how records are
rendered (JSON for production, console for development).

While the dispatcher is processing an event, every record, including
records logged by handlers, carries that event's ``event_id`` and
``event_type``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

# (event_id, event_type) of the event being dispatched in this context
_current_event: ContextVar[tuple[str, str] | None] = ContextVar(
    "current_event", default=None,
)


@contextmanager
def dispatch_context(event_id: str, event_type: str) -> Iterator[None]:
    """Mark *event_id* as the event being dispatched for the block."""
    token = _current_event.set((event_id, event_type))
    try:
        yield
    finally:
        _current_event.reset(token)


def current_event() -> tuple[str, str] | None:
    return _current_event.get()


def _add_event_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: tag entries with the event being dispatched."""
    current = _current_event.get()
    if current is not None:
        event_dict.setdefault("event_id", current[0])
        event_dict.setdefault("event_type", current[1])
    return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for production, "console" for development.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_event_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Render records from plain ``logging.getLogger`` callers as well.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level)
