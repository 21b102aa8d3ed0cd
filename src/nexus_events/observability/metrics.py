"""Prometheus metrics endpoint.

Exposes event core metrics for monitoring via Grafana.
"""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Info,
    start_http_server,
)

# ---------------------------------------------------------------------------
# System metrics
# ---------------------------------------------------------------------------

SYSTEM_INFO = Info("nexus_events", "Event core information")

# ---------------------------------------------------------------------------
# Dispatch metrics
# ---------------------------------------------------------------------------

EVENTS_EMITTED = Counter(
    "nexus_events_emitted_total",
    "Total events emitted",
    ["event_type"],
)

EVENTS_DELIVERED = Counter(
    "nexus_events_delivered_total",
    "Total events that completed a subscriber pass",
    ["event_type"],
)

EVENTS_VETOED = Counter(
    "nexus_events_vetoed_total",
    "Total events stopped by middleware",
    ["event_type"],
)

HANDLER_ERRORS = Counter(
    "nexus_events_handler_errors_total",
    "Subscriber handler failures",
    ["event_type"],
)

QUEUE_DEPTH = Gauge(
    "nexus_events_queue_depth",
    "Events waiting behind the one being dispatched",
    ["dispatcher"],
)

# ---------------------------------------------------------------------------
# Cross-context metrics
# ---------------------------------------------------------------------------

BROADCASTS = Counter(
    "nexus_events_broadcast_total",
    "Cross-context broadcast messages",
    ["direction"],
)


def start_metrics_server(port: int = 9090, channel: str = "unknown") -> None:
    """Start Prometheus metrics HTTP server in a background thread."""
    SYSTEM_INFO.info({
        "version": "0.1.0",
        "channel": channel,
    })
    start_http_server(port)


# ---------------------------------------------------------------------------
# Convenience helpers for emitting metrics from the dispatcher
# ---------------------------------------------------------------------------


def record_emitted(event_type: str) -> None:
    EVENTS_EMITTED.labels(event_type=event_type).inc()


def record_delivered(event_type: str) -> None:
    EVENTS_DELIVERED.labels(event_type=event_type).inc()


def record_vetoed(event_type: str) -> None:
    EVENTS_VETOED.labels(event_type=event_type).inc()


def record_handler_error(event_type: str) -> None:
    HANDLER_ERRORS.labels(event_type=event_type).inc()


def update_queue_depth(dispatcher: str, depth: int) -> None:
    QUEUE_DEPTH.labels(dispatcher=dispatcher).set(depth)


def record_broadcast(direction: str) -> None:
    """Record a broadcast message (``"out"`` or ``"in"``)."""
    BROADCASTS.labels(direction=direction).inc()
