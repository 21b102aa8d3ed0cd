"""Event bus: dispatcher, subscriptions, middleware, history and sync.

``EventDispatcher`` is the core; ``BusManager`` wires it with the optional
cross-context sync and aggregate store from configuration.
"""

from nexus_events.bus.dispatcher import EventDispatcher
from nexus_events.bus.manager import BusManager

__all__ = ["BusManager", "EventDispatcher"]
