"""nexus-events: in-process publish/subscribe event core."""

from nexus_events.bus.dispatcher import EventDispatcher
from nexus_events.bus.manager import BusManager
from nexus_events.core.enums import EventType
from nexus_events.core.events import Event

__version__ = "0.1.0"

__all__ = ["BusManager", "Event", "EventDispatcher", "EventType", "__version__"]
