"""Custom exception hierarchy for the event core."""


class EventBusError(Exception):
    """Base exception for all event core errors."""


# --- Configuration ---
class ConfigError(EventBusError):
    """Invalid or missing configuration."""


# --- Events ---
class InvalidEventError(EventBusError, ValueError):
    """Event could not be constructed (e.g., missing or non-string type)."""


# --- Cross-context channels ---
class ChannelError(EventBusError):
    """Broadcast channel communication error."""


class ChannelClosedError(ChannelError):
    """Operation attempted on a channel that is not open."""

    def __init__(self, channel_name: str):
        self.channel_name = channel_name
        super().__init__(f"Broadcast channel [{channel_name}] is not open")
