"""Default business flows reacting to platform events."""

from nexus_events.flows.business import register_business_flows

__all__ = ["register_business_flows"]
