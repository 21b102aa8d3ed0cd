"""Canonical ID and timestamp factories for the event core.

All modules import from here instead of defining local _uuid()/_now() copies.

ID Categories
-------------
1. Event IDs: ``evt_`` + UUID v4 hex.  Unique for the process lifetime;
   replayed copies always receive a fresh one.
2. Subscription IDs: ``sub_`` + UUID v4 hex.
3. Context IDs: bare UUID v4 strings identifying one execution context
   on a broadcast channel.

Timestamp Rule
--------------
All timestamps are ``datetime`` with ``tzinfo=timezone.utc``, never naive.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Generate a new UUID v4 string."""
    return str(uuid.uuid4())


def new_event_id() -> str:
    """Generate a new event ID."""
    return f"evt_{uuid.uuid4().hex}"


def new_subscription_id() -> str:
    """Generate a new subscription ID."""
    return f"sub_{uuid.uuid4().hex}"


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)
