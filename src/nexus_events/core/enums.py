"""Enumerations used across the event core."""

from enum import Enum


class DispatcherState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"


class EventType(str, Enum):
    """Well-known business event types.

    Any other string is still a valid event type; these are the names the
    platform's own collaborators agree on.
    """

    # User
    USER_REGISTERED = "user.registered"
    USER_LOGIN = "user.login"
    USER_LOGOUT = "user.logout"
    USER_PROFILE_UPDATED = "user.profile.updated"
    USER_KYC_COMPLETED = "user.kyc.completed"

    # Investment
    INVESTMENT_STARTED = "investment.started"
    INVESTMENT_COMPLETED = "investment.completed"
    INVESTMENT_FAILED = "investment.failed"
    INVESTMENT_CANCELLED = "investment.cancelled"
    PAYMENT_PROCESSED = "payment.processed"

    # Property
    PROPERTY_CREATED = "property.created"
    PROPERTY_UPDATED = "property.updated"
    PROPERTY_TOKENIZED = "property.tokenized"
    PROPERTY_VIEWED = "property.viewed"
    PROPERTY_FAVORITED = "property.favorited"

    # Trading
    TOKEN_TRANSFER = "token.transfer"
    TOKEN_SALE = "token.sale"
    TOKEN_PURCHASE = "token.purchase"
    MARKET_ORDER = "market.order"

    # System
    SYSTEM_ERROR = "system.error"
    SYSTEM_WARNING = "system.warning"
    SYSTEM_MAINTENANCE = "system.maintenance"
    CACHE_INVALIDATED = "cache.invalidated"

    # Notification
    NOTIFICATION_SENT = "notification.sent"
    EMAIL_SENT = "email.sent"
    SMS_SENT = "sms.sent"

    # Analytics
    PAGE_VIEW = "analytics.page_view"
    BUTTON_CLICK = "analytics.button_click"
    FORM_SUBMIT = "analytics.form_submit"
    CONVERSION = "analytics.conversion"


# Event types shared with other execution contexts by default.
DEFAULT_SYNCABLE_TYPES: tuple[str, ...] = (
    EventType.INVESTMENT_COMPLETED.value,
    EventType.PROPERTY_FAVORITED.value,
    EventType.USER_PROFILE_UPDATED.value,
    EventType.NOTIFICATION_SENT.value,
)
