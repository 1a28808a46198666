"""Core enums used across modules."""

from enum import StrEnum


class YearGroupEnum(StrEnum):
    """Offering year-group category."""

    GCSE = "gcse"
    ALEVEL = "alevel"


class AvailabilityEnum(StrEnum):
    """Offering availability state."""

    AVAILABLE = "available"
    FULL = "full"
    INACTIVE = "inactive"


class ContactTypeEnum(StrEnum):
    """Role of a CRM contact."""

    PARENT = "parent"
    STUDENT = "student"


class PaymentStatusEnum(StrEnum):
    """Booking payment status."""

    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"


class StripeEventTypeEnum(StrEnum):
    """Payment processor events acted upon by the webhook."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    CHECKOUT_SESSION_EXPIRED = "checkout.session.expired"
