"""Notification schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookingSummary(_CamelModel):
    booking_id: str
    payment_status: str
    price_paid: float


class OfferingSummary(_CamelModel):
    id: str = ""
    name: str = ""
    subject: str = ""
    workshop_date: str = ""
    session_time: str = ""
    year_group: str = ""
    zoom_link: str = ""


class ParentSummary(_CamelModel):
    name: str = ""
    email: str = ""
    phone: str = ""


class StudentSummary(_CamelModel):
    name: str = ""
    email: str = ""


class PaymentSummary(_CamelModel):
    stripe_session_id: str
    stripe_payment_intent_id: str | None = None
    amount_total: int | None = None
    currency: str | None = None


class BookingNotification(_CamelModel):
    """Payload posted to the downstream booking automation."""

    booking: BookingSummary
    offering: OfferingSummary
    parent: ParentSummary
    student: StudentSummary
    payment: PaymentSummary
