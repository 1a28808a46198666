"""Booking schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.enums import PaymentStatusEnum
from app.modules.contacts.schemas import ContactInput


class BookingCreateRequest(BaseModel):
    """Booking form submission. Price is never accepted from the client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    offering_id: str = Field(min_length=1)
    parent: ContactInput
    student: ContactInput


class BookingCreated(BaseModel):
    """Booking creation response schema."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    booking_id: str
    record_id: str
    parent_contact_id: str
    student_contact_id: str
    checkout_url: str


class BookingRead(BaseModel):
    """Booking record as held in the CRM."""

    id: str
    booking_id: str
    parent_contact_id: str
    student_contact_id: str
    workshop_offering_id: str
    payment_status: str
    price_paid: float
    webhook_triggered: bool = False
    payment_reference: str | None = None
    currency: str | None = None


class BookingUpdate(BaseModel):
    """Partial booking update; unset fields are not written."""

    payment_status: PaymentStatusEnum | None = None
    webhook_triggered: bool | None = None
    payment_reference: str | None = None
    currency: str | None = None
