"""Checkout schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


class CheckoutHandoff(BaseModel):
    """Everything the payment page needs to open a session for a booking."""

    booking_id: str
    price_id: str
    parent_name: str
    parent_email: str
    parent_phone: str
    student_name: str
    student_email: str
    offering_id: str
    offering_name: str
    subject: str
    workshop_date: str
    session_time: str
    year_group: str
    zoom_link: str
    price: float


class CheckoutSessionRequest(BaseModel):
    """Embedded checkout session request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    booking_id: str = Field(min_length=1)
    customer_email: EmailStr
    customer_name: str = Field(min_length=1)
    price_id: str | None = None
    amount: int | None = Field(default=None, gt=0)
    description: str | None = None

    parent_phone: str = ""
    student_name: str = ""
    student_email: str = ""
    offering_id: str = ""
    offering_name: str = ""
    offering_subject: str = ""
    offering_date: str = ""
    offering_time: str = ""
    offering_year_group: str = ""
    offering_zoom_link: str = ""

    @model_validator(mode="after")
    def require_price_or_amount(self) -> "CheckoutSessionRequest":
        """Either a price reference or an inline amount with description is needed."""
        if self.price_id:
            return self
        if self.amount is None or not self.description:
            raise ValueError("Either priceId or amount and description are required")
        return self


class CheckoutSessionRead(BaseModel):
    """Checkout session response schema."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    client_secret: str
    publishable_key: str
