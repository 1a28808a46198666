"""Offering schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.core.enums import YearGroupEnum


class OfferingRead(BaseModel):
    """Workshop offering as read from the CRM."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    offering: str
    intake: str
    year_group: str
    subject: str
    workshop_date: str
    session_time: str
    availability: str
    price: float
    price_label: str
    zoom_link: str
    stripe_price_id: str = ""


class OfferingsQuery(BaseModel):
    """Offerings listing query."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    year_group: YearGroupEnum
