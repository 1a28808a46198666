"""Contact schemas."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.shared.utils import normalize_phone_number

UK_MOBILE_PATTERN = re.compile(r"^\+44[0-9]{10}$")


class ContactInput(BaseModel):
    """Person details submitted on the booking form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=20)

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, value: str) -> str:
        """Normalize phone and require an international or UK mobile number."""
        normalized = normalize_phone_number(value)
        if normalized is None:
            raise ValueError("Invalid phone number format")
        if not (UK_MOBILE_PATTERN.match(normalized) or normalized.startswith("+")):
            raise ValueError("Please enter a valid UK mobile number")
        return normalized

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ContactRead(BaseModel):
    """Contact as held in the CRM."""

    id: str
    first_name: str = ""
    last_name: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""
    tags: list[str] = Field(default_factory=list)
