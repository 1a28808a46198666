"""Contact repository over the CRM contacts API."""

from __future__ import annotations

from typing import Any

from app.core.crm import CRMClient, CRMContact
from app.modules.contacts.schemas import ContactRead

CONTACT_SOURCE = "Workshop Booking Form"


def contact_from_crm(contact: CRMContact) -> ContactRead:
    return ContactRead(
        id=str(contact["id"]),
        first_name=contact.get("firstName") or "",
        last_name=contact.get("lastName") or "",
        name=contact.get("name") or contact.get("contactName") or "",
        email=contact.get("email") or "",
        phone=contact.get("phone") or "",
        tags=list(contact.get("tags") or []),
    )


class ContactsRepository:
    """CRM operations for parent and student contacts."""

    def __init__(self, crm: CRMClient) -> None:
        self.crm = crm

    async def find_by_email(self, email: str) -> ContactRead | None:
        contact = await self.crm.find_contact_by_email(email)
        if contact is None:
            return None
        return contact_from_crm(contact)

    async def create_contact(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
        tags: list[str],
        custom_fields: dict[str, str],
    ) -> ContactRead:
        payload: dict[str, Any] = {
            "firstName": first_name,
            "lastName": last_name,
            "name": f"{first_name} {last_name}",
            "email": email,
            "phone": phone,
            "tags": tags,
            "source": CONTACT_SOURCE,
            "customFields": [
                {"id": field_id, "field_value": value}
                for field_id, value in custom_fields.items()
            ],
        }
        return contact_from_crm(await self.crm.create_contact(payload))

    async def add_tags(self, contact: ContactRead, tags: list[str]) -> ContactRead:
        merged = await self.crm.add_contact_tags(contact.id, tags)
        known = list(contact.tags)
        for tag in [*merged, *tags]:
            if tag not in known:
                known.append(tag)
        return contact.model_copy(update={"tags": known})
