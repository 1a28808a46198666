"""Parent and student contact resolution."""

from __future__ import annotations

import logging
import re

from app.core.config import Settings
from app.core.crm import CRMError
from app.core.enums import ContactTypeEnum
from app.modules.contacts.repository import ContactsRepository
from app.modules.contacts.schemas import ContactInput, ContactRead
from app.modules.offerings.schemas import OfferingRead
from app.shared.exceptions import CreateException

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def build_workshop_tag(offering: OfferingRead) -> str:
    """Tag that groups contacts booked on the same workshop."""
    raw = f"workshop-{offering.year_group}-{offering.subject}-{offering.workshop_date}"
    return _WHITESPACE.sub("-", raw.lower())


class ContactsService:
    """Idempotent find-or-create for booking contacts.

    An existing contact (matched by email) only gets the role and workshop tags
    merged in; names, phone and custom fields already held by the CRM are left
    untouched.
    """

    def __init__(self, repository: ContactsRepository, settings: Settings) -> None:
        self.repository = repository
        self.settings = settings

    async def _upsert(
        self,
        payload: ContactInput,
        role: ContactTypeEnum,
        workshop_tag: str,
        custom_fields: dict[str, str],
    ) -> ContactRead:
        tags = [role.value, workshop_tag]
        try:
            existing = await self.repository.find_by_email(payload.email)
            if existing is not None:
                logger.info("Reusing %s contact %s", role.value, existing.id)
                return await self.repository.add_tags(existing, tags)

            contact = await self.repository.create_contact(
                first_name=payload.first_name,
                last_name=payload.last_name,
                email=payload.email,
                phone=payload.phone,
                tags=tags,
                custom_fields=custom_fields,
            )
        except CRMError as exc:
            logger.error("Failed to resolve %s contact: %s", role.value, exc)
            raise CreateException(f"Failed to save {role.value} contact") from exc

        logger.info("Created %s contact %s", role.value, contact.id)
        return contact

    async def resolve_parent(self, payload: ContactInput, workshop_tag: str) -> ContactRead:
        """Find or create the parent contact."""
        return await self._upsert(
            payload,
            ContactTypeEnum.PARENT,
            workshop_tag,
            {self.settings.ghl_contact_type_field_id: ContactTypeEnum.PARENT.value},
        )

    async def resolve_student(
        self,
        payload: ContactInput,
        workshop_tag: str,
        parent_contact_id: str,
        year_group: str,
    ) -> ContactRead:
        """Find or create the student contact linked to its parent."""
        return await self._upsert(
            payload,
            ContactTypeEnum.STUDENT,
            workshop_tag,
            {
                self.settings.ghl_contact_type_field_id: ContactTypeEnum.STUDENT.value,
                self.settings.ghl_parent_contact_field_id: parent_contact_id,
                self.settings.ghl_year_group_field_id: year_group,
            },
        )
