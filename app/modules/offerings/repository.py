"""Offering repository over CRM custom-object records."""

from __future__ import annotations

from typing import Any

from app.core.config import Settings
from app.core.crm import CRMClient, CRMNotFoundError, CRMRecord
from app.modules.offerings.schemas import OfferingRead

OFFERING_FIELDS = {
    "offering": "offering",
    "intake": "intake",
    "year_group": "year_group",
    "subject": "subject",
    "workshop_date": "workshop_date",
    "session_time": "session_time",
    "availability": "availability",
    "price": "price",
    "price_label": "price_label",
    "zoom_link": "zoom_link",
    "stripe_price_id": "stripe_price_id",
}


def parse_price(value: Any) -> float:
    """Read CRM monetary field; unparseable values read as zero."""
    if not value:
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict) and "value" in value:
        return parse_price(value["value"])
    try:
        return float(str(value).strip())
    except ValueError:
        return 0.0


def _text(props: dict[str, Any], key: str) -> str:
    value = props.get(OFFERING_FIELDS[key])
    return str(value) if value else ""


def offering_from_record(record: CRMRecord) -> OfferingRead:
    """Map CRM record properties to offering schema."""
    props = record.get("properties") or {}
    return OfferingRead(
        id=str(record["id"]),
        offering=_text(props, "offering"),
        intake=_text(props, "intake"),
        year_group=_text(props, "year_group"),
        subject=_text(props, "subject"),
        workshop_date=_text(props, "workshop_date"),
        session_time=_text(props, "session_time"),
        availability=_text(props, "availability").lower(),
        price=parse_price(props.get(OFFERING_FIELDS["price"])),
        price_label=_text(props, "price_label"),
        zoom_link=_text(props, "zoom_link"),
        stripe_price_id=_text(props, "stripe_price_id"),
    )


class OfferingsRepository:
    """CRM operations for workshop offerings."""

    def __init__(self, crm: CRMClient, settings: Settings) -> None:
        self.crm = crm
        self.schema_key = settings.workshop_offerings_schema
        self.page_limit = settings.offerings_page_limit

    async def list_by_year_group(self, year_group: str) -> list[OfferingRead]:
        records = await self.crm.search_records(
            self.schema_key,
            {OFFERING_FIELDS["year_group"]: year_group},
            page_limit=self.page_limit,
            sort=[{"field": "updatedAt", "direction": "asc"}],
        )
        return [offering_from_record(record) for record in records]

    async def get_offering_by_id(self, offering_id: str) -> OfferingRead | None:
        try:
            record = await self.crm.get_record(self.schema_key, offering_id)
        except CRMNotFoundError:
            return None
        return offering_from_record(record)
