"""Booking repository over CRM custom-object records."""

from __future__ import annotations

import time
from typing import Any

from app.core.config import Settings
from app.core.crm import CRMClient, CRMRecord
from app.core.enums import PaymentStatusEnum
from app.modules.booking.schemas import BookingRead, BookingUpdate
from app.modules.offerings.repository import parse_price
from app.shared.utils import random_base36, to_base36

BOOKING_FIELDS = {
    "booking_id": "id",
    "parent_contact_id": "parent_contact_id",
    "student_contact_id": "student_contact_id",
    "workshop_offering_id": "workshop_offering_id",
    "payment_status": "payment_status",
    "price_paid": "price",
    "webhook_triggered": "webhook_triggered",
    "payment_reference": "payment_reference",
    "currency": "currency",
}


def generate_booking_id() -> str:
    """Human-facing booking id: BK-<base36 ms timestamp>-<base36 random>."""
    timestamp = to_base36(int(time.time() * 1000))
    return f"BK-{timestamp}-{random_base36(6)}".upper()


def _flag_is_set(value: Any) -> bool:
    """CRM may hand the flag back as a boolean or as text in any case."""
    return value is True or str(value).strip().lower() == "true"


def booking_from_record(record: CRMRecord) -> BookingRead:
    """Map CRM record properties to booking schema."""
    props = record.get("properties") or {}

    def text(key: str) -> str:
        value = props.get(BOOKING_FIELDS[key])
        return str(value) if value else ""

    return BookingRead(
        id=str(record["id"]),
        booking_id=text("booking_id"),
        parent_contact_id=text("parent_contact_id"),
        student_contact_id=text("student_contact_id"),
        workshop_offering_id=text("workshop_offering_id"),
        payment_status=text("payment_status"),
        price_paid=parse_price(props.get(BOOKING_FIELDS["price_paid"])),
        webhook_triggered=_flag_is_set(props.get(BOOKING_FIELDS["webhook_triggered"])),
        payment_reference=text("payment_reference") or None,
        currency=text("currency") or None,
    )


class BookingRepository:
    """CRM operations for booking domain."""

    def __init__(self, crm: CRMClient, settings: Settings) -> None:
        self.crm = crm
        self.schema_key = settings.bookings_schema

    async def create_booking(
        self,
        parent_contact_id: str,
        student_contact_id: str,
        workshop_offering_id: str,
        price_paid: float,
    ) -> BookingRead:
        booking_id = generate_booking_id()
        properties = {
            BOOKING_FIELDS["booking_id"]: booking_id,
            BOOKING_FIELDS["parent_contact_id"]: parent_contact_id,
            BOOKING_FIELDS["student_contact_id"]: student_contact_id,
            BOOKING_FIELDS["workshop_offering_id"]: workshop_offering_id,
            BOOKING_FIELDS["payment_status"]: PaymentStatusEnum.PENDING.value,
            BOOKING_FIELDS["price_paid"]: price_paid,
        }
        record = await self.crm.create_record(self.schema_key, properties)
        return BookingRead(
            id=str(record["id"]),
            booking_id=booking_id,
            parent_contact_id=parent_contact_id,
            student_contact_id=student_contact_id,
            workshop_offering_id=workshop_offering_id,
            payment_status=PaymentStatusEnum.PENDING.value,
            price_paid=price_paid,
        )

    async def find_by_student_and_offering(
        self,
        student_contact_id: str,
        workshop_offering_id: str,
    ) -> BookingRead | None:
        records = await self.crm.search_records(
            self.schema_key,
            {
                BOOKING_FIELDS["student_contact_id"]: student_contact_id,
                BOOKING_FIELDS["workshop_offering_id"]: workshop_offering_id,
            },
        )
        if not records:
            return None
        return booking_from_record(records[0])

    async def find_by_booking_id(self, booking_id: str) -> BookingRead | None:
        records = await self.crm.search_records(
            self.schema_key,
            {BOOKING_FIELDS["booking_id"]: booking_id},
        )
        if not records:
            return None
        return booking_from_record(records[0])

    async def update_booking(self, record_id: str, update: BookingUpdate) -> None:
        properties: dict[str, Any] = {}
        for key, value in update.model_dump(exclude_none=True).items():
            if key == "webhook_triggered":
                value = "true" if value else "false"
            elif key == "payment_status":
                value = PaymentStatusEnum(value).value
            properties[BOOKING_FIELDS[key]] = value
        if not properties:
            return
        await self.crm.update_record(self.schema_key, record_id, properties)
