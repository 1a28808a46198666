"""Booking business logic layer."""

from __future__ import annotations

import logging

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.crm import CRMClient, CRMError, get_crm_client
from app.core.enums import PaymentStatusEnum
from app.core.metrics import record_booking_outcome
from app.modules.booking.repository import BookingRepository
from app.modules.booking.schemas import BookingCreated, BookingCreateRequest, BookingRead
from app.modules.checkout.schemas import CheckoutHandoff
from app.modules.checkout.service import build_checkout_url
from app.modules.contacts.repository import ContactsRepository
from app.modules.contacts.schemas import ContactInput, ContactRead
from app.modules.contacts.service import ContactsService, build_workshop_tag
from app.modules.offerings.repository import OfferingsRepository
from app.modules.offerings.schemas import OfferingRead
from app.modules.offerings.service import OfferingsService
from app.shared.exceptions import (
    AppException,
    CreateException,
    DuplicateBookingException,
    FetchException,
)
from app.shared.utils import today_date_string

logger = logging.getLogger(__name__)

ALLOWED_PAYMENT_TRANSITIONS: dict[PaymentStatusEnum, set[PaymentStatusEnum]] = {
    PaymentStatusEnum.PENDING: {PaymentStatusEnum.PAID, PaymentStatusEnum.EXPIRED},
    PaymentStatusEnum.PAID: set(),
    # A completed checkout settles a booking whose earlier session expired.
    PaymentStatusEnum.EXPIRED: {PaymentStatusEnum.PAID},
    PaymentStatusEnum.FAILED: {PaymentStatusEnum.PAID},
}


def can_transition(current: str, target: PaymentStatusEnum) -> bool:
    """Return True if payment status may move from current to target."""
    try:
        current_status = PaymentStatusEnum(current)
    except ValueError:
        return False
    return target in ALLOWED_PAYMENT_TRANSITIONS[current_status]


class BookingService:
    """Booking domain service: offering check, contacts, duplicate guard, record, handoff."""

    def __init__(
        self,
        offerings_service: OfferingsService,
        contacts_service: ContactsService,
        booking_repository: BookingRepository,
        settings: Settings,
    ) -> None:
        self.offerings_service = offerings_service
        self.contacts_service = contacts_service
        self.booking_repository = booking_repository
        self.settings = settings

    def _checkout_url(
        self,
        booking_id: str,
        offering: OfferingRead,
        parent: ContactInput,
        student: ContactInput,
    ) -> str:
        handoff = CheckoutHandoff(
            booking_id=booking_id,
            price_id=offering.stripe_price_id,
            parent_name=parent.full_name,
            parent_email=parent.email,
            parent_phone=parent.phone,
            student_name=student.full_name,
            student_email=student.email,
            offering_id=offering.id,
            offering_name=offering.offering,
            subject=offering.subject,
            workshop_date=offering.workshop_date,
            session_time=offering.session_time,
            year_group=offering.year_group,
            zoom_link=offering.zoom_link,
            price=offering.price,
        )
        return build_checkout_url(self.settings.checkout_base_url, handoff)

    async def _find_existing_booking(
        self,
        student: ContactRead,
        offering: OfferingRead,
    ) -> BookingRead | None:
        try:
            return await self.booking_repository.find_by_student_and_offering(student.id, offering.id)
        except CRMError as exc:
            logger.error("Duplicate booking lookup failed: %s", exc)
            raise FetchException("Failed to check existing bookings") from exc

    async def create_booking(self, payload: BookingCreateRequest) -> BookingCreated:
        """Validate offering, resolve contacts and create or reuse a pending booking."""
        try:
            return await self._create_booking(payload)
        except AppException as exc:
            record_booking_outcome(exc.code)
            raise

    async def _create_booking(self, payload: BookingCreateRequest) -> BookingCreated:
        today = today_date_string()
        offering = await self.offerings_service.get_bookable_offering(payload.offering_id, today)

        workshop_tag = build_workshop_tag(offering)
        parent = await self.contacts_service.resolve_parent(payload.parent, workshop_tag)
        student = await self.contacts_service.resolve_student(
            payload.student,
            workshop_tag,
            parent_contact_id=parent.id,
            year_group=offering.year_group,
        )

        existing = await self._find_existing_booking(student, offering)
        if existing is not None:
            if existing.payment_status != PaymentStatusEnum.PENDING:
                raise DuplicateBookingException("Student already booked for this workshop")
            # Abandoned checkout: hand out a fresh link for the same booking.
            logger.info("Reusing pending booking %s", existing.booking_id)
            record_booking_outcome("reused")
            return BookingCreated(
                booking_id=existing.booking_id,
                record_id=existing.id,
                parent_contact_id=parent.id,
                student_contact_id=student.id,
                checkout_url=self._checkout_url(existing.booking_id, offering, payload.parent, payload.student),
            )

        try:
            booking = await self.booking_repository.create_booking(
                parent_contact_id=parent.id,
                student_contact_id=student.id,
                workshop_offering_id=offering.id,
                price_paid=offering.price,
            )
        except CRMError as exc:
            logger.error("Booking creation failed: %s", exc)
            raise CreateException("Failed to create booking") from exc

        logger.info("Created booking %s for offering %s", booking.booking_id, offering.id)
        record_booking_outcome("created")
        return BookingCreated(
            booking_id=booking.booking_id,
            record_id=booking.id,
            parent_contact_id=parent.id,
            student_contact_id=student.id,
            checkout_url=self._checkout_url(booking.booking_id, offering, payload.parent, payload.student),
        )


async def get_booking_service(
    crm: CRMClient = Depends(get_crm_client),
    settings: Settings = Depends(get_settings),
) -> BookingService:
    """Dependency provider for booking service."""
    return BookingService(
        offerings_service=OfferingsService(OfferingsRepository(crm, settings)),
        contacts_service=ContactsService(ContactsRepository(crm), settings),
        booking_repository=BookingRepository(crm, settings),
        settings=settings,
    )
