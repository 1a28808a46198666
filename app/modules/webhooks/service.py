"""Payment webhook reconciliation."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.crm import CRMClient, get_crm_client
from app.core.enums import PaymentStatusEnum, StripeEventTypeEnum
from app.core.metrics import record_webhook_event
from app.modules.booking.repository import BookingRepository
from app.modules.booking.schemas import BookingRead, BookingUpdate
from app.modules.booking.service import can_transition
from app.modules.notifications.schemas import (
    BookingNotification,
    BookingSummary,
    OfferingSummary,
    ParentSummary,
    PaymentSummary,
    StudentSummary,
)
from app.modules.notifications.service import BookingNotifier, get_booking_notifier
from app.shared.exceptions import WebhookProcessingException

logger = logging.getLogger(__name__)


def _payment_intent_id(session: dict[str, Any]) -> str | None:
    payment_intent = session.get("payment_intent")
    if isinstance(payment_intent, str):
        return payment_intent
    if isinstance(payment_intent, dict):
        return payment_intent.get("id")
    return None


def build_booking_notification(booking: BookingRead, session: dict[str, Any]) -> BookingNotification:
    """Assemble downstream payload from the booking and checkout session metadata."""
    meta = session.get("metadata") or {}
    return BookingNotification(
        booking=BookingSummary(
            booking_id=booking.booking_id,
            payment_status=PaymentStatusEnum.PAID.value,
            price_paid=booking.price_paid,
        ),
        offering=OfferingSummary(
            id=meta.get("offeringId", ""),
            name=meta.get("offeringName", ""),
            subject=meta.get("offeringSubject", ""),
            workshop_date=meta.get("offeringDate", ""),
            session_time=meta.get("offeringTime", ""),
            year_group=meta.get("offeringYearGroup", ""),
            zoom_link=meta.get("offeringZoomLink", ""),
        ),
        parent=ParentSummary(
            name=meta.get("customerName", ""),
            email=meta.get("customerEmail", ""),
            phone=meta.get("parentPhone", ""),
        ),
        student=StudentSummary(
            name=meta.get("studentName", ""),
            email=meta.get("studentEmail", ""),
        ),
        payment=PaymentSummary(
            stripe_session_id=str(session.get("id") or ""),
            stripe_payment_intent_id=_payment_intent_id(session),
            amount_total=session.get("amount_total"),
            currency=session.get("currency"),
        ),
    )


class PaymentWebhookService:
    """Applies verified payment events to booking records.

    Every step is individually idempotent so that a failed delivery, once
    redelivered by the processor, converges on a paid booking whose downstream
    notification has been sent and flagged.
    """

    def __init__(self, booking_repository: BookingRepository, notifier: BookingNotifier) -> None:
        self.booking_repository = booking_repository
        self.notifier = notifier

    async def handle_event(self, event: dict[str, Any]) -> str:
        """Process event and return outcome label."""
        event_type = str(event.get("type") or "")
        session = (event.get("data") or {}).get("object") or {}
        try:
            if event_type == StripeEventTypeEnum.CHECKOUT_SESSION_COMPLETED:
                outcome = await self._handle_session_completed(session)
            elif event_type == StripeEventTypeEnum.CHECKOUT_SESSION_EXPIRED:
                outcome = await self._handle_session_expired(session)
            else:
                logger.info("Webhook: unhandled event type %s", event_type)
                outcome = "ignored"
        except Exception as exc:
            logger.exception("Webhook processing failed for %s", event_type)
            record_webhook_event(event_type, "failed")
            raise WebhookProcessingException("Webhook processing failed") from exc

        record_webhook_event(event_type, outcome)
        return outcome

    async def _load_booking(self, session: dict[str, Any]) -> BookingRead | None:
        booking_id = (session.get("metadata") or {}).get("bookingId")
        if not booking_id:
            logger.error("Webhook: missing bookingId in session metadata")
            return None

        booking = await self.booking_repository.find_by_booking_id(booking_id)
        if booking is None:
            logger.error("Webhook: booking not found: %s", booking_id)
        return booking

    async def _handle_session_completed(self, session: dict[str, Any]) -> str:
        booking = await self._load_booking(session)
        if booking is None:
            return "booking_missing"

        if booking.payment_status == PaymentStatusEnum.PAID and booking.webhook_triggered:
            logger.info("Webhook: booking %s already complete, skipping", booking.booking_id)
            return "already_processed"

        if booking.payment_status != PaymentStatusEnum.PAID:
            if booking.payment_status != PaymentStatusEnum.PENDING:
                logger.warning(
                    "Webhook: booking %s is %s, settling as paid",
                    booking.booking_id,
                    booking.payment_status,
                )
            await self.booking_repository.update_booking(
                booking.id,
                BookingUpdate(
                    payment_status=PaymentStatusEnum.PAID,
                    payment_reference=_payment_intent_id(session),
                    currency=session.get("currency"),
                ),
            )
            logger.info("Webhook: booking %s marked as paid", booking.booking_id)

        # Raises on failure; the paid update above is skipped on redelivery.
        await self.notifier.send(build_booking_notification(booking, session))

        await self.booking_repository.update_booking(booking.id, BookingUpdate(webhook_triggered=True))
        logger.info("Webhook: booking %s fully processed", booking.booking_id)
        return "processed"

    async def _handle_session_expired(self, session: dict[str, Any]) -> str:
        booking = await self._load_booking(session)
        if booking is None:
            return "booking_missing"

        if not can_transition(booking.payment_status, PaymentStatusEnum.EXPIRED):
            logger.info(
                "Webhook: booking %s is %s, expiry ignored",
                booking.booking_id,
                booking.payment_status,
            )
            return "ignored"

        await self.booking_repository.update_booking(
            booking.id,
            BookingUpdate(payment_status=PaymentStatusEnum.EXPIRED),
        )
        logger.info("Webhook: booking %s marked as expired", booking.booking_id)
        return "expired"


async def get_payment_webhook_service(
    crm: CRMClient = Depends(get_crm_client),
    notifier: BookingNotifier = Depends(get_booking_notifier),
    settings: Settings = Depends(get_settings),
) -> PaymentWebhookService:
    """Dependency provider for payment webhook service."""
    return PaymentWebhookService(
        booking_repository=BookingRepository(crm, settings),
        notifier=notifier,
    )
