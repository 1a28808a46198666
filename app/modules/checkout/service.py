"""Checkout handoff to the payment processor."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.payments import (
    PaymentCardError,
    PaymentGateway,
    PaymentGatewayError,
    get_payment_gateway,
)
from app.modules.checkout.schemas import CheckoutHandoff, CheckoutSessionRead, CheckoutSessionRequest
from app.shared.exceptions import CardException, SessionCreateException

logger = logging.getLogger(__name__)


def format_amount(price: float) -> str:
    """Render price without a trailing .0 for whole amounts."""
    if float(price).is_integer():
        return str(int(price))
    return str(price)


def build_checkout_url(base_url: str, handoff: CheckoutHandoff) -> str:
    """Compose checkout page URL carrying the reconciliation context."""
    query = urlencode(
        {
            "price_id": handoff.price_id,
            "booking_id": handoff.booking_id,
            "email": handoff.parent_email,
            "name": handoff.parent_name,
            "phone": handoff.parent_phone,
            "student_name": handoff.student_name,
            "student_email": handoff.student_email,
            "offering_id": handoff.offering_id,
            "offering_name": handoff.offering_name,
            "subject": handoff.subject,
            "date": handoff.workshop_date,
            "time": handoff.session_time,
            "year_group": handoff.year_group,
            "zoom_link": handoff.zoom_link,
            "amount": format_amount(handoff.price),
        },
    )
    return f"{base_url}?{query}"


def build_session_params(payload: CheckoutSessionRequest, settings: Settings) -> dict[str, Any]:
    """Build Stripe embedded Checkout Session parameters."""
    if payload.price_id:
        line_item: dict[str, Any] = {"price": payload.price_id, "quantity": 1}
    else:
        line_item = {
            "price_data": {
                "currency": settings.stripe_currency,
                "product_data": {
                    "name": payload.description,
                    "description": f"Booking ID: {payload.booking_id}",
                },
                "unit_amount": payload.amount,
            },
            "quantity": 1,
        }

    return {
        "ui_mode": "embedded",
        "mode": "payment",
        "customer_email": payload.customer_email,
        "line_items": [line_item],
        "metadata": {
            "bookingId": payload.booking_id,
            "customerName": payload.customer_name,
            "customerEmail": payload.customer_email,
            "parentPhone": payload.parent_phone,
            "studentName": payload.student_name,
            "studentEmail": payload.student_email,
            "offeringId": payload.offering_id,
            "offeringName": payload.offering_name,
            "offeringSubject": payload.offering_subject,
            "offeringDate": payload.offering_date,
            "offeringTime": payload.offering_time,
            "offeringYearGroup": payload.offering_year_group,
            "offeringZoomLink": payload.offering_zoom_link,
        },
        # {CHECKOUT_SESSION_ID} is substituted by Stripe.
        "return_url": (
            f"{settings.checkout_success_url}?booking_id={payload.booking_id}"
            "&session_id={CHECKOUT_SESSION_ID}"
        ),
    }


class CheckoutService:
    """Checkout session creation."""

    def __init__(self, gateway: PaymentGateway, settings: Settings) -> None:
        self.gateway = gateway
        self.settings = settings

    async def create_session(self, payload: CheckoutSessionRequest) -> CheckoutSessionRead:
        """Create embedded checkout session for a booking."""
        params = build_session_params(payload, self.settings)
        try:
            client_secret = await self.gateway.create_checkout_session(params)
        except PaymentCardError as exc:
            raise CardException(str(exc)) from exc
        except PaymentGatewayError as exc:
            logger.error("Checkout session for booking %s failed: %s", payload.booking_id, exc)
            raise SessionCreateException("Failed to create checkout session") from exc

        logger.info("Checkout session created for booking %s", payload.booking_id)
        return CheckoutSessionRead(
            client_secret=client_secret,
            publishable_key=self.gateway.publishable_key,
        )


async def get_checkout_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> CheckoutService:
    """Dependency provider for checkout service."""
    return CheckoutService(gateway=gateway, settings=settings)
