"""Stripe payment processor adapter."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import stripe
from fastapi import Request
from fastapi.concurrency import run_in_threadpool

from app.core.config import Settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Raised when the payment processor rejects or fails a request."""


class PaymentCardError(PaymentGatewayError):
    """Raised for user-actionable card problems."""


class WebhookSignatureError(Exception):
    """Raised when a webhook payload fails signature verification."""


class PaymentGateway(Protocol):
    """Operations the checkout and webhook flows need from the processor."""

    publishable_key: str

    async def create_checkout_session(self, params: dict[str, Any]) -> str:
        """Create an embedded checkout session and return its client secret."""

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify webhook signature and return the decoded event."""


class StripeGateway:
    """Payment gateway backed by the Stripe SDK."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.publishable_key = settings.stripe_publishable_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._client: stripe.StripeClient | None = None

    @property
    def client(self) -> stripe.StripeClient:
        # Created on first use.
        if self._client is None:
            self._client = stripe.StripeClient(
                api_key=self.settings.stripe_secret_key,
                http_client=stripe.RequestsClient(timeout=self.settings.request_timeout_seconds),
                max_network_retries=0,
            )
        return self._client

    def _create_session(self, params: dict[str, Any]) -> Any:
        return self.client.checkout.sessions.create(params=params)

    async def create_checkout_session(self, params: dict[str, Any]) -> str:
        try:
            session = await run_in_threadpool(self._create_session, params)
        except stripe.CardError as exc:
            raise PaymentCardError(exc.user_message or str(exc)) from exc
        except stripe.StripeError as exc:
            logger.error("Stripe session creation failed: %s", exc)
            raise PaymentGatewayError(str(exc)) from exc

        client_secret = session.client_secret
        if not client_secret:
            raise PaymentGatewayError("Stripe session has no client secret")
        return client_secret

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            raise WebhookSignatureError(str(exc)) from exc
        return event.to_dict()


def get_payment_gateway(request: Request) -> PaymentGateway:
    """FastAPI dependency returning the shared payment gateway."""
    return request.app.state.payment_gateway
