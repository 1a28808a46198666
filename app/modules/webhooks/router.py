"""Payment webhook API router."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from app.core.payments import PaymentGateway, WebhookSignatureError, get_payment_gateway
from app.modules.webhooks.service import PaymentWebhookService, get_payment_webhook_service
from app.shared.exceptions import (
    WebhookSignatureInvalidException,
    WebhookSignatureMissingException,
)
from app.shared.responses import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/payment", response_model=ApiResponse[None], response_model_exclude_none=True)
@router.post("/stripe", response_model=ApiResponse[None], response_model_exclude_none=True)
async def handle_payment_webhook(
    request: Request,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    service: PaymentWebhookService = Depends(get_payment_webhook_service),
) -> ApiResponse[None]:
    """Verify and apply a payment processor event."""
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise WebhookSignatureMissingException("Missing Stripe signature")

    payload = await request.body()
    try:
        event = gateway.construct_event(payload, signature)
    except WebhookSignatureError as exc:
        logger.warning("Webhook signature verification failed: %s", exc)
        raise WebhookSignatureInvalidException("Invalid webhook signature") from exc

    await service.handle_event(event)
    return ApiResponse(success=True)
