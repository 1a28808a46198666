"""Checkout API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from app.modules.checkout.schemas import CheckoutSessionRead, CheckoutSessionRequest
from app.modules.checkout.service import CheckoutService, get_checkout_service
from app.shared.exceptions import CheckoutValidationException
from app.shared.responses import ApiResponse, build_response

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/session", response_model=ApiResponse[CheckoutSessionRead])
async def create_checkout_session(
    request: Request,
    service: CheckoutService = Depends(get_checkout_service),
) -> ApiResponse[CheckoutSessionRead]:
    """Create embedded checkout session."""
    try:
        body = await request.json()
    except ValueError as exc:
        # Malformed JSON and bodies that are not UTF-8.
        raise CheckoutValidationException("Invalid request") from exc

    try:
        payload = CheckoutSessionRequest.model_validate(body)
    except ValidationError as exc:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        raise CheckoutValidationException(message) from exc

    session = await service.create_session(payload)
    return build_response(session)
