from __future__ import annotations

import pytest
from fakes import FakePaymentGateway
from pydantic import ValidationError

from app.core.config import Settings
from app.modules.checkout.schemas import CheckoutHandoff, CheckoutSessionRequest
from app.modules.checkout.service import (
    CheckoutService,
    build_checkout_url,
    build_session_params,
    format_amount,
)
from app.shared.exceptions import CardException, SessionCreateException


def _request(**overrides: object) -> CheckoutSessionRequest:
    payload = {
        "bookingId": "BK-ABC-123456",
        "customerEmail": "jane@example.com",
        "customerName": "Jane Smith",
        "priceId": "price_123",
        "studentName": "Tom Smith",
        "offeringId": "rec-1",
        "offeringName": "GCSE Maths Masterclass",
    }
    payload.update(overrides)
    return CheckoutSessionRequest.model_validate(payload)


@pytest.mark.parametrize(("price", "expected"), [(49.0, "49"), (49.5, "49.5"), (0, "0")])
def test_format_amount(price: float, expected: str) -> None:
    assert format_amount(price) == expected


def test_checkout_url_encodes_handoff_fields() -> None:
    handoff = CheckoutHandoff(
        booking_id="BK-ABC-123456",
        price_id="price_123",
        parent_name="Jane Smith",
        parent_email="jane+kids@example.com",
        parent_phone="+447700900123",
        student_name="Tom Smith",
        student_email="tom@example.com",
        offering_id="rec-1",
        offering_name="GCSE Maths & Stats",
        subject="Maths",
        workshop_date="2099-03-14",
        session_time="10:00-13:00",
        year_group="gcse",
        zoom_link="https://zoom.example.com/j/1?pwd=x",
        price=49.0,
    )

    url = build_checkout_url("https://book.example.com/checkout", handoff)

    assert url.startswith("https://book.example.com/checkout?price_id=price_123&booking_id=BK-ABC-123456&")
    assert "email=jane%2Bkids%40example.com" in url
    assert "phone=%2B447700900123" in url
    assert "offering_name=GCSE+Maths+%26+Stats" in url
    assert url.endswith("&amount=49")


def test_session_params_with_price_reference(settings: Settings) -> None:
    params = build_session_params(_request(), settings)

    assert params["ui_mode"] == "embedded"
    assert params["mode"] == "payment"
    assert params["customer_email"] == "jane@example.com"
    assert params["line_items"] == [{"price": "price_123", "quantity": 1}]
    assert params["metadata"]["bookingId"] == "BK-ABC-123456"
    assert params["metadata"]["studentName"] == "Tom Smith"
    assert params["metadata"]["offeringZoomLink"] == ""
    assert params["return_url"] == (
        "https://book.example.com/success?booking_id=BK-ABC-123456&session_id={CHECKOUT_SESSION_ID}"
    )


def test_session_params_with_inline_amount(settings: Settings) -> None:
    params = build_session_params(
        _request(priceId=None, amount=4900, description="GCSE Maths Masterclass"),
        settings,
    )

    assert params["line_items"] == [
        {
            "price_data": {
                "currency": "gbp",
                "product_data": {
                    "name": "GCSE Maths Masterclass",
                    "description": "Booking ID: BK-ABC-123456",
                },
                "unit_amount": 4900,
            },
            "quantity": 1,
        },
    ]


def test_request_needs_price_or_amount_with_description() -> None:
    with pytest.raises(ValidationError) as exc:
        _request(priceId=None, amount=4900)
    assert "Either priceId or amount and description are required" in str(exc.value)


def test_request_rejects_non_positive_amount() -> None:
    with pytest.raises(ValidationError):
        _request(priceId=None, amount=0, description="Workshop")


@pytest.mark.asyncio
async def test_create_session_returns_secret_and_publishable_key(
    gateway: FakePaymentGateway,
    settings: Settings,
) -> None:
    session = await CheckoutService(gateway, settings).create_session(_request())

    assert session.client_secret == "cs_secret_1"
    assert session.publishable_key == "pk_test_123"
    assert gateway.sessions[0]["metadata"]["bookingId"] == "BK-ABC-123456"


@pytest.mark.asyncio
async def test_card_error_passes_message_through(gateway: FakePaymentGateway, settings: Settings) -> None:
    gateway.fail_with_card_error("Your card has insufficient funds.")

    with pytest.raises(CardException) as exc:
        await CheckoutService(gateway, settings).create_session(_request())
    assert exc.value.code == "CARD_ERROR"
    assert exc.value.message == "Your card has insufficient funds."


@pytest.mark.asyncio
async def test_gateway_failure_is_generic_session_error(gateway: FakePaymentGateway, settings: Settings) -> None:
    gateway.fail_with_gateway_error()

    with pytest.raises(SessionCreateException) as exc:
        await CheckoutService(gateway, settings).create_session(_request())
    assert exc.value.status_code == 500
    assert exc.value.message == "Failed to create checkout session"
