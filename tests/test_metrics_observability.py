from __future__ import annotations

from types import SimpleNamespace

import pytest
from fakes import BOOKINGS_SCHEMA, FakeCRMClient, FakeNotifier, make_settings
from fastapi import Request, Response
from prometheus_client import REGISTRY

import app.main as main_module
from app.core.metrics import build_metrics_response, instrument_http_request
from app.modules.booking.repository import BookingRepository
from app.modules.webhooks.service import PaymentWebhookService


def _make_request(path: str, route_path: str | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": [],
        "client": ("127.0.0.1", 12345),
        "scheme": "http",
        "server": ("testserver", 80),
        "query_string": b"",
    }
    if route_path is not None:
        scope["route"] = SimpleNamespace(path=route_path)
    return Request(scope)


async def _no_content(_: Request) -> Response:
    return Response(status_code=204)


@pytest.mark.asyncio
async def test_http_metrics_use_route_template() -> None:
    await instrument_http_request(_make_request("/api/health", route_path="/api/health"), _no_content)

    payload = build_metrics_response().body.decode("utf-8")
    assert "workshop_booking_http_requests_total" in payload
    assert 'path="/api/health"' in payload
    assert 'status_code="204"' in payload


@pytest.mark.asyncio
async def test_unmatched_paths_share_one_label() -> None:
    await instrument_http_request(_make_request("/wp-login.php"), _no_content)

    payload = build_metrics_response().body.decode("utf-8")
    assert 'path="<unmatched>"' in payload
    assert "wp-login" not in payload


@pytest.mark.asyncio
async def test_metrics_scrape_is_not_counted() -> None:
    labels = {"method": "GET", "path": "/metrics", "status_code": "204"}
    before = REGISTRY.get_sample_value("workshop_booking_http_requests_total", labels)

    await instrument_http_request(_make_request("/metrics", route_path="/metrics"), _no_content)

    assert REGISTRY.get_sample_value("workshop_booking_http_requests_total", labels) == before


@pytest.mark.asyncio
async def test_requests_are_access_logged(caplog: pytest.LogCaptureFixture) -> None:
    async def _created(_: Request) -> Response:
        return Response(status_code=201)

    with caplog.at_level("INFO", logger="app.access"):
        await instrument_http_request(_make_request("/api/bookings", route_path="/api/bookings"), _created)

    assert any("GET /api/bookings 201" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_webhook_outcomes_are_counted() -> None:
    crm = FakeCRMClient()
    service = PaymentWebhookService(BookingRepository(crm, make_settings()), FakeNotifier())
    crm.add_record(BOOKINGS_SCHEMA, {"id": "BK-M-1", "payment_status": "paid"})

    await service.handle_event(
        {"type": "checkout.session.expired", "data": {"object": {"metadata": {"bookingId": "BK-M-1"}}}},
    )

    payload = build_metrics_response().body.decode("utf-8")
    assert "workshop_booking_webhook_events_total" in payload
    assert 'event_type="checkout.session.expired",outcome="ignored"' in payload


@pytest.mark.asyncio
async def test_metrics_endpoint_exposes_prometheus_payload() -> None:
    response = await main_module.metrics_endpoint(_make_request("/metrics"))
    payload = response.body.decode("utf-8")

    assert response.status_code == 200
    assert "workshop_booking_http_requests_total" in payload


@pytest.mark.asyncio
async def test_healthcheck_reports_ok() -> None:
    response = await main_module.healthcheck()

    assert response.success is True
    assert response.data["status"] == "ok"
    assert "timestamp" in response.data
