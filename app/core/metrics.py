"""Prometheus metrics and access logging for the booking API."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from time import perf_counter

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

access_logger = logging.getLogger("app.access")

UNMATCHED_PATH_LABEL = "<unmatched>"
_UNTRACKED_PATHS = frozenset({"/metrics"})

HTTP_REQUESTS_TOTAL = Counter(
    "workshop_booking_http_requests_total",
    "HTTP requests served, by route template and status.",
    ["method", "path", "status_code"],
)

# Upper buckets cover the CRM and Stripe round trips made inside a request.
HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "workshop_booking_http_request_duration_seconds",
    "HTTP request latency in seconds, by route template.",
    ["method", "path"],
    buckets=(0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0, 30.0),
)

BOOKINGS_TOTAL = Counter(
    "workshop_booking_bookings_total",
    "Booking submissions by outcome (created, reused or an error code).",
    ["outcome"],
)

WEBHOOK_EVENTS_TOTAL = Counter(
    "workshop_booking_webhook_events_total",
    "Verified payment webhook events by type and outcome.",
    ["event_type", "outcome"],
)


def record_booking_outcome(outcome: str) -> None:
    BOOKINGS_TOTAL.labels(outcome=outcome.lower()).inc()


def record_webhook_event(event_type: str, outcome: str) -> None:
    WEBHOOK_EVENTS_TOTAL.labels(event_type=event_type or "unknown", outcome=outcome).inc()


def _route_template(request: Request) -> str:
    # Unmatched requests share one label.
    route_path = getattr(request.scope.get("route"), "path", None)
    return str(route_path) if route_path else UNMATCHED_PATH_LABEL


async def instrument_http_request(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Count, time and access-log each request."""
    if request.url.path in _UNTRACKED_PATHS:
        return await call_next(request)

    started_at = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        elapsed = perf_counter() - started_at
        method = request.method.upper()
        template = _route_template(request)

        HTTP_REQUESTS_TOTAL.labels(method=method, path=template, status_code=str(status_code)).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(method=method, path=template).observe(elapsed)
        access_logger.info("%s %s %s %dms", method, request.url.path, status_code, int(elapsed * 1000))


def build_metrics_response() -> Response:
    """Return metrics payload in Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
