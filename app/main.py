"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.crm import HighLevelClient
from app.core.metrics import build_metrics_response, instrument_http_request
from app.core.payments import StripeGateway
from app.modules.booking.router import router as booking_router
from app.modules.checkout.router import router as checkout_router
from app.modules.notifications.service import WebhookBookingNotifier
from app.modules.offerings.router import router as offerings_router
from app.modules.webhooks.router import router as webhooks_router
from app.shared.exceptions import register_exception_handlers
from app.shared.responses import ApiResponse, build_response
from app.shared.utils import utc_now

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("Starting %s", settings.app_name)

    crm_client = HighLevelClient(settings)
    booking_notifier = WebhookBookingNotifier(settings)
    app.state.crm_client = crm_client
    app.state.payment_gateway = StripeGateway(settings)
    app.state.booking_notifier = booking_notifier
    if not settings.ghl_booking_webhook_url:
        logger.info("GHL_BOOKING_WEBHOOK_URL not set, booking notifications disabled")

    yield

    logger.info("Shutting down %s", settings.app_name)
    await crm_client.aclose()
    await booking_notifier.aclose()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)
app.middleware("http")(instrument_http_request)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    max_age=86400,
)

register_exception_handlers(app)

app.include_router(offerings_router, prefix=settings.api_prefix)
app.include_router(booking_router, prefix=settings.api_prefix)
app.include_router(checkout_router, prefix=settings.api_prefix)
app.include_router(webhooks_router, prefix=settings.api_prefix)


@app.get(f"{settings.api_prefix}/health", response_model=ApiResponse[dict[str, str]])
async def healthcheck() -> ApiResponse[dict[str, str]]:
    """Liveness check endpoint."""
    return build_response({"status": "ok", "timestamp": utc_now().isoformat()})


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint(_: Request) -> Response:
    """Prometheus metrics endpoint."""
    return build_metrics_response()
