"""Downstream booking notification dispatch."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from fastapi import Request

from app.core.config import Settings
from app.modules.notifications.schemas import BookingNotification

logger = logging.getLogger(__name__)


class NotificationDeliveryError(Exception):
    """Raised when the downstream automation did not accept the notification."""


class BookingNotifier(Protocol):
    """Delivers paid-booking notifications downstream."""

    async def send(self, notification: BookingNotification) -> None:
        """Deliver notification or raise NotificationDeliveryError."""


class WebhookBookingNotifier:
    """Posts booking notifications to the CRM workflow webhook."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None) -> None:
        self.url = settings.ghl_booking_webhook_url
        self.http = http or httpx.AsyncClient(timeout=settings.request_timeout_seconds)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def send(self, notification: BookingNotification) -> None:
        if not self.url:
            return

        booking_id = notification.booking.booking_id
        try:
            response = await self.http.post(
                self.url,
                json=notification.model_dump(mode="json", by_alias=True),
            )
        except httpx.HTTPError as exc:
            raise NotificationDeliveryError(
                f"Booking webhook request failed for {booking_id}: {exc}",
            ) from exc

        if not response.is_success:
            raise NotificationDeliveryError(
                f"Booking webhook returned {response.status_code}: {response.text[:500]}",
            )
        logger.info("Triggered booking workflow for booking %s", booking_id)


def get_booking_notifier(request: Request) -> BookingNotifier:
    """FastAPI dependency returning the shared notifier."""
    return request.app.state.booking_notifier
