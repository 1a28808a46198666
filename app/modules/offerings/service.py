"""Offering lookup and eligibility rules."""

from __future__ import annotations

import logging

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.crm import CRMClient, CRMError, get_crm_client
from app.core.enums import AvailabilityEnum
from app.modules.offerings.repository import OfferingsRepository
from app.modules.offerings.schemas import OfferingRead
from app.shared.exceptions import (
    FetchException,
    OfferingNoProductException,
    OfferingNotFoundException,
    OfferingPastException,
    OfferingUnavailableException,
)
from app.shared.utils import today_date_string

logger = logging.getLogger(__name__)

_UNLISTED_AVAILABILITY = (AvailabilityEnum.INACTIVE, AvailabilityEnum.FULL)


class OfferingsService:
    """Offering domain service."""

    def __init__(self, repository: OfferingsRepository) -> None:
        self.repository = repository

    async def list_offerings(self, year_group: str, today: str | None = None) -> list[OfferingRead]:
        """List bookable offerings for a year group in CRM update order."""
        today = today or today_date_string()
        try:
            offerings = await self.repository.list_by_year_group(year_group)
        except CRMError as exc:
            logger.error("Failed to fetch offerings for %s: %s", year_group, exc)
            raise FetchException("Failed to fetch offerings") from exc

        return [
            offering
            for offering in offerings
            if offering.availability not in _UNLISTED_AVAILABILITY
            and offering.workshop_date >= today
        ]

    async def get_bookable_offering(self, offering_id: str, today: str) -> OfferingRead:
        """Return offering if it can be booked today, else raise the matching error."""
        try:
            offering = await self.repository.get_offering_by_id(offering_id)
        except CRMError as exc:
            logger.error("Failed to fetch offering %s: %s", offering_id, exc)
            raise FetchException("Failed to fetch offering") from exc

        if offering is None:
            raise OfferingNotFoundException("Offering not found")
        # A past workshop is reported as past whatever its availability flag says.
        if offering.workshop_date < today:
            raise OfferingPastException("Workshop date has passed")
        if offering.availability == AvailabilityEnum.INACTIVE:
            raise OfferingUnavailableException("Workshop is no longer available")
        if offering.availability == AvailabilityEnum.FULL:
            raise OfferingUnavailableException("Workshop is full")
        if not offering.stripe_price_id:
            raise OfferingNoProductException("Offering not configured for payment")
        return offering


async def get_offerings_service(
    crm: CRMClient = Depends(get_crm_client),
    settings: Settings = Depends(get_settings),
) -> OfferingsService:
    """Dependency provider for offerings service."""
    return OfferingsService(repository=OfferingsRepository(crm, settings))
