"""Offerings API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError

from app.modules.offerings.schemas import OfferingRead, OfferingsQuery
from app.modules.offerings.service import OfferingsService, get_offerings_service
from app.shared.exceptions import ValidationException, format_validation_errors
from app.shared.responses import ApiResponse, build_response

router = APIRouter(prefix="/offerings", tags=["offerings"])


@router.get("", response_model=ApiResponse[list[OfferingRead]])
async def list_offerings(
    year_group: str | None = Query(default=None, alias="yearGroup"),
    service: OfferingsService = Depends(get_offerings_service),
) -> ApiResponse[list[OfferingRead]]:
    """List bookable offerings for a year group."""
    try:
        query = OfferingsQuery(year_group=year_group)
    except ValidationError as exc:
        raise ValidationException(format_validation_errors(exc)) from exc
    offerings = await service.list_offerings(query.year_group.value)
    return build_response(offerings)
