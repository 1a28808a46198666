"""Booking API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.modules.booking.schemas import BookingCreated, BookingCreateRequest
from app.modules.booking.service import BookingService, get_booking_service
from app.shared.responses import ApiResponse, build_response

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=ApiResponse[BookingCreated])
async def create_booking(
    payload: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
) -> ApiResponse[BookingCreated]:
    """Create booking (or reuse a pending one) and return the checkout link."""
    booking = await service.create_booking(payload)
    return build_response(booking)
