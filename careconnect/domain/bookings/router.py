"""Booking router - FastAPI endpoints for booking requests"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_provider_with_access
from ...database import get_db
from ...models import Provider
from ...rate_limiter import create_rate_limiter
from ...shared.validators import validate_email
from .schemas import BookingCreate, BookingCreatedResponse, BookingResponse, BookingStatusUpdate
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])

rate_limit_booking = create_rate_limiter(
    limit=10, window_seconds=3600, key_prefix="booking_create", use_ip=True
)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.post("", response_model=BookingCreatedResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(rate_limit_booking),
):
    """Public booking request; returns the id for the confirmation page"""
    booking = await service.create_booking(data)
    return BookingCreatedResponse(
        id=booking.id,
        status=booking.status,
        message="Booking request sent. The provider will contact you to confirm.",
    )


@router.get("", response_model=list[BookingResponse])
async def get_bookings_by_email(
    email: str = Query(...),
    service: BookingService = Depends(get_booking_service),
):
    """A care seeker's bookings"""
    try:
        email = validate_email(email)
    except ValueError:
        return []
    return [service.to_response(b) for b in service.get_bookings_for_email(email)]


@router.get("/provider", response_model=list[BookingResponse])
async def get_provider_bookings(
    status: Optional[str] = Query(None),
    provider: Provider = Depends(get_provider_with_access),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings for the current provider"""
    return [service.to_response(b) for b in service.get_provider_bookings(provider, status)]


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: str,
    data: BookingStatusUpdate,
    provider: Provider = Depends(get_provider_with_access),
    service: BookingService = Depends(get_booking_service),
):
    return service.to_response(service.update_status(provider, booking_id, data.status))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """Booking details for the confirmation page"""
    return service.to_response(service.get_booking(booking_id))
