"""Booking service - Business logic for booking requests"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_booking_request_confirmation, send_new_booking_notification
from ...models import Booking, Provider
from ..providers.repository import ProviderRepository
from .repository import BookingRepository
from .schemas import BookingCreate, BookingResponse

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.providers = ProviderRepository()

    def to_response(self, booking: Booking) -> BookingResponse:
        response = BookingResponse.model_validate(booking)
        if booking.provider is not None:
            response.provider_name = booking.provider.business_name
        return response

    async def create_booking(self, data: BookingCreate) -> Booking:
        """
        Store a pending booking request and notify both parties.
        Email failures are logged and never fail the request.
        """
        provider = self.providers.get_by_id(self.db, data.provider_id)
        if not provider or provider.status != "active":
            raise HTTPException(status_code=404, detail="Provider not found")

        booking = self.repo.create(
            self.db,
            provider_id=provider.id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            date=data.date,
            time=data.time,
            notes=data.notes,
            status="pending",
        )
        logger.info(f"✅ Booking {booking.id} requested for provider {provider.id}")

        await self._notify_new_booking(provider, booking)
        return booking

    async def _notify_new_booking(self, provider: Provider, booking: Booking) -> None:
        booking_date = booking.date.strftime("%A, %B %d, %Y")

        if provider.contact_email:
            await send_new_booking_notification(
                provider.contact_email,
                provider.business_name,
                booking.customer_name,
                booking.customer_email,
                booking.customer_phone,
                booking_date,
                booking.time,
                booking.notes,
            )
        else:
            logger.warning(f"⚠️ Provider {provider.id} has no contact email, booking email skipped")

        await send_booking_request_confirmation(
            booking.customer_email,
            booking.customer_name,
            provider.business_name,
            booking_date,
            booking.time,
        )

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.repo.get_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def get_bookings_for_email(self, email: str) -> list[Booking]:
        return self.repo.get_by_email(self.db, email)

    def get_provider_bookings(self, provider: Provider, status: Optional[str] = None) -> list[Booking]:
        return self.repo.get_for_provider(self.db, provider.id, status)

    def update_status(self, provider: Provider, booking_id: str, status: str) -> Booking:
        """Providers can only update their own bookings"""
        booking = self.get_booking(booking_id)
        if booking.provider_id != provider.id:
            raise HTTPException(status_code=404, detail="Booking not found")
        booking = self.repo.update_status(self.db, booking, status)
        logger.info(f"📝 Booking {booking.id} marked {status}")
        return booking
