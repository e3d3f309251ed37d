"""Admin service - dashboard stats, outreach email and batch geocoding"""

import asyncio
import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import EmailNotConfiguredError, send_custom_email
from ..bookings.repository import BookingRepository
from ..care_seekers.repository import CareSeekerRepository
from ..contact.repository import ContactRepository
from ..providers.repository import ProviderRepository
from ..providers.service import ProviderService
from .schemas import CustomEmailRequest

logger = logging.getLogger(__name__)

BATCH_GEOCODE_LIMIT = 50
BATCH_GEOCODE_DELAY_SECONDS = 0.2


class AdminService:
    """Service layer for the admin dashboard"""

    def __init__(self, db: Session):
        self.db = db
        self.providers = ProviderRepository()

    def get_stats(self) -> dict:
        return {
            "total_bookings": BookingRepository.count(self.db),
            "pending_bookings": BookingRepository.count(self.db, "pending"),
            "total_providers": ProviderRepository.count(self.db),
            "active_providers": ProviderRepository.count(self.db, "active"),
            "total_contact_submissions": ContactRepository.count(self.db),
            "new_contact_submissions": ContactRepository.count(self.db, "new"),
            "total_care_seekers": CareSeekerRepository.count(self.db),
            "active_care_seekers": CareSeekerRepository.count(self.db, "active"),
        }

    async def send_custom_email(self, data: CustomEmailRequest) -> dict:
        try:
            result = await send_custom_email(data.to, data.subject, data.message, data.provider_name)
        except EmailNotConfiguredError as e:
            raise HTTPException(status_code=503, detail="Email service not configured") from e
        except Exception as e:
            logger.error(f"❌ Custom email to {data.to} failed: {e}")
            raise HTTPException(status_code=502, detail=f"Failed to send email: {e}") from e

        logger.info(f"📧 Custom email sent to {data.to}")
        return {"success": True, "id": result.get("id") if isinstance(result, dict) else None}

    async def batch_geocode(self, limit: int = BATCH_GEOCODE_LIMIT) -> dict:
        """Geocode providers lacking coordinates, pausing between lookups"""
        providers = self.providers.get_missing_coordinates(self.db, min(limit, BATCH_GEOCODE_LIMIT))
        geocoder = ProviderService(self.db)
        failures = []

        for index, provider in enumerate(providers):
            if index:
                await asyncio.sleep(BATCH_GEOCODE_DELAY_SECONDS)
            updated = await geocoder.geocode_provider(provider)
            if updated is None:
                failures.append(
                    {
                        "provider_id": provider.id,
                        "business_name": provider.business_name,
                        "reason": "No geocoding result",
                    }
                )

        logger.info(
            f"📍 Batch geocode: {len(providers) - len(failures)}/{len(providers)} providers updated"
        )
        return {
            "total": len(providers),
            "succeeded": len(providers) - len(failures),
            "failed": len(failures),
            "failures": failures,
        }
