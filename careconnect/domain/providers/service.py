"""Provider service - Business logic for listings and provider self-service"""

import logging
from typing import Callable, Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy.orm import Session

from ...config import STRIPE_TRIAL_DAYS
from ...models import Provider
from ...plan_limits import get_photo_limit, start_trial
from ...services.geocoding import geocode_address
from ...services.storage import PhotoStorage, validate_image_upload
from ...shared.dates import utcnow
from .repository import ProviderRepository
from .schemas import AvailabilityUpdate, ProviderCreate, ProviderListItem, ProviderUpdate
from .search import SearchFilters, search_providers

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("address", "city", "state", "zip_code")


class ProviderService:
    """Service layer for provider listings"""

    def __init__(self, db: Session, now: Callable = utcnow):
        self.db = db
        self.repo = ProviderRepository()
        self.now = now

    # ========================================================================
    # PUBLIC LISTINGS
    # ========================================================================

    def search(self, filters: SearchFilters) -> list[ProviderListItem]:
        """Search active listings"""
        hits = search_providers(self.repo.get_active_listings(self.db), filters)
        logger.debug(f"🔎 Provider search returned {len(hits)} listings")
        return [
            ProviderListItem.model_validate(hit.provider).model_copy(
                update={"distance": hit.distance}
            )
            for hit in hits
        ]

    def get_listing(self, provider_id: str) -> Provider:
        """A single public listing; unlisted providers are not found"""
        provider = self.repo.get_by_id(self.db, provider_id)
        if not provider or provider.status != "active":
            raise HTTPException(status_code=404, detail="Provider not found")
        return provider

    def get_provider(self, provider_id: str) -> Provider:
        provider = self.repo.get_by_id(self.db, provider_id)
        if not provider:
            raise HTTPException(status_code=404, detail="Provider not found")
        return provider

    def delete_provider(self, provider: Provider) -> None:
        """Delete a listing with its bookings, conversations and history"""
        self.repo.delete(self.db, provider)

    # ========================================================================
    # PROFILE
    # ========================================================================

    async def create_profile(self, data: ProviderCreate, user_id: str) -> Provider:
        """Register a provider listing for the current user and start the free trial"""
        if self.repo.get_by_user_id(self.db, user_id):
            raise HTTPException(status_code=409, detail="Provider profile already exists")

        fields = data.model_dump()
        geo = await geocode_address(data.address, data.city, data.state, data.zip_code)
        if geo:
            fields.update(
                latitude=geo.latitude,
                longitude=geo.longitude,
                formatted_address=geo.formatted_address,
            )

        provider = Provider(user_id=user_id, status="pending", **fields)
        start_trial(provider, self.now(), STRIPE_TRIAL_DAYS)
        self.db.add(provider)
        self.db.commit()
        self.db.refresh(provider)
        logger.info(f"✅ Created provider {provider.id} for user {user_id}")
        return provider

    async def update_profile(self, provider: Provider, data: ProviderUpdate) -> Provider:
        """
        Update profile fields. Address changes are geocoded before saving;
        if geocoding fails the previous coordinates are kept.
        """
        updates = data.model_dump(exclude_unset=True)
        if "business_name" in updates and not updates["business_name"]:
            updates.pop("business_name")

        address_changed = any(
            key in updates and updates[key] != getattr(provider, key) for key in ADDRESS_FIELDS
        )
        if address_changed:
            merged = {key: updates.get(key, getattr(provider, key)) for key in ADDRESS_FIELDS}
            geo = await geocode_address(
                merged["address"], merged["city"], merged["state"], merged["zip_code"]
            )
            if geo:
                updates.update(
                    latitude=geo.latitude,
                    longitude=geo.longitude,
                    formatted_address=geo.formatted_address,
                )
                logger.info(f"📍 Geocoded new address for provider {provider.id}")
            else:
                logger.warning(
                    f"⚠️ Geocoding failed for provider {provider.id}, keeping previous coordinates"
                )

        return self.repo.update(self.db, provider, **updates)

    def update_availability(self, provider: Provider, data: AvailabilityUpdate) -> Provider:
        updates = data.model_dump(exclude_none=True)
        logger.info(
            f"🛏️ Provider {provider.id} capacity {data.current_capacity}/{data.total_capacity}"
        )
        return self.repo.update(self.db, provider, **updates)

    # ========================================================================
    # PHOTOS
    # ========================================================================

    def photo_limit(self, provider: Provider) -> int:
        if provider.plan is not None:
            return provider.plan.max_photos
        return get_photo_limit(None)

    async def upload_photo(
        self, provider: Provider, file: UploadFile, storage: PhotoStorage
    ) -> dict:
        """Validate and store a listing photo, enforcing the plan's photo limit"""
        contents = await file.read()
        extension = validate_image_upload(file.content_type, file.filename, len(contents))

        photos = list(provider.photo_urls or [])
        max_photos = self.photo_limit(provider)
        if len(photos) >= max_photos:
            raise HTTPException(
                status_code=403,
                detail=f"Photo limit reached ({max_photos} photos). Upgrade your plan to add more.",
            )

        url = storage.upload(provider.id, contents, file.content_type, extension)
        photos.append(url)
        updates = {"photo_urls": photos}
        if not provider.primary_photo_url:
            updates["primary_photo_url"] = url

        provider = self.repo.update(self.db, provider, **updates)
        return self._photo_response(provider, url)

    def delete_photo(self, provider: Provider, photo_url: str, storage: PhotoStorage) -> dict:
        photos = list(provider.photo_urls or [])
        if photo_url not in photos:
            raise HTTPException(status_code=404, detail="Photo not found")

        photos.remove(photo_url)
        updates = {"photo_urls": photos}
        if provider.primary_photo_url == photo_url:
            updates["primary_photo_url"] = photos[0] if photos else None

        storage.delete(photo_url)
        provider = self.repo.update(self.db, provider, **updates)
        return self._photo_response(provider, photo_url)

    def set_primary_photo(self, provider: Provider, photo_url: str) -> dict:
        if photo_url not in (provider.photo_urls or []):
            raise HTTPException(status_code=404, detail="Photo not found")
        provider = self.repo.update(self.db, provider, primary_photo_url=photo_url)
        return self._photo_response(provider, photo_url)

    def _photo_response(self, provider: Provider, photo_url: str) -> dict:
        return {
            "photo_url": photo_url,
            "photo_urls": list(provider.photo_urls or []),
            "primary_photo_url": provider.primary_photo_url,
            "max_photos": self.photo_limit(provider),
        }

    # ========================================================================
    # GEOCODING
    # ========================================================================

    async def geocode_provider(self, provider: Provider) -> Optional[Provider]:
        """Geocode and store one provider's coordinates; None when the lookup fails"""
        geo = await geocode_address(
            provider.address, provider.city, provider.state, provider.zip_code
        )
        if not geo:
            logger.warning(f"⚠️ Could not geocode provider {provider.id}")
            return None
        return self.repo.update(
            self.db,
            provider,
            latitude=geo.latitude,
            longitude=geo.longitude,
            formatted_address=geo.formatted_address,
        )
