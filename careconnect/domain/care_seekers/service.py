"""Care seeker service - profiles, saved providers and provider inquiries"""

import logging
from typing import Callable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...email_service import send_new_inquiry_notification
from ...models import CareSeeker, Provider, ProviderInquiry, SavedProvider
from ...shared.dates import utcnow
from ..providers.repository import ProviderRepository
from .repository import CareSeekerRepository
from .schemas import (
    CareSeekerCreate,
    CareSeekerUpdate,
    InquiryCreate,
    InquiryResponse,
    SavedProviderUpdate,
)

logger = logging.getLogger(__name__)


class CareSeekerService:
    """Service layer for care seekers and inquiries"""

    def __init__(self, db: Session, now: Callable = utcnow):
        self.db = db
        self.repo = CareSeekerRepository()
        self.providers = ProviderRepository()
        self.now = now

    # ========================================================================
    # PROFILE
    # ========================================================================

    def create_profile(self, data: CareSeekerCreate, user: CurrentUser) -> CareSeeker:
        if self.repo.get_by_user_id(self.db, user.user_id):
            raise HTTPException(
                status_code=409, detail="A care seeker account already exists for this user."
            )

        email = data.email or (user.email or "").lower()
        if not email:
            raise HTTPException(status_code=400, detail="Email is required")

        fields = data.model_dump(exclude={"email"})
        care_seeker = self.repo.create(
            self.db, user_id=user.user_id, email=email, status="active", **fields
        )
        logger.info(f"✅ Created care seeker {care_seeker.id}")
        return care_seeker

    def update_profile(self, care_seeker: CareSeeker, data: CareSeekerUpdate) -> CareSeeker:
        return self.repo.update(self.db, care_seeker, **data.model_dump(exclude_unset=True))

    # ========================================================================
    # SAVED PROVIDERS
    # ========================================================================

    def save_provider(self, care_seeker: CareSeeker, provider_id: str) -> SavedProvider:
        """Save a listed provider; saving twice returns the existing entry"""
        provider = self.providers.get_by_id(self.db, provider_id)
        if not provider or provider.status != "active":
            raise HTTPException(status_code=404, detail="Provider not found")

        saved = self.repo.get_saved(self.db, care_seeker.id, provider.id)
        if saved:
            return saved

        saved = self.repo.add_saved(self.db, care_seeker_id=care_seeker.id, provider_id=provider.id)
        logger.info(f"⭐ Care seeker {care_seeker.id} saved provider {provider.id}")
        return saved

    def _own_saved(self, care_seeker: CareSeeker, provider_id: str) -> SavedProvider:
        saved = self.repo.get_saved(self.db, care_seeker.id, provider_id)
        if not saved:
            raise HTTPException(status_code=404, detail="Provider is not saved")
        return saved

    def update_saved_notes(
        self, care_seeker: CareSeeker, provider_id: str, data: SavedProviderUpdate
    ) -> SavedProvider:
        saved = self._own_saved(care_seeker, provider_id)
        return self.repo.update_saved(self.db, saved, notes=data.notes)

    def unsave_provider(self, care_seeker: CareSeeker, provider_id: str) -> None:
        self.repo.remove_saved(self.db, self._own_saved(care_seeker, provider_id))

    def list_saved(self, care_seeker: CareSeeker) -> list[SavedProvider]:
        return self.repo.list_saved(self.db, care_seeker.id)

    # ========================================================================
    # INQUIRIES
    # ========================================================================

    def to_response(self, inquiry: ProviderInquiry) -> InquiryResponse:
        response = InquiryResponse.model_validate(inquiry)
        if inquiry.provider is not None:
            response.provider_name = inquiry.provider.business_name
        if inquiry.care_seeker is not None:
            response.care_seeker_name = (
                f"{inquiry.care_seeker.first_name} {inquiry.care_seeker.last_name}"
            )
        return response

    async def send_inquiry(self, care_seeker: CareSeeker, data: InquiryCreate) -> ProviderInquiry:
        """One pending inquiry per care seeker and provider"""
        provider = self.providers.get_by_id(self.db, data.provider_id)
        if not provider or provider.status != "active":
            raise HTTPException(status_code=404, detail="Provider not found")

        if self.repo.get_pending_inquiry(self.db, care_seeker.id, provider.id):
            raise HTTPException(
                status_code=409,
                detail="You have already sent an inquiry to this provider that is pending response.",
            )

        inquiry = self.repo.create_inquiry(
            self.db,
            care_seeker_id=care_seeker.id,
            provider_id=provider.id,
            subject=data.subject,
            message=data.message,
            status="pending",
            is_read=False,
        )
        logger.info(f"📨 Inquiry {inquiry.id} sent to provider {provider.id}")

        await send_new_inquiry_notification(
            provider.contact_email,
            provider.business_name,
            f"{care_seeker.first_name} {care_seeker.last_name}",
            data.subject,
            data.message,
        )
        return inquiry

    def list_my_inquiries(
        self, care_seeker: CareSeeker, status: Optional[str] = None
    ) -> list[ProviderInquiry]:
        return self.repo.get_inquiries_for_care_seeker(self.db, care_seeker.id, status)

    def _own_inquiry(self, care_seeker: CareSeeker, inquiry_id: str) -> ProviderInquiry:
        inquiry = self.repo.get_inquiry(self.db, inquiry_id)
        if not inquiry or inquiry.care_seeker_id != care_seeker.id:
            raise HTTPException(status_code=404, detail="Inquiry not found")
        return inquiry

    def get_my_inquiry(self, care_seeker: CareSeeker, inquiry_id: str) -> ProviderInquiry:
        """Opening a responded inquiry marks the response seen"""
        inquiry = self._own_inquiry(care_seeker, inquiry_id)
        if inquiry.status == "responded" and not inquiry.is_read:
            inquiry = self.repo.update_inquiry(self.db, inquiry, is_read=True)
        return inquiry

    def archive_inquiry(self, care_seeker: CareSeeker, inquiry_id: str) -> ProviderInquiry:
        inquiry = self._own_inquiry(care_seeker, inquiry_id)
        return self.repo.update_inquiry(self.db, inquiry, status="archived")

    def delete_inquiry(self, care_seeker: CareSeeker, inquiry_id: str) -> None:
        inquiry = self._own_inquiry(care_seeker, inquiry_id)
        self.repo.delete_inquiry(self.db, inquiry)
        logger.info(f"🗑️ Inquiry {inquiry_id} deleted by care seeker {care_seeker.id}")

    # ========================================================================
    # PROVIDER SIDE
    # ========================================================================

    def list_provider_inquiries(
        self, provider: Provider, status: Optional[str] = None
    ) -> list[ProviderInquiry]:
        return self.repo.get_inquiries_for_provider(self.db, provider.id, status)

    def _provider_inquiry(self, provider: Provider, inquiry_id: str) -> ProviderInquiry:
        inquiry = self.repo.get_inquiry(self.db, inquiry_id)
        if not inquiry or inquiry.provider_id != provider.id:
            raise HTTPException(status_code=404, detail="Inquiry not found")
        return inquiry

    def mark_read(self, provider: Provider, inquiry_id: str) -> ProviderInquiry:
        inquiry = self._provider_inquiry(provider, inquiry_id)
        updates = {"is_read": True}
        if inquiry.status == "pending":
            updates["status"] = "read"
        return self.repo.update_inquiry(self.db, inquiry, **updates)

    def respond(self, provider: Provider, inquiry_id: str, response: str) -> ProviderInquiry:
        """Store the provider's reply; it shows as unread to the care seeker"""
        inquiry = self._provider_inquiry(provider, inquiry_id)
        if inquiry.status == "archived":
            raise HTTPException(status_code=400, detail="Inquiry has been archived")
        inquiry = self.repo.update_inquiry(
            self.db,
            inquiry,
            provider_response=response,
            responded_at=self.now(),
            status="responded",
            is_read=False,
        )
        logger.info(f"✅ Provider {provider.id} responded to inquiry {inquiry_id}")
        return inquiry
