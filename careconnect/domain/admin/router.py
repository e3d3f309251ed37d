"""Admin router - dashboard, moderation and subscription management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import AdminUser
from ...services.storage import PhotoStorage, get_photo_storage
from ..billing.router import get_subscription_service
from ..billing.schemas import (
    GrantAccessRequest,
    PlanResponse,
    PlanUpdate,
    ProviderSubscriptionResponse,
    StartTrialRequest,
    SyncAllResponse,
    SyncRequest,
    SyncResult,
    TrialReminderResponse,
)
from ..billing.subscription_service import SubscriptionService
from ..bookings.repository import BookingRepository
from ..bookings.schemas import BookingResponse
from ..bookings.service import BookingService
from ..care_seekers.repository import CareSeekerRepository
from ..care_seekers.schemas import CareSeekerResponse
from ..contact.schemas import ContactResponse, ContactStatusUpdate
from ..contact.service import ContactService
from ..messaging.schemas import (
    ConversationSummary,
    FlagMessageRequest,
    MessageCreate,
    MessageResponse,
)
from ..messaging.service import MessagingService
from ..providers.repository import ProviderRepository
from ..providers.schemas import AdminProviderUpdate, DeletePhotoRequest, PhotoResponse, ProviderPrivate
from ..providers.service import ProviderService
from .schemas import BatchGeocodeResponse, CustomEmailRequest, DashboardStats
from .service import BATCH_GEOCODE_LIMIT, AdminService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


def get_provider_service(db: Session = Depends(get_db)) -> ProviderService:
    return ProviderService(db)


# ============================================================================
# DASHBOARD
# ============================================================================


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(service: AdminService = Depends(get_admin_service)):
    return service.get_stats()


# ============================================================================
# PROVIDERS
# ============================================================================


@router.get("/providers", response_model=list[ProviderPrivate])
async def list_providers(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return ProviderRepository.list_providers(db, status, search)


@router.get("/providers/{provider_id}", response_model=ProviderPrivate)
async def get_provider(
    provider_id: str, service: ProviderService = Depends(get_provider_service)
):
    return service.get_provider(provider_id)


@router.put("/providers/{provider_id}", response_model=ProviderPrivate)
async def update_provider(
    provider_id: str,
    data: AdminProviderUpdate,
    admin: AdminUser = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
):
    provider = service.get_provider(provider_id)
    logger.info(f"🛠️ Admin {admin.user_id} updating provider {provider_id}")
    return await service.update_profile(provider, data)


@router.delete("/providers/{provider_id}")
async def delete_provider(
    provider_id: str,
    admin: AdminUser = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
):
    provider = service.get_provider(provider_id)
    service.delete_provider(provider)
    logger.info(f"🗑️ Admin {admin.user_id} deleted provider {provider_id}")
    return {"message": "Provider deleted"}


@router.post("/providers/{provider_id}/photos", response_model=PhotoResponse)
async def upload_provider_photo(
    provider_id: str,
    file: UploadFile = File(...),
    service: ProviderService = Depends(get_provider_service),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    """Upload a listing photo on behalf of a provider"""
    provider = service.get_provider(provider_id)
    return await service.upload_photo(provider, file, storage)


@router.post("/providers/{provider_id}/photos/delete", response_model=PhotoResponse)
async def delete_provider_photo(
    provider_id: str,
    body: DeletePhotoRequest,
    service: ProviderService = Depends(get_provider_service),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    provider = service.get_provider(provider_id)
    return service.delete_photo(provider, body.photo_url, storage)


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================


@router.get("/subscriptions", response_model=list[ProviderSubscriptionResponse])
async def list_subscriptions(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    providers = ProviderRepository.list_providers(db)
    if status:
        providers = [p for p in providers if p.subscription_status == status]
    return providers


@router.post(
    "/providers/{provider_id}/subscription/grant", response_model=ProviderSubscriptionResponse
)
async def grant_access(
    provider_id: str,
    data: GrantAccessRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Manual activation (month, 3 months, year or lifetime)"""
    return service.grant_manual_access(provider_id, data.duration, data.plan)


@router.post(
    "/providers/{provider_id}/subscription/trial", response_model=ProviderSubscriptionResponse
)
async def start_trial(
    provider_id: str,
    data: StartTrialRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    return service.start_trial(provider_id, data.days)


@router.post(
    "/providers/{provider_id}/subscription/expire", response_model=ProviderSubscriptionResponse
)
async def expire_subscription(
    provider_id: str,
    service: SubscriptionService = Depends(get_subscription_service),
):
    return service.expire(provider_id)


@router.post("/providers/{provider_id}/subscription/sync", response_model=SyncResult)
async def sync_subscription(
    provider_id: str,
    data: SyncRequest = SyncRequest(),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Pull subscription state from Stripe (manual grants skipped unless forced)"""
    return service.sync_provider(provider_id, data.force)


@router.post("/subscriptions/sync-all", response_model=SyncAllResponse)
async def sync_all_subscriptions(
    data: SyncRequest = SyncRequest(),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return service.sync_all(data.force)


@router.post("/trial-reminders", response_model=TrialReminderResponse)
async def send_trial_reminders(
    service: SubscriptionService = Depends(get_subscription_service),
):
    return await service.send_trial_reminders()


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(service: SubscriptionService = Depends(get_subscription_service)):
    return service.list_plans()


@router.put("/plans/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: str,
    data: PlanUpdate,
    service: SubscriptionService = Depends(get_subscription_service),
):
    return service.update_plan(plan_id, data)


# ============================================================================
# BOOKINGS, CARE SEEKERS, CONTACT
# ============================================================================


@router.get("/bookings", response_model=list[BookingResponse])
async def list_bookings(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    service = BookingService(db)
    return [service.to_response(b) for b in BookingRepository.list_all(db, status)]


@router.get("/care-seekers", response_model=list[CareSeekerResponse])
async def list_care_seekers(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return CareSeekerRepository.list_all(db, status, search)


@router.get("/contact-submissions", response_model=list[ContactResponse])
async def list_contact_submissions(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return ContactService(db).list_submissions(status)


@router.patch("/contact-submissions/{submission_id}", response_model=ContactResponse)
async def update_contact_submission(
    submission_id: str,
    data: ContactStatusUpdate,
    db: Session = Depends(get_db),
):
    return ContactService(db).update_status(submission_id, data.status)


# ============================================================================
# MESSAGE MODERATION
# ============================================================================


@router.get("/conversations", response_model=list[ConversationSummary])
async def list_conversations(db: Session = Depends(get_db)):
    """All conversations with last message and unread customer count"""
    return MessagingService(db).list_all()


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageResponse])
async def get_conversation_messages(conversation_id: str, db: Session = Depends(get_db)):
    service = MessagingService(db)
    return service.read_messages(service.get_conversation(conversation_id), reader="support")


@router.post("/conversations/{conversation_id}/messages", response_model=MessageResponse)
async def post_support_message(
    conversation_id: str,
    data: MessageCreate,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = MessagingService(db)
    conversation = service.get_conversation(conversation_id)
    return await service.send_message(conversation, "support", admin.user_id, data.content)


@router.post("/messages/{message_id}/flag", response_model=MessageResponse)
async def flag_message(
    message_id: str,
    data: FlagMessageRequest,
    db: Session = Depends(get_db),
):
    return MessagingService(db).flag_message(message_id, data.is_flagged)


# ============================================================================
# OUTREACH & MAINTENANCE
# ============================================================================


@router.post("/emails/custom")
async def send_custom_email(
    data: CustomEmailRequest, service: AdminService = Depends(get_admin_service)
):
    return await service.send_custom_email(data)


@router.post("/geocode/batch", response_model=BatchGeocodeResponse)
async def batch_geocode(
    limit: int = Query(BATCH_GEOCODE_LIMIT, ge=1, le=BATCH_GEOCODE_LIMIT),
    service: AdminService = Depends(get_admin_service),
):
    """Geocode providers that have an address but no coordinates"""
    return await service.batch_geocode(limit)
