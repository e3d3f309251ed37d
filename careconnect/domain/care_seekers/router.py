"""Care seeker router - profile, saved provider and inquiry endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_care_seeker, get_current_provider, get_current_user
from ...database import get_db
from ...models import CareSeeker, Provider
from .schemas import (
    CareSeekerCreate,
    CareSeekerResponse,
    CareSeekerUpdate,
    InquiryCreate,
    InquiryRespond,
    InquiryResponse,
    SavedProviderResponse,
    SavedProviderUpdate,
)
from .service import CareSeekerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/care-seekers", tags=["Care Seekers"])
inquiries_router = APIRouter(prefix="/inquiries", tags=["Inquiries"])


def get_care_seeker_service(db: Session = Depends(get_db)) -> CareSeekerService:
    """Dependency injection for CareSeekerService"""
    return CareSeekerService(db)


# ============================================================================
# PROFILE
# ============================================================================


@router.post("/me", response_model=CareSeekerResponse, status_code=201)
async def create_care_seeker_profile(
    data: CareSeekerCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.create_profile(data, current_user)


@router.get("/me", response_model=CareSeekerResponse)
async def get_care_seeker_profile(care_seeker: CareSeeker = Depends(get_current_care_seeker)):
    return care_seeker


@router.put("/me", response_model=CareSeekerResponse)
async def update_care_seeker_profile(
    data: CareSeekerUpdate,
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.update_profile(care_seeker, data)


# ============================================================================
# SAVED PROVIDERS
# ============================================================================


@router.get("/me/saved", response_model=list[SavedProviderResponse])
async def list_saved_providers(
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.list_saved(care_seeker)


@router.post("/me/saved/{provider_id}", response_model=SavedProviderResponse, status_code=201)
async def save_provider(
    provider_id: str,
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.save_provider(care_seeker, provider_id)


@router.put("/me/saved/{provider_id}", response_model=SavedProviderResponse)
async def update_saved_provider(
    provider_id: str,
    data: SavedProviderUpdate,
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.update_saved_notes(care_seeker, provider_id, data)


@router.delete("/me/saved/{provider_id}")
async def unsave_provider(
    provider_id: str,
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    service.unsave_provider(care_seeker, provider_id)
    return {"message": "Provider removed from saved"}


# ============================================================================
# PROVIDER INBOX
# ============================================================================


@inquiries_router.get("/provider", response_model=list[InquiryResponse])
async def list_provider_inquiries(
    status: Optional[str] = Query(None),
    provider: Provider = Depends(get_current_provider),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return [service.to_response(i) for i in service.list_provider_inquiries(provider, status)]


@inquiries_router.post("/provider/{inquiry_id}/read", response_model=InquiryResponse)
async def mark_inquiry_read(
    inquiry_id: str,
    provider: Provider = Depends(get_current_provider),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.to_response(service.mark_read(provider, inquiry_id))


@inquiries_router.post("/provider/{inquiry_id}/respond", response_model=InquiryResponse)
async def respond_to_inquiry(
    inquiry_id: str,
    data: InquiryRespond,
    provider: Provider = Depends(get_current_provider),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.to_response(service.respond(provider, inquiry_id, data.response))


# ============================================================================
# CARE SEEKER INQUIRIES
# ============================================================================


@inquiries_router.post("", response_model=InquiryResponse, status_code=201)
async def send_inquiry(
    data: InquiryCreate,
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    """Contact a provider; only one pending inquiry per provider"""
    return service.to_response(await service.send_inquiry(care_seeker, data))


@inquiries_router.get("", response_model=list[InquiryResponse])
async def list_my_inquiries(
    status: Optional[str] = Query(None),
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return [service.to_response(i) for i in service.list_my_inquiries(care_seeker, status)]


@inquiries_router.get("/{inquiry_id}", response_model=InquiryResponse)
async def get_my_inquiry(
    inquiry_id: str,
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.to_response(service.get_my_inquiry(care_seeker, inquiry_id))


@inquiries_router.post("/{inquiry_id}/archive", response_model=InquiryResponse)
async def archive_inquiry(
    inquiry_id: str,
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    return service.to_response(service.archive_inquiry(care_seeker, inquiry_id))


@inquiries_router.delete("/{inquiry_id}")
async def delete_inquiry(
    inquiry_id: str,
    care_seeker: CareSeeker = Depends(get_current_care_seeker),
    service: CareSeekerService = Depends(get_care_seeker_service),
):
    service.delete_inquiry(care_seeker, inquiry_id)
    return {"message": "Inquiry deleted"}
