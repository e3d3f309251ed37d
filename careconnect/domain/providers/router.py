"""Provider router - public listing search and provider self-service"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_provider, get_current_user, get_provider_with_access
from ...database import get_db
from ...models import Provider
from ...services.storage import PhotoStorage, get_photo_storage
from .schemas import (
    AvailabilityUpdate,
    DeletePhotoRequest,
    PhotoResponse,
    ProviderCreate,
    ProviderListItem,
    ProviderPrivate,
    ProviderPublic,
    ProviderUpdate,
    SetPrimaryPhotoRequest,
)
from .search import MAX_DISTANCE_MILES, SearchFilters
from .service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["Providers"])


def get_provider_service(db: Session = Depends(get_db)) -> ProviderService:
    """Dependency injection for ProviderService"""
    return ProviderService(db)


# ============================================================================
# PUBLIC SEARCH
# ============================================================================


@router.get("", response_model=list[ProviderListItem])
async def search_providers(
    q: Optional[str] = Query(None),
    services: list[str] = Query(default=[]),
    waivers: list[str] = Query(default=[]),
    city: Optional[str] = Query(None),
    available_only: bool = Query(False),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    max_distance: float = Query(MAX_DISTANCE_MILES, gt=0),
    service: ProviderService = Depends(get_provider_service),
):
    """Search active listings; with lat/lon results are ranked by distance"""
    filters = SearchFilters(
        q=q,
        services=services,
        waivers=waivers,
        city=city,
        available_only=available_only,
        lat=lat,
        lon=lon,
        max_distance=max_distance,
    )
    return service.search(filters)


# ============================================================================
# PROVIDER SELF-SERVICE
# ============================================================================


@router.post("/me", response_model=ProviderPrivate, status_code=201)
async def create_my_profile(
    data: ProviderCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProviderService = Depends(get_provider_service),
):
    """Register a provider listing for the signed-in user"""
    return await service.create_profile(data, current_user.user_id)


@router.get("/me", response_model=ProviderPrivate)
async def get_my_profile(provider: Provider = Depends(get_current_provider)):
    return provider


@router.put("/me", response_model=ProviderPrivate)
async def update_my_profile(
    data: ProviderUpdate,
    provider: Provider = Depends(get_provider_with_access),
    service: ProviderService = Depends(get_provider_service),
):
    """Update profile; a changed address is re-geocoded"""
    return await service.update_profile(provider, data)


@router.put("/me/availability", response_model=ProviderPrivate)
async def update_my_availability(
    data: AvailabilityUpdate,
    provider: Provider = Depends(get_provider_with_access),
    service: ProviderService = Depends(get_provider_service),
):
    return service.update_availability(provider, data)


@router.post("/me/photos", response_model=PhotoResponse)
async def upload_my_photo(
    file: UploadFile = File(...),
    provider: Provider = Depends(get_provider_with_access),
    service: ProviderService = Depends(get_provider_service),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    """Upload a listing photo"""
    return await service.upload_photo(provider, file, storage)


@router.post("/me/photos/delete", response_model=PhotoResponse)
async def delete_my_photo(
    body: DeletePhotoRequest,
    provider: Provider = Depends(get_provider_with_access),
    service: ProviderService = Depends(get_provider_service),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    return service.delete_photo(provider, body.photo_url, storage)


@router.put("/me/photos/primary", response_model=PhotoResponse)
async def set_my_primary_photo(
    body: SetPrimaryPhotoRequest,
    provider: Provider = Depends(get_provider_with_access),
    service: ProviderService = Depends(get_provider_service),
):
    return service.set_primary_photo(provider, body.photo_url)


# ============================================================================
# PUBLIC LISTING
# ============================================================================


@router.get("/{provider_id}", response_model=ProviderPublic)
async def get_provider_listing(
    provider_id: str,
    service: ProviderService = Depends(get_provider_service),
):
    """Public listing (contact details withheld)"""
    return service.get_listing(provider_id)
