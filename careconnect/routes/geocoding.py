"""Geocoding endpoints - store coordinates for a provider listing"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import CurrentUser, get_current_user
from ..database import get_db
from ..domain.providers.schemas import ProviderPrivate
from ..domain.providers.service import ProviderService
from ..models import AdminUser
from ..rate_limiter import create_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geocoding", tags=["Geocoding"])

rate_limit_geocode = create_rate_limiter(
    limit=30, window_seconds=60, key_prefix="geocode_provider", use_ip=True
)


@router.post("/providers/{provider_id}", response_model=ProviderPrivate)
async def geocode_provider(
    provider_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_geocode),
):
    """Geocode a provider's address. Allowed for the owning provider and admins."""
    service = ProviderService(db)
    provider = service.get_provider(provider_id)

    is_owner = provider.user_id == current_user.user_id
    is_admin = (
        db.query(AdminUser).filter(AdminUser.user_id == current_user.user_id).first() is not None
    )
    if not (is_owner or is_admin):
        raise HTTPException(status_code=403, detail="Not allowed to geocode this provider")

    if not provider.address:
        raise HTTPException(status_code=400, detail="Provider has no address")

    updated = await service.geocode_provider(provider)
    if updated is None:
        raise HTTPException(status_code=502, detail="Could not geocode address")

    logger.info(f"📍 Geocoded provider {provider_id}: {updated.latitude}, {updated.longitude}")
    return updated
