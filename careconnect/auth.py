import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from .config import STRIPE_TRIAL_DAYS, SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .models import AdminUser, CareSeeker, Provider
from .plan_limits import check_subscription_access, start_trial
from .shared.dates import utcnow

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Identity carried by a verified Supabase access token"""

    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None


def verify_supabase_token(token: str) -> dict:
    """
    Verify a Supabase access token (HS256 JWT signed with the project secret).
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")

    try:
        return jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.error(f"❌ Token verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Token verification failed") from e


def _user_from_claims(claims: dict) -> CurrentUser:
    user_id = claims.get("sub")
    if not user_id:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")
    return CurrentUser(user_id=user_id, email=claims.get("email"), role=claims.get("role"))


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Get current user from the Supabase access token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )
    claims = verify_supabase_token(credentials.credentials)
    user = _user_from_claims(claims)
    logger.debug(f"✅ User authenticated: {user.user_id}")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[CurrentUser]:
    """Like get_current_user, but anonymous requests get None"""
    if not credentials:
        return None
    return _user_from_claims(verify_supabase_token(credentials.credentials))


async def get_current_provider(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Provider:
    """Provider account owned by the current user"""
    provider = db.query(Provider).filter(Provider.user_id == user.user_id).first()
    if not provider:
        raise HTTPException(status_code=404, detail="No provider account found")
    return provider


async def get_provider_with_access(
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
) -> Provider:
    """
    Get current provider and verify their subscription grants dashboard access.
    Use this dependency for provider routes that require an active subscription or trial.
    """
    now = utcnow()
    check = check_subscription_access(provider, now, STRIPE_TRIAL_DAYS)

    if check.starts_trial:
        start_trial(provider, now, STRIPE_TRIAL_DAYS)
        try:
            db.commit()
            db.refresh(provider)
            logger.info(f"🆕 Started {STRIPE_TRIAL_DAYS}-day trial for provider {provider.id}")
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to start trial for provider {provider.id}: {str(e)}")
            raise HTTPException(status_code=500, detail="Failed to start trial") from e

    if not check.has_access:
        logger.warning(f"⚠️ Provider {provider.id} has no access: {check.message}")
        raise HTTPException(
            status_code=402,
            detail=check.message,
            headers={"X-Subscription-Required": "true"},
        )
    return provider


async def get_current_care_seeker(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CareSeeker:
    care_seeker = db.query(CareSeeker).filter(CareSeeker.user_id == user.user_id).first()
    if not care_seeker:
        raise HTTPException(status_code=404, detail="No care seeker profile found")
    return care_seeker


async def require_admin(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AdminUser:
    """Only users with a row in admin_users may pass"""
    admin = db.query(AdminUser).filter(AdminUser.user_id == user.user_id).first()
    if not admin:
        logger.warning(f"⚠️ Non-admin user {user.user_id} attempted an admin route")
        raise HTTPException(status_code=403, detail="Admin access required")
    return admin
