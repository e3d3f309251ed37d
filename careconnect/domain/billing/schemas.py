"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

PLAN_SLUGS = {"basic", "premium"}
GRANT_DURATIONS = {"month", "3months", "year", "lifetime"}


class CheckoutRequest(BaseModel):
    """Schema for creating a checkout session"""

    plan: str = "basic"  # "basic" | "premium"

    @field_validator("plan")
    @classmethod
    def validate_plan(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in PLAN_SLUGS:
            raise ValueError("plan must be 'basic' or 'premium'")
        return v


class CheckoutResponse(BaseModel):
    url: str
    session_id: str


class PortalResponse(BaseModel):
    url: str


class AccessStatusResponse(BaseModel):
    """Schema for the subscription access check"""

    has_access: bool
    status: str
    requires_payment: bool
    trial_days_left: Optional[int] = None
    message: Optional[str] = None
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None


class HistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    plan_id: Optional[str] = None
    amount: float
    status: str
    payment_method: str
    stripe_invoice_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class HistoryResponse(BaseModel):
    history: list[HistoryItem]


# ============================================================================
# ADMIN
# ============================================================================


class GrantAccessRequest(BaseModel):
    """Manual activation granted by an admin"""

    duration: str  # month, 3months, year, lifetime
    plan: Optional[str] = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        if v not in GRANT_DURATIONS:
            raise ValueError(f"duration must be one of {sorted(GRANT_DURATIONS)}")
        return v

    @field_validator("plan")
    @classmethod
    def validate_plan(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PLAN_SLUGS:
            raise ValueError("plan must be 'basic' or 'premium'")
        return v


class StartTrialRequest(BaseModel):
    days: int = 7

    @field_validator("days")
    @classmethod
    def validate_days(cls, v: int) -> int:
        if v < 1 or v > 365:
            raise ValueError("days must be between 1 and 365")
        return v


class SyncRequest(BaseModel):
    force: bool = False


class ProviderSubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_name: str
    contact_email: Optional[str] = None
    subscription_status: Optional[str] = None
    subscription_source: Optional[str] = None
    subscription_plan_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None


class SyncResult(BaseModel):
    provider_id: str
    business_name: str
    success: bool
    message: str
    stripe_status: Optional[str] = None
    db_status: Optional[str] = None


class SyncAllResponse(BaseModel):
    total: int
    synced: int
    failed: int
    results: list[SyncResult]


class TrialReminderResponse(BaseModel):
    checked: int
    emails_sent: int
    errors: list[str]


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    name: str
    price: float
    interval: str
    stripe_price_id: Optional[str] = None
    max_photos: int
    features: Optional[list[str]] = None
    is_active: bool


class PlanUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None
    stripe_price_id: Optional[str] = None

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("price cannot be negative")
        return v
