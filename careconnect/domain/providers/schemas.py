"""Provider domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...shared.validators import (
    SERVICE_TYPES,
    WAIVER_TYPES,
    validate_choices,
    validate_email,
    validate_us_phone,
    validate_zip_code,
)
from ...utils.sanitization import clean_text_input


class _ProviderFields(BaseModel):
    """Validators shared by create and update payloads"""

    @field_validator("contact_phone", check_fields=False)
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("contact_email", check_fields=False)
    @classmethod
    def validate_contact_email(cls, v):
        return validate_email(v)

    @field_validator("zip_code", check_fields=False)
    @classmethod
    def validate_zip(cls, v):
        return validate_zip_code(v)

    @field_validator("service_types", check_fields=False)
    @classmethod
    def validate_service_types(cls, v):
        return validate_choices(v, SERVICE_TYPES, "service type")

    @field_validator("accepted_waivers", check_fields=False)
    @classmethod
    def validate_waivers(cls, v):
        return validate_choices(v, WAIVER_TYPES, "waiver")

    @field_validator("business_name", "description", "address", "city", check_fields=False)
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return v
        return clean_text_input(v)


class ProviderCreate(_ProviderFields):
    """Schema for registering a provider listing"""

    business_name: str = Field(..., min_length=1, max_length=255)
    license_number: Optional[str] = None
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = "MN"
    zip_code: Optional[str] = None
    service_types: list[str] = Field(default_factory=list)
    accepted_waivers: list[str] = Field(default_factory=list)
    total_capacity: int = Field(0, ge=0)
    description: Optional[str] = None
    amenities: list[str] = Field(default_factory=list)
    languages_spoken: list[str] = Field(default_factory=list)
    years_in_business: Optional[int] = Field(None, ge=0)


class ProviderUpdate(_ProviderFields):
    """Schema for updating a provider profile (omitted fields are left alone)"""

    business_name: Optional[str] = Field(None, min_length=1, max_length=255)
    license_number: Optional[str] = None
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    service_types: Optional[list[str]] = None
    accepted_waivers: Optional[list[str]] = None
    description: Optional[str] = None
    amenities: Optional[list[str]] = None
    languages_spoken: Optional[list[str]] = None
    years_in_business: Optional[int] = Field(None, ge=0)


class AdminProviderUpdate(ProviderUpdate):
    """Admins can also moderate listing status and verification"""

    status: Optional[str] = None
    verified_245d: Optional[bool] = None
    is_ghosted: Optional[bool] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in {"pending", "active", "inactive", "suspended"}:
            raise ValueError("Invalid listing status")
        return v


class AvailabilityUpdate(BaseModel):
    """Schema for updating capacity and availability"""

    total_capacity: int = Field(..., ge=0)
    current_capacity: int = Field(..., ge=0)
    is_at_capacity: bool = False
    is_ghosted: Optional[bool] = None

    @model_validator(mode="after")
    def force_at_capacity(self):
        if self.current_capacity >= self.total_capacity:
            self.is_at_capacity = True
        return self


class SetPrimaryPhotoRequest(BaseModel):
    photo_url: str


class DeletePhotoRequest(BaseModel):
    photo_url: str


class PhotoResponse(BaseModel):
    photo_url: str
    photo_urls: list[str]
    primary_photo_url: Optional[str] = None
    max_photos: int


class ProviderPublic(BaseModel):
    """Public listing. Contact fields are never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    service_types: Optional[list[str]] = None
    accepted_waivers: Optional[list[str]] = None
    total_capacity: int = 0
    current_capacity: int = 0
    is_at_capacity: bool = False
    description: Optional[str] = None
    amenities: Optional[list[str]] = None
    languages_spoken: Optional[list[str]] = None
    years_in_business: Optional[int] = None
    primary_photo_url: Optional[str] = None
    photo_urls: Optional[list[str]] = None
    verified_245d: bool = False
    created_at: Optional[datetime] = None


class ProviderListItem(ProviderPublic):
    distance: Optional[float] = None


class ProviderPrivate(ProviderPublic):
    """Provider's own view of their listing"""

    user_id: Optional[str] = None
    license_number: Optional[str] = None
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    formatted_address: Optional[str] = None
    is_ghosted: bool = False
    status: str
    subscription_status: Optional[str] = None
    subscription_plan_id: Optional[str] = None
    subscription_end_date: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
