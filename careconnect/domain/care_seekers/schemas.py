"""Care seeker domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import WAIVER_TYPES, validate_email, validate_us_phone, validate_zip_code
from ...utils.sanitization import clean_text_input
from ..providers.schemas import ProviderPublic


class CareSeekerBase(BaseModel):
    @field_validator("phone", check_fields=False)
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("zip_code", check_fields=False)
    @classmethod
    def validate_zip(cls, v):
        return validate_zip_code(v)

    @field_validator("waiver_type", check_fields=False)
    @classmethod
    def validate_waiver(cls, v):
        if v and v not in WAIVER_TYPES:
            raise ValueError(f"Invalid waiver: {v}")
        return v


class CareSeekerCreate(CareSeekerBase):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    waiver_type: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)


class CareSeekerUpdate(CareSeekerBase):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    waiver_type: Optional[str] = None


class CareSeekerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    waiver_type: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class InquiryCreate(BaseModel):
    provider_id: str
    subject: str = Field(..., min_length=1, max_length=255)
    message: str

    @field_validator("subject", "message")
    @classmethod
    def validate_text(cls, v):
        v = clean_text_input(v)
        if not v:
            raise ValueError("Field cannot be empty")
        return v


class InquiryRespond(BaseModel):
    response: str

    @field_validator("response")
    @classmethod
    def validate_response(cls, v):
        v = clean_text_input(v)
        if not v:
            raise ValueError("Response cannot be empty")
        return v


class InquiryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    care_seeker_id: str
    provider_id: str
    subject: str
    message: str
    status: str
    is_read: bool
    provider_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    provider_name: Optional[str] = None
    care_seeker_name: Optional[str] = None


class SavedProviderUpdate(BaseModel):
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return clean_text_input(v, max_length=2000) or None


class SavedProviderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    provider_id: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    provider: ProviderPublic
