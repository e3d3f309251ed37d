"""Contact domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import validate_email, validate_us_phone
from ...utils.sanitization import clean_text_input

SUBMISSION_STATUSES = {"new", "read", "resolved"}


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None
    subject: Optional[str] = Field(None, max_length=255)
    message: str

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        if not v or not v.strip():
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("name", "message")
    @classmethod
    def validate_required_text(cls, v):
        v = clean_text_input(v)
        if not v:
            raise ValueError("Field cannot be empty")
        return v


class ContactStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in SUBMISSION_STATUSES:
            raise ValueError("status must be one of: new, read, resolved")
        return v


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: str
    status: str
    created_at: Optional[datetime] = None
