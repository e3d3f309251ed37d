"""Admin domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email
from ...utils.sanitization import clean_text_input


class DashboardStats(BaseModel):
    total_bookings: int
    pending_bookings: int
    total_providers: int
    active_providers: int
    total_contact_submissions: int
    new_contact_submissions: int
    total_care_seekers: int
    active_care_seekers: int


class CustomEmailRequest(BaseModel):
    """Admin-composed email to a single address"""

    to: str
    subject: str = Field(..., min_length=1, max_length=255)
    message: str
    provider_name: Optional[str] = None

    @field_validator("to")
    @classmethod
    def validate_to(cls, v):
        if not v or not v.strip():
            raise ValueError("Recipient is required")
        return validate_email(v)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        v = clean_text_input(v, max_length=20000)
        if not v:
            raise ValueError("Message cannot be empty")
        return v


class GeocodeFailure(BaseModel):
    provider_id: str
    business_name: str
    reason: str


class BatchGeocodeResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    failures: list[GeocodeFailure]
