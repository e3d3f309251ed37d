"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.dates import is_in_past
from ...shared.validators import validate_email, validate_time_of_day, validate_us_phone
from ...utils.sanitization import clean_text_input

BOOKING_STATUSES = {"pending", "confirmed", "cancelled", "completed"}


class BookingCreate(BaseModel):
    """Schema for a care seeker's booking request"""

    provider_id: str
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: str
    customer_phone: str
    date: date
    time: str
    notes: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def validate_name(cls, v):
        v = clean_text_input(v, max_length=255)
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("customer_email")
    @classmethod
    def validate_customer_email(cls, v):
        if not v or not v.strip():
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v):
        if not v or not v.strip():
            raise ValueError("Phone is required")
        return validate_us_phone(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        if is_in_past(v):
            raise ValueError("Booking date cannot be in the past")
        return v

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_of_day(v)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v is None:
            return v
        return clean_text_input(v) or None


class BookingStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in BOOKING_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(sorted(BOOKING_STATUSES))}")
        return v


class BookingResponse(BaseModel):
    """Schema for booking response"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    provider_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    date: date
    time: str
    notes: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    provider_name: Optional[str] = None


class BookingCreatedResponse(BaseModel):
    id: str
    status: str
    message: str
