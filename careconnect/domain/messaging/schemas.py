"""Messaging domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...shared.validators import validate_email
from ...utils.sanitization import clean_text_input


class _CustomerEmail(BaseModel):
    customer_email: str

    @field_validator("customer_email")
    @classmethod
    def validate_customer_email(cls, v):
        if not v or not v.strip():
            raise ValueError("Customer email is required")
        return validate_email(v)


class ConversationOpen(_CustomerEmail):
    """Customer side: open (or reopen) a conversation with a provider"""

    provider_id: str
    booking_id: Optional[str] = None


class ProviderConversationOpen(_CustomerEmail):
    """Provider side: open (or reopen) a conversation with a customer"""

    booking_id: Optional[str] = None
    customer_name: Optional[str] = None


class MessageCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        v = clean_text_input(v)
        if not v:
            raise ValueError("Message cannot be empty")
        return v


class CustomerMessageCreate(MessageCreate, _CustomerEmail):
    pass


class FlagMessageRequest(BaseModel):
    is_flagged: bool = True


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    sender_type: str
    sender_id: str
    content: str
    is_read: bool
    is_flagged: bool
    created_at: Optional[datetime] = None


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    provider_id: str
    customer_email: str
    booking_id: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConversationSummary(ConversationResponse):
    """Conversation with its latest message, for inbox screens"""

    provider_name: Optional[str] = None
    last_message: Optional[MessageResponse] = None
    unread_count: int = 0
