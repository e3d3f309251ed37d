"""Messaging service - conversations between providers, care seekers and support"""

import logging
from typing import Callable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Conversation, Message, Provider
from ...shared.dates import utcnow
from ..bookings.repository import BookingRepository
from .realtime import ConnectionManager, manager
from .repository import MessagingRepository
from .schemas import ConversationSummary, MessageResponse

logger = logging.getLogger(__name__)

SENDER_TYPES = ("provider", "customer", "support")

# Whose messages a reader marks read when they open a conversation
READS_FROM = {
    "provider": ("customer",),
    "customer": ("provider", "support"),
    "support": ("customer",),
}

WELCOME_MESSAGE = (
    "Hello {customer_name}! This is {provider_name}. "
    "Thank you for your booking inquiry. How can I help you today?"
)


def message_payload(message: Message) -> dict:
    return MessageResponse.model_validate(message).model_dump(mode="json")


class MessagingService:
    """Service layer for messaging"""

    def __init__(
        self,
        db: Session,
        realtime: Optional[ConnectionManager] = None,
        now: Callable = utcnow,
    ):
        self.db = db
        self.repo = MessagingRepository()
        self.bookings = BookingRepository()
        self.realtime = realtime or manager
        self.now = now

    # ========================================================================
    # CONVERSATIONS
    # ========================================================================

    def get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.repo.get_conversation(self.db, conversation_id)
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation

    def get_provider_conversation(self, conversation_id: str, provider: Provider) -> Conversation:
        conversation = self.get_conversation(conversation_id)
        if conversation.provider_id != provider.id:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation

    def get_customer_conversation(self, conversation_id: str, customer_email: str) -> Conversation:
        conversation = self.get_conversation(conversation_id)
        if conversation.customer_email != customer_email.strip().lower():
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation

    def _check_booking(self, booking_id: Optional[str], provider_id: str) -> None:
        if not booking_id:
            return
        booking = self.bookings.get_by_id(self.db, booking_id)
        if not booking or booking.provider_id != provider_id:
            raise HTTPException(status_code=404, detail="Booking not found")

    def open_conversation(
        self,
        provider: Provider,
        customer_email: str,
        booking_id: Optional[str] = None,
        opened_by: str = "customer",
        customer_name: Optional[str] = None,
    ) -> Conversation:
        """
        Get or create the conversation for (provider, customer, booking).
        A conversation newly opened by the provider starts with a welcome message.
        """
        self._check_booking(booking_id, provider.id)

        conversation = self.repo.find_conversation(
            self.db, provider.id, customer_email, booking_id
        )
        if conversation:
            return conversation

        conversation = self.repo.create_conversation(
            self.db,
            provider_id=provider.id,
            customer_email=customer_email,
            booking_id=booking_id,
            status="active",
        )
        logger.info(f"💬 Conversation {conversation.id} opened by {opened_by}")

        if opened_by == "provider":
            self.repo.add_message(
                self.db,
                conversation,
                created_at=self.now(),
                sender_type="provider",
                sender_id=provider.id,
                content=WELCOME_MESSAGE.format(
                    customer_name=customer_name or "there",
                    provider_name=provider.business_name,
                ),
            )
        return conversation

    def list_for_provider(self, provider: Provider) -> list[ConversationSummary]:
        return [
            self.summarize(c, unread_from="customer")
            for c in self.repo.list_for_provider(self.db, provider.id)
        ]

    def list_for_customer(self, customer_email: str) -> list[ConversationSummary]:
        return [
            self.summarize(c, unread_from="provider")
            for c in self.repo.list_for_customer(self.db, customer_email.strip().lower())
        ]

    def summarize(self, conversation: Conversation, unread_from: str = "customer") -> ConversationSummary:
        summary = ConversationSummary.model_validate(conversation)
        last = self.repo.get_last_message(self.db, conversation.id)
        summary.last_message = MessageResponse.model_validate(last) if last else None
        summary.unread_count = self.repo.count_unread(self.db, conversation.id, unread_from)
        if conversation.provider is not None:
            summary.provider_name = conversation.provider.business_name
        return summary

    # ========================================================================
    # MESSAGES
    # ========================================================================

    def read_messages(self, conversation: Conversation, reader: str) -> list[Message]:
        """All messages oldest first; the other party's unread messages are marked read"""
        marked = self.repo.mark_read(self.db, conversation.id, READS_FROM[reader])
        if marked:
            logger.debug(f"👀 {reader} read {marked} messages in {conversation.id}")
        return self.repo.get_messages(self.db, conversation.id)

    async def send_message(
        self, conversation: Conversation, sender_type: str, sender_id: str, content: str
    ) -> Message:
        """Store a message and push it to live subscribers"""
        content = (content or "").strip()
        if not content:
            raise HTTPException(status_code=400, detail="Message cannot be empty")

        message = self.repo.add_message(
            self.db,
            conversation,
            created_at=self.now(),
            sender_type=sender_type,
            sender_id=sender_id,
            content=content,
        )
        logger.info(f"💬 {sender_type} message {message.id} in conversation {conversation.id}")

        delivered_to = await self.realtime.broadcast(conversation.id, message_payload(message))
        if any(sender_type in READS_FROM[role] for role in delivered_to):
            self.repo.mark_message_read(self.db, message.id)
            self.db.refresh(message)
        return message

    # ========================================================================
    # MODERATION
    # ========================================================================

    def list_all(self) -> list[ConversationSummary]:
        return [self.summarize(c, unread_from="customer") for c in self.repo.list_all(self.db)]

    def flag_message(self, message_id: str, is_flagged: bool) -> Message:
        message = self.repo.get_message(self.db, message_id)
        if not message:
            raise HTTPException(status_code=404, detail="Message not found")
        message = self.repo.set_flag(self.db, message, is_flagged)
        logger.info(f"🚩 Message {message_id} flagged={is_flagged}")
        return message
