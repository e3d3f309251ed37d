"""Messaging repository - Database operations for conversations and messages"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Conversation, Message


class MessagingRepository:
    """Repository for conversation and message database operations"""

    # ========================================================================
    # CONVERSATIONS
    # ========================================================================

    @staticmethod
    def find_conversation(
        db: Session, provider_id: str, customer_email: str, booking_id: Optional[str]
    ) -> Optional[Conversation]:
        query = db.query(Conversation).filter(
            Conversation.provider_id == provider_id,
            Conversation.customer_email == customer_email,
        )
        if booking_id:
            query = query.filter(Conversation.booking_id == booking_id)
        else:
            query = query.filter(Conversation.booking_id.is_(None))
        return query.first()

    @staticmethod
    def create_conversation(db: Session, **data) -> Conversation:
        conversation = Conversation(**data)
        db.add(conversation)
        db.commit()
        db.refresh(conversation)
        return conversation

    @staticmethod
    def get_conversation(db: Session, conversation_id: str) -> Optional[Conversation]:
        return db.query(Conversation).filter(Conversation.id == conversation_id).first()

    @staticmethod
    def list_for_provider(db: Session, provider_id: str) -> list[Conversation]:
        return (
            db.query(Conversation)
            .filter(Conversation.provider_id == provider_id)
            .order_by(Conversation.updated_at.desc())
            .all()
        )

    @staticmethod
    def list_for_customer(db: Session, customer_email: str) -> list[Conversation]:
        return (
            db.query(Conversation)
            .filter(Conversation.customer_email == customer_email)
            .order_by(Conversation.updated_at.desc())
            .all()
        )

    @staticmethod
    def list_all(db: Session, limit: int = 200) -> list[Conversation]:
        return db.query(Conversation).order_by(Conversation.updated_at.desc()).limit(limit).all()

    # ========================================================================
    # MESSAGES
    # ========================================================================

    @staticmethod
    def get_messages(db: Session, conversation_id: str) -> list[Message]:
        """Messages oldest first"""
        return (
            db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    @staticmethod
    def get_message(db: Session, message_id: str) -> Optional[Message]:
        return db.query(Message).filter(Message.id == message_id).first()

    @staticmethod
    def add_message(
        db: Session, conversation: Conversation, created_at: datetime, **data
    ) -> Message:
        """Insert a message and bump the conversation's updated_at"""
        message = Message(conversation_id=conversation.id, created_at=created_at, **data)
        db.add(message)
        conversation.updated_at = created_at
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def mark_read(db: Session, conversation_id: str, sender_types: tuple[str, ...]) -> int:
        """Mark unread messages from the given senders read in a single update"""
        count = (
            db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.sender_type.in_(sender_types),
                Message.is_read.is_(False),
            )
            .update({Message.is_read: True}, synchronize_session=False)
        )
        db.commit()
        return count

    @staticmethod
    def mark_message_read(db: Session, message_id: str) -> None:
        db.query(Message).filter(Message.id == message_id).update(
            {Message.is_read: True}, synchronize_session=False
        )
        db.commit()

    @staticmethod
    def get_last_message(db: Session, conversation_id: str) -> Optional[Message]:
        return (
            db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .first()
        )

    @staticmethod
    def count_unread(db: Session, conversation_id: str, sender_type: str) -> int:
        return (
            db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.sender_type == sender_type,
                Message.is_read.is_(False),
            )
            .count()
        )

    @staticmethod
    def set_flag(db: Session, message: Message, is_flagged: bool) -> Message:
        message.is_flagged = is_flagged
        db.commit()
        db.refresh(message)
        return message
