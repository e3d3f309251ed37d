"""Messaging router - conversation endpoints and the live WebSocket feed"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...auth import get_current_provider, verify_supabase_token
from ...database import get_db
from ...models import AdminUser, Provider
from ...shared.validators import validate_email
from ..providers.repository import ProviderRepository
from .schemas import (
    ConversationOpen,
    ConversationResponse,
    ConversationSummary,
    CustomerMessageCreate,
    MessageCreate,
    MessageResponse,
    ProviderConversationOpen,
)
from .service import MessagingService, message_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["Messaging"])
ws_router = APIRouter(tags=["Messaging"])


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    """Dependency injection for MessagingService"""
    return MessagingService(db)


# ============================================================================
# PROVIDER SIDE
# ============================================================================


@router.get("/provider", response_model=list[ConversationSummary])
async def list_provider_conversations(
    provider: Provider = Depends(get_current_provider),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.list_for_provider(provider)


@router.post("/provider", response_model=ConversationResponse)
async def open_provider_conversation(
    data: ProviderConversationOpen,
    provider: Provider = Depends(get_current_provider),
    service: MessagingService = Depends(get_messaging_service),
):
    """Get or create a conversation with a customer (posts a welcome message when new)"""
    return service.open_conversation(
        provider,
        data.customer_email,
        data.booking_id,
        opened_by="provider",
        customer_name=data.customer_name,
    )


@router.get("/provider/{conversation_id}/messages", response_model=list[MessageResponse])
async def get_provider_messages(
    conversation_id: str,
    provider: Provider = Depends(get_current_provider),
    service: MessagingService = Depends(get_messaging_service),
):
    conversation = service.get_provider_conversation(conversation_id, provider)
    return service.read_messages(conversation, reader="provider")


@router.post("/provider/{conversation_id}/messages", response_model=MessageResponse)
async def send_provider_message(
    conversation_id: str,
    data: MessageCreate,
    provider: Provider = Depends(get_current_provider),
    service: MessagingService = Depends(get_messaging_service),
):
    conversation = service.get_provider_conversation(conversation_id, provider)
    return await service.send_message(conversation, "provider", provider.id, data.content)


# ============================================================================
# CUSTOMER SIDE
# ============================================================================


@router.get("", response_model=list[ConversationSummary])
async def list_customer_conversations(
    email: str = Query(...),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.list_for_customer(email)


@router.post("", response_model=ConversationResponse)
async def open_customer_conversation(
    data: ConversationOpen,
    db: Session = Depends(get_db),
    service: MessagingService = Depends(get_messaging_service),
):
    """Get or create a conversation with a listed provider"""
    provider = ProviderRepository.get_by_id(db, data.provider_id)
    if not provider or provider.status != "active":
        raise HTTPException(status_code=404, detail="Provider not found")
    return service.open_conversation(provider, data.customer_email, data.booking_id)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def get_customer_messages(
    conversation_id: str,
    email: str = Query(...),
    service: MessagingService = Depends(get_messaging_service),
):
    conversation = service.get_customer_conversation(conversation_id, email)
    return service.read_messages(conversation, reader="customer")


@router.post("/{conversation_id}/messages", response_model=MessageResponse)
async def send_customer_message(
    conversation_id: str,
    data: CustomerMessageCreate,
    service: MessagingService = Depends(get_messaging_service),
):
    conversation = service.get_customer_conversation(conversation_id, data.customer_email)
    return await service.send_message(
        conversation, "customer", data.customer_email, data.content
    )


# ============================================================================
# LIVE FEED
# ============================================================================


def _resolve_participant(
    db: Session, conversation, token: Optional[str], email: Optional[str]
) -> Optional[tuple[str, str]]:
    """(role, sender_id) for a WebSocket client, or None if it may not join"""
    if token:
        user_id = verify_supabase_token(token).get("sub")
        provider = ProviderRepository.get_by_user_id(db, user_id) if user_id else None
        if provider and provider.id == conversation.provider_id:
            return "provider", provider.id
        if user_id and db.query(AdminUser).filter(AdminUser.user_id == user_id).first():
            return "support", user_id
        return None

    if email:
        try:
            email = validate_email(email)
        except ValueError:
            return None
        if email == conversation.customer_email:
            return "customer", email
    return None


@ws_router.websocket("/ws/conversations/{conversation_id}")
async def conversation_feed(
    websocket: WebSocket,
    conversation_id: str,
    token: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Live message feed. Providers and support connect with ?token=,
    customers with ?email=. Clients send {"content": "..."} to post.
    """
    service = MessagingService(db)
    conversation = service.repo.get_conversation(db, conversation_id)
    if not conversation:
        await websocket.close(code=4404)
        return

    try:
        participant = _resolve_participant(db, conversation, token, email)
    except HTTPException as e:
        logger.warning(f"⚠️ WebSocket auth failed for conversation {conversation_id}: {e.detail}")
        participant = None
    if participant is None:
        await websocket.close(code=4403)
        return

    role, sender_id = participant
    subscriber = await service.realtime.connect(websocket, conversation_id, role)
    try:
        # Backlog first, so later pushes of the same rows are skipped
        for message in service.read_messages(conversation, reader=role):
            await service.realtime.deliver(subscriber, message_payload(message))

        while True:
            data = await websocket.receive_json()
            try:
                content = MessageCreate(content=data.get("content", "")).content
            except (ValidationError, AttributeError):
                await websocket.send_json({"type": "error", "detail": "Message cannot be empty"})
                continue
            await service.send_message(conversation, role, sender_id, content)
    except WebSocketDisconnect:
        logger.debug(f"WebSocket closed by {role} on conversation {conversation_id}")
    finally:
        await service.realtime.disconnect(subscriber, conversation_id)
