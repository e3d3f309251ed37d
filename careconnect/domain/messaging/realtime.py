"""WebSocket connection management for live conversation feeds"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Only freshly sent rows are pushed, so remembering the newest ids is enough
SEEN_IDS_LIMIT = 500


@dataclass(eq=False)
class Subscriber:
    """One open feed. seen_ids holds the most recent message ids delivered on it."""

    websocket: WebSocket
    role: str  # provider, customer, support
    seen_ids: OrderedDict = field(default_factory=OrderedDict)

    def mark_seen(self, message_id: str) -> bool:
        """Record a delivered id; False when it was already delivered"""
        if message_id in self.seen_ids:
            return False
        self.seen_ids[message_id] = None
        if len(self.seen_ids) > SEEN_IDS_LIMIT:
            self.seen_ids.popitem(last=False)
        return True


class ConnectionManager:
    """Tracks WebSocket subscribers per conversation"""

    def __init__(self):
        # conversation_id -> subscribers
        self.active_connections: dict[str, set[Subscriber]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, conversation_id: str, role: str) -> Subscriber:
        await websocket.accept()
        subscriber = Subscriber(websocket=websocket, role=role)

        async with self._lock:
            self.active_connections.setdefault(conversation_id, set()).add(subscriber)

        count = len(self.active_connections[conversation_id])
        logger.info(f"🔌 {role} connected to conversation {conversation_id} ({count} connections)")
        return subscriber

    async def disconnect(self, subscriber: Subscriber, conversation_id: str) -> None:
        async with self._lock:
            subscribers = self.active_connections.get(conversation_id)
            if subscribers is None:
                return
            subscribers.discard(subscriber)
            if not subscribers:
                del self.active_connections[conversation_id]
        logger.info(f"🔌 {subscriber.role} disconnected from conversation {conversation_id}")

    async def deliver(self, subscriber: Subscriber, message: dict) -> bool:
        """Send a message row to one subscriber unless it already has it"""
        if not subscriber.mark_seen(message["id"]):
            return False
        await subscriber.websocket.send_json({"type": "message", "message": message})
        return True

    async def broadcast(self, conversation_id: str, message: dict) -> set[str]:
        """
        Push a message row to every subscriber of the conversation.
        Returns the roles it was delivered to.
        """
        async with self._lock:
            subscribers = list(self.active_connections.get(conversation_id, set()))

        delivered = set()
        for subscriber in subscribers:
            try:
                if await self.deliver(subscriber, message):
                    delivered.add(subscriber.role)
            except Exception as e:
                logger.error(f"Error sending to subscriber on conversation {conversation_id}: {e}")
                await self.disconnect(subscriber, conversation_id)
        return delivered

    def get_connection_count(self) -> dict[str, int]:
        return {
            conversation_id: len(subscribers)
            for conversation_id, subscribers in self.active_connections.items()
        }


manager = ConnectionManager()
