"""WebSocket manager for conversations: conversation_key -> set of (websocket, user_id)."""
import logging
from typing import Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


CONVERSATION_UPDATES_CHANNEL = "conversations:updates"


class ConversationWsManager:
    """Conversation-scoped WebSocket manager. Also the message event publisher.

    With `use_redis` set, events go through Redis so every API worker
    (including this one) forwards them to its local sockets; otherwise they
    are delivered to this instance's sockets only.
    """

    def __init__(self) -> None:
        self.conversations: Dict[str, Set[tuple[WebSocket, str]]] = {}
        self.use_redis = False

    async def connect(
        self, conversation_key: str, user_id: str, websocket: WebSocket, already_accepted: bool = False
    ) -> None:
        """Add a connection to a conversation. Call websocket.accept() if not already accepted."""
        if not already_accepted:
            await websocket.accept()
        self.conversations.setdefault(conversation_key, set()).add((websocket, user_id))

    async def disconnect(self, conversation_key: str, user_id: str, websocket: WebSocket) -> None:
        """Remove a connection from a conversation."""
        if conversation_key in self.conversations:
            self.conversations[conversation_key].discard((websocket, user_id))
            if not self.conversations[conversation_key]:
                del self.conversations[conversation_key]

    def connection_count(self, conversation_key: str) -> int:
        return len(self.conversations.get(conversation_key, ()))

    async def broadcast_local(self, conversation_key: str, event: dict) -> None:
        """Send event to every connection on this instance. Best-effort."""
        if conversation_key not in self.conversations:
            return
        disconnected = []
        for websocket, uid in self.conversations[conversation_key].copy():
            try:
                await websocket.send_json(event)
            except (RuntimeError, ConnectionError) as e:
                logger.warning("Conversation WS closed for %s user %s: %s", conversation_key, uid, e)
                disconnected.append((uid, websocket))
            except Exception as e:
                logger.exception("Conversation WS send failed for %s user %s: %s", conversation_key, uid, e)
                disconnected.append((uid, websocket))
        for uid, ws in disconnected:
            await self.disconnect(conversation_key, uid, ws)

    async def publish(self, conversation_key: str, event: dict) -> None:
        """Deliver an event to the conversation's connected participants."""
        if not self.use_redis:
            await self.broadcast_local(conversation_key, event)
            return
        try:
            from app.infra.messaging.redis_bus import redis_bus
            await redis_bus.publish(
                CONVERSATION_UPDATES_CHANNEL,
                {"conversation_key": conversation_key, "event": event},
            )
        except Exception as e:
            logger.warning("Conversation WS Redis publish failed, delivering locally: %s", e)
            await self.broadcast_local(conversation_key, event)

    async def handle_bus_message(self, data: dict) -> None:
        """Redis subscriber callback: forward a published event to local sockets."""
        conversation_key = data.get("conversation_key")
        event = data.get("event")
        if not conversation_key or not isinstance(event, dict):
            logger.warning("Ignoring malformed conversation update: %s", data)
            return
        await self.broadcast_local(conversation_key, event)


conversation_ws_manager = ConversationWsManager()
