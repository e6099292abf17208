"""Per-recipient read / unread tracking for messages."""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.common.errors import AuthorizationError, NotFoundError
from app.domain.messaging.events import publish_message_event
from app.domain.messaging.keying import conversation_key
from app.domain.messaging.models import Message
from app.domain.messaging.repositories import MessageEventPublisher, MessageRepository


class ReadStateTracker:
    """Read-state service. Independent of credits and negotiation status."""

    def __init__(
        self,
        message_repo: MessageRepository,
        db: AsyncSession,
        publisher: Optional[MessageEventPublisher] = None,
    ):
        self.message_repo = message_repo
        self.db = db
        self.publisher = publisher

    async def mark_read(self, user_id: str, message_id: str) -> Message:
        """Mark a message read. Only its recipient may do this."""
        message = await self.message_repo.get(message_id)
        if not message:
            raise NotFoundError("Message", message_id)
        if message.recipient_id != user_id:
            raise AuthorizationError("Only the recipient can mark a message as read")
        if message.is_read:
            return message

        await self.message_repo.mark_read(message_id)
        await self.db.commit()
        message = await self.message_repo.get(message_id)
        await publish_message_event(self.publisher, "message.updated", message)
        return message

    async def mark_conversation_read(self, user_id: str, partner_id: str) -> int:
        """Mark everything user_id received from partner_id as read.

        Publishes `message.updated` for each message that changed.
        """
        key = conversation_key(user_id, partner_id)
        unread = [
            m for m in await self.message_repo.list_by_conversation(key)
            if m.recipient_id == user_id and not m.is_read
        ]
        updated = await self.message_repo.mark_conversation_read(key, user_id)
        await self.db.commit()
        for message in unread:
            await publish_message_event(
                self.publisher, "message.updated", message.model_copy(update={"is_read": True})
            )
        return updated

    async def unread_count(self, user_id: str) -> int:
        """Count of messages addressed to user_id that are still unread."""
        return await self.message_repo.count_unread(user_id)
