"""Messaging domain services: plain chat, threads and the conversation list."""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.accounts.services import UserRepository
from app.domain.common.errors import InvalidRecipientError, NotFoundError, ValidationError
from app.domain.messaging.events import publish_message_event
from app.domain.messaging.keying import conversation_key
from app.domain.messaging.models import (
    ConversationPartner,
    ConversationSummary,
    Message,
    MessageStatus,
    PlainText,
)
from app.domain.messaging.repositories import MessageEventPublisher, MessageRepository

logger = logging.getLogger(__name__)


def chronological(messages: list[Message]) -> list[Message]:
    """Ascending by creation time; id breaks ties so the order is stable."""
    return sorted(messages, key=lambda m: (m.created_at, m.id))


class ChatService:
    """Chat service."""

    def __init__(
        self,
        message_repo: MessageRepository,
        user_repo: UserRepository,
        db: AsyncSession,
        publisher: Optional[MessageEventPublisher] = None,
        max_length: int = 4000,
    ):
        self.message_repo = message_repo
        self.user_repo = user_repo
        self.db = db
        self.publisher = publisher
        self.max_length = max_length

    async def send_message(self, sender_id: str, recipient_id: str, text: str) -> Message:
        """Send a plain chat message. Plain messages are created `completed`."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is required")
        if len(text) > self.max_length:
            raise ValidationError(f"Message text exceeds {self.max_length} characters")
        if recipient_id == sender_id:
            raise InvalidRecipientError(recipient_id, "Cannot send a message to yourself")
        recipient = await self.user_repo.get_by_id(recipient_id)
        if not recipient:
            raise InvalidRecipientError(recipient_id)

        message = Message.create(
            sender_id=sender_id,
            recipient_id=recipient_id,
            conversation_key=conversation_key(sender_id, recipient_id),
            content=PlainText(text=text),
            status=MessageStatus.COMPLETED,
        )
        created = await self.message_repo.create(message)
        await self.db.commit()
        logger.info("Message %s sent from %s to %s", created.id, sender_id, recipient_id)
        await publish_message_event(self.publisher, "message.new", created)
        return created

    async def list_messages(self, user_id: str, partner_id: str) -> list[Message]:
        """The thread between user_id and partner_id, oldest first."""
        partner = await self.user_repo.get_by_id(partner_id)
        if not partner:
            raise NotFoundError("User", partner_id)
        messages = await self.message_repo.list_by_conversation(
            conversation_key(user_id, partner_id)
        )
        return chronological(messages)

    async def list_conversations(self, user_id: str) -> list[ConversationSummary]:
        """One entry per partner, most recently active first."""
        messages = await self.message_repo.list_for_user(user_id)

        threads: dict[str, list[Message]] = {}
        for message in messages:
            threads.setdefault(message.partner_of(user_id), []).append(message)

        summaries: list[ConversationSummary] = []
        for partner_id, thread in threads.items():
            ordered = chronological(thread)
            partner = await self.user_repo.get_by_id(partner_id)
            if partner:
                partner_info = ConversationPartner(
                    id=partner.id, name=partner.name, avatar_url=partner.avatar_url
                )
            else:
                logger.warning("Conversation partner %s no longer exists", partner_id)
                partner_info = ConversationPartner(id=partner_id, name="Unknown user")
            summaries.append(
                ConversationSummary(
                    conversation_key=conversation_key(user_id, partner_id),
                    partner=partner_info,
                    last_message=ordered[-1],
                    unread_count=sum(
                        1 for m in thread if m.recipient_id == user_id and not m.is_read
                    ),
                )
            )

        summaries.sort(key=lambda s: (s.last_message.created_at, s.last_message.id), reverse=True)
        return summaries

    async def pending_proposals(self, user_id: str) -> list[Message]:
        """Pending proposals awaiting user_id's answer, oldest first."""
        messages = await self.message_repo.list_pending_for_recipient(user_id)
        return chronological([m for m in messages if m.is_proposal])

    async def sent_proposals(self, user_id: str) -> list[Message]:
        """Every proposal user_id has sent, whatever its status, oldest first."""
        messages = await self.message_repo.list_proposals_sent(user_id)
        return chronological([m for m in messages if m.is_proposal])

    async def received_proposals(self, user_id: str) -> list[Message]:
        """Every proposal addressed to user_id, whatever its status, oldest first."""
        messages = await self.message_repo.list_proposals_received(user_id)
        return chronological([m for m in messages if m.is_proposal])
