"""Message repository implementation."""
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_

from app.domain.messaging.models import Message, MessageStatus
from app.domain.messaging.repositories import MessageRepository
from app.infra.db.models.message import MessageModel

# Plain chat and notices are `completed`; only proposals carry these
PROPOSAL_STATUSES = (MessageStatus.PENDING, MessageStatus.ACCEPTED, MessageStatus.DECLINED)


class MessageRepositoryImpl(MessageRepository):
    """Message repository implementation. Flushes; the calling service commits."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _select(self):
        # status / is_read are written with bulk UPDATEs; always reload from the row
        return select(MessageModel).execution_options(populate_existing=True)

    async def create(self, message: Message) -> Message:
        """Persist a new message."""
        model = MessageModel.from_entity(message)
        self.session.add(model)
        await self.session.flush()
        return model.to_entity()

    async def get(self, message_id: str) -> Optional[Message]:
        """Get message by ID."""
        result = await self.session.execute(self._select().where(MessageModel.id == message_id))
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def list_by_conversation(self, conversation_key: str) -> list[Message]:
        """All messages of a conversation, oldest first."""
        result = await self.session.execute(
            self._select()
            .where(MessageModel.conversation_key == conversation_key)
            .order_by(MessageModel.created_at, MessageModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def list_for_user(self, user_id: str) -> list[Message]:
        """All messages the user sent or received."""
        result = await self.session.execute(
            self._select()
            .where(or_(MessageModel.sender_id == user_id, MessageModel.recipient_id == user_id))
            .order_by(MessageModel.created_at, MessageModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def list_pending_for_recipient(self, recipient_id: str) -> list[Message]:
        """Pending messages addressed to the user."""
        result = await self.session.execute(
            self._select()
            .where(
                MessageModel.recipient_id == recipient_id,
                MessageModel.status == MessageStatus.PENDING,
            )
            .order_by(MessageModel.created_at, MessageModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def list_proposals_sent(self, sender_id: str) -> list[Message]:
        """Proposal-status messages the user sent, oldest first."""
        result = await self.session.execute(
            self._select()
            .where(
                MessageModel.sender_id == sender_id,
                MessageModel.status.in_(PROPOSAL_STATUSES),
            )
            .order_by(MessageModel.created_at, MessageModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def list_proposals_received(self, recipient_id: str) -> list[Message]:
        """Proposal-status messages addressed to the user, oldest first."""
        result = await self.session.execute(
            self._select()
            .where(
                MessageModel.recipient_id == recipient_id,
                MessageModel.status.in_(PROPOSAL_STATUSES),
            )
            .order_by(MessageModel.created_at, MessageModel.id)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def transition_status(
        self, message_id: str, from_status: MessageStatus, to_status: MessageStatus
    ) -> bool:
        """Compare-and-set the status. Returns True if the row was in from_status."""
        result = await self.session.execute(
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.status == from_status)
            .values(status=to_status, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_read(self, message_id: str) -> None:
        """Set is_read on a message."""
        await self.session.execute(
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )

    async def mark_conversation_read(self, conversation_key: str, recipient_id: str) -> int:
        """Mark every unread message received by recipient_id in the conversation."""
        result = await self.session.execute(
            update(MessageModel)
            .where(
                MessageModel.conversation_key == conversation_key,
                MessageModel.recipient_id == recipient_id,
                MessageModel.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def count_unread(self, recipient_id: str) -> int:
        """Unread messages addressed to the user."""
        result = await self.session.execute(
            select(func.count())
            .select_from(MessageModel)
            .where(MessageModel.recipient_id == recipient_id, MessageModel.is_read.is_(False))
        )
        return result.scalar_one()
