"""Message database model."""
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text, Index
from sqlalchemy import Enum as SAEnum

from app.infra.db.base import Base
from app.domain.messaging.models import (
    Message as MessageEntity,
    MessageStatus,
    decode_content,
    encode_content,
)


class MessageModel(Base):
    """Message row. `content` holds the JSON-encoded content variant."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_key_created_at", "conversation_key", "created_at"),
        Index("ix_messages_recipient_id_is_read", "recipient_id", "is_read"),
        Index("ix_messages_recipient_id_status", "recipient_id", "status"),
    )

    id = Column(String, primary_key=True)
    sender_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    conversation_key = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    status = Column(
        SAEnum(
            MessageStatus,
            name="message_status",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_entity(self) -> MessageEntity:
        """Convert to domain entity."""
        return MessageEntity(
            id=self.id,
            sender_id=self.sender_id,
            recipient_id=self.recipient_id,
            conversation_key=self.conversation_key,
            content=decode_content(self.content),
            status=self.status,
            is_read=self.is_read,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_entity(cls, entity: MessageEntity) -> "MessageModel":
        """Create from domain entity."""
        return cls(
            id=entity.id,
            sender_id=entity.sender_id,
            recipient_id=entity.recipient_id,
            conversation_key=entity.conversation_key,
            content=encode_content(entity.content),
            status=entity.status,
            is_read=entity.is_read,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
