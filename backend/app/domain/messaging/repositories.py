"""Messaging domain repository protocols."""
from typing import Optional, Protocol

from app.domain.messaging.models import Message, MessageStatus


class MessageRepository(Protocol):
    """Message repository protocol."""

    async def create(self, message: Message) -> Message:
        """Persist a new message."""
        ...

    async def get(self, message_id: str) -> Optional[Message]:
        """Get message by ID."""
        ...

    async def list_by_conversation(self, conversation_key: str) -> list[Message]:
        """All messages of a conversation (any order)."""
        ...

    async def list_for_user(self, user_id: str) -> list[Message]:
        """All messages the user sent or received (any order)."""
        ...

    async def list_pending_for_recipient(self, recipient_id: str) -> list[Message]:
        """Pending messages addressed to the user."""
        ...

    async def list_proposals_sent(self, sender_id: str) -> list[Message]:
        """Messages in a proposal status (pending, accepted, declined) sent by the user."""
        ...

    async def list_proposals_received(self, recipient_id: str) -> list[Message]:
        """Messages in a proposal status addressed to the user."""
        ...

    async def transition_status(
        self, message_id: str, from_status: MessageStatus, to_status: MessageStatus
    ) -> bool:
        """Compare-and-set the status. Returns True if the row was in from_status."""
        ...

    async def mark_read(self, message_id: str) -> None:
        """Set is_read on a message."""
        ...

    async def mark_conversation_read(self, conversation_key: str, recipient_id: str) -> int:
        """Mark every unread message received by recipient_id in the conversation. Returns count."""
        ...

    async def count_unread(self, recipient_id: str) -> int:
        """Unread messages addressed to the user."""
        ...


class MessageEventPublisher(Protocol):
    """Push-delivery collaborator, keyed by conversation key."""

    async def publish(self, conversation_key: str, event: dict) -> None:
        """Fan an event out to the conversation's connected peers."""
        ...
