"""Push events emitted when messages change."""
import logging
from typing import Optional

from app.domain.messaging.models import Message
from app.domain.messaging.repositories import MessageEventPublisher

logger = logging.getLogger(__name__)


def message_to_payload(message: Message) -> dict:
    """JSON-safe message dict; content uses its wire (camelCase) field names."""
    payload = message.model_dump(mode="json", exclude={"content"})
    payload["content"] = message.content.model_dump(mode="json", by_alias=True)
    return payload


def message_event(event_type: str, message: Message) -> dict:
    """Build a `message.new` / `message.updated` event."""
    return {
        "type": event_type,
        "conversation_key": message.conversation_key,
        "message": message_to_payload(message),
    }


async def publish_message_event(
    publisher: Optional[MessageEventPublisher], event_type: str, message: Message
) -> None:
    """Best-effort publish; delivery problems never fail the request."""
    if publisher is None:
        return
    try:
        await publisher.publish(message.conversation_key, message_event(event_type, message))
    except Exception as e:
        logger.warning(
            "Publishing %s for message %s failed: %s", event_type, message.id, e
        )
