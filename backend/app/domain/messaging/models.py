"""Messaging domain models.

A message carries one of three content variants, discriminated by `type`:
plain text, a skill exchange proposal, or a system notice. The stored
`content` column is the JSON encoding of the variant.
"""
import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.domain.accounts.models import Skill, SkillLevel
from app.domain.common.types import generate_id


class MessageStatus(str, Enum):
    """Message status. Only proposals move through pending -> accepted/declined."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"  # plain chat and system notices


class ExchangeDecision(str, Enum):
    """Recipient's answer to a proposal."""
    ACCEPTED = "accepted"
    DECLINED = "declined"


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SkillSnapshot(_Payload):
    """Copy of a skill at the time it was put into a proposal."""
    id: str
    name: str
    category: Optional[str] = None
    rate: int
    level: Optional[SkillLevel] = None
    description: Optional[str] = None

    @classmethod
    def from_skill(cls, skill: Skill) -> "SkillSnapshot":
        return cls(
            id=skill.id,
            name=skill.name,
            category=skill.category,
            rate=skill.rate,
            level=skill.level,
            description=skill.description,
        )


class PlainText(_Payload):
    type: Literal["text"] = "text"
    text: str


class ExchangeProposal(_Payload):
    """Requester wants to learn `skill_requested` and teaches `skill_offered` in return."""
    type: Literal["skill_exchange_request"] = "skill_exchange_request"
    skill_requested: SkillSnapshot
    skill_offered: SkillSnapshot
    note: str = ""
    requester_id: str

    @property
    def requested_hours(self) -> int:
        """What the requester pays: the rate of the skill they receive."""
        return self.skill_requested.rate

    @property
    def offered_hours(self) -> int:
        """What the recipient pays: the rate of the skill they receive."""
        return self.skill_offered.rate


class SystemNotice(_Payload):
    type: Literal["system_message"] = "system_message"
    content: str
    exchange_status: Optional[ExchangeDecision] = None
    original_message_id: Optional[str] = None


MessageContent = Annotated[
    Union[PlainText, ExchangeProposal, SystemNotice],
    Field(discriminator="type"),
]

_content_adapter: TypeAdapter = TypeAdapter(MessageContent)


def encode_content(content: Union[PlainText, ExchangeProposal, SystemNotice]) -> str:
    """Serialize a content variant for storage."""
    return content.model_dump_json(by_alias=True)


def decode_content(raw: Optional[str]) -> Union[PlainText, ExchangeProposal, SystemNotice]:
    """Parse stored content. Anything that is not a known variant is plain text."""
    if raw is None:
        return PlainText(text="")
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return PlainText(text=raw)
    if not isinstance(data, dict) or "type" not in data:
        return PlainText(text=raw)
    try:
        return _content_adapter.validate_python(data)
    except PydanticValidationError:
        return PlainText(text=raw)


class Message(BaseModel):
    """Message domain model."""

    id: str
    sender_id: str
    recipient_id: str
    conversation_key: str
    content: MessageContent
    status: MessageStatus
    is_read: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        sender_id: str,
        recipient_id: str,
        conversation_key: str,
        content: Union[PlainText, ExchangeProposal, SystemNotice],
        status: MessageStatus,
    ) -> "Message":
        """Create a new message."""
        now = datetime.utcnow()
        return cls(
            id=generate_id(),
            sender_id=sender_id,
            recipient_id=recipient_id,
            conversation_key=conversation_key,
            content=content,
            status=status,
            is_read=False,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_proposal(self) -> bool:
        return isinstance(self.content, ExchangeProposal)

    def partner_of(self, user_id: str) -> str:
        """The other participant, from user_id's point of view."""
        return self.recipient_id if self.sender_id == user_id else self.sender_id


class ConversationPartner(BaseModel):
    id: str
    name: str
    avatar_url: Optional[str] = None


class ConversationSummary(BaseModel):
    """One entry of the conversation list."""

    conversation_key: str
    partner: ConversationPartner
    last_message: Message
    unread_count: int = 0
