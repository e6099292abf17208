"""Message, conversation and skill exchange routes."""
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.api.deps import (
    get_chat_service,
    get_current_user,
    get_negotiation_service,
    get_read_state_tracker,
)
from app.domain.accounts.models import User
from app.domain.exchange.negotiation import NegotiationService
from app.domain.messaging.events import message_to_payload
from app.domain.messaging.models import Message
from app.domain.messaging.read_state import ReadStateTracker
from app.domain.messaging.services import ChatService

router = APIRouter()


# Request/Response Models
class _CamelRequest(BaseModel):
    """Accepts snake_case or camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendMessageRequest(_CamelRequest):
    """Plain chat message request."""
    recipient_id: str
    text: str


class ProposalRequest(_CamelRequest):
    """Skill exchange proposal request."""
    recipient_id: str
    skill_requested_id: Optional[str] = None
    skill_offered_id: Optional[str] = None
    note: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    """Proposal response: accepted or declined."""
    status: str


class MessageResponse(BaseModel):
    """Message response. `content` is the tagged content variant."""
    id: str
    sender_id: str
    recipient_id: str
    conversation_key: str
    content: dict[str, Any]
    status: str
    is_read: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, message: Message) -> "MessageResponse":
        return cls(**message_to_payload(message))


class PartnerResponse(BaseModel):
    id: str
    name: str
    avatar_url: Optional[str]


class ConversationResponse(BaseModel):
    """One entry in the conversation list."""
    conversation_key: str
    partner: PartnerResponse
    last_message: MessageResponse
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkConversationReadResponse(BaseModel):
    updated: int


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Send a plain chat message."""
    message = await service.send_message(current_user.id, request.recipient_id, request.text)
    return MessageResponse.from_entity(message)


@router.post("/proposals", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    request: ProposalRequest,
    current_user: User = Depends(get_current_user),
    service: NegotiationService = Depends(get_negotiation_service),
):
    """Propose a skill exchange to another user."""
    message = await service.propose(
        sender_id=current_user.id,
        recipient_id=request.recipient_id,
        skill_requested_id=request.skill_requested_id,
        skill_offered_id=request.skill_offered_id,
        note=request.note,
    )
    return MessageResponse.from_entity(message)


@router.get("/proposals/pending", response_model=List[MessageResponse])
async def list_pending_proposals(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Proposals waiting for the current user's answer."""
    messages = await service.pending_proposals(current_user.id)
    return [MessageResponse.from_entity(m) for m in messages]


@router.get("/proposals/sent", response_model=List[MessageResponse])
async def list_sent_proposals(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Proposals the current user sent, any status."""
    messages = await service.sent_proposals(current_user.id)
    return [MessageResponse.from_entity(m) for m in messages]


@router.get("/proposals/received", response_model=List[MessageResponse])
async def list_received_proposals(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Proposals addressed to the current user, any status."""
    messages = await service.received_proposals(current_user.id)
    return [MessageResponse.from_entity(m) for m in messages]


@router.put("/{message_id}/status", response_model=MessageResponse)
async def respond_to_proposal(
    message_id: str,
    request: StatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: NegotiationService = Depends(get_negotiation_service),
):
    """Accept or decline a proposal. Accepting settles credits for both sides."""
    message = await service.respond(current_user.id, message_id, request.status)
    return MessageResponse.from_entity(message)


@router.patch("/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: str,
    current_user: User = Depends(get_current_user),
    tracker: ReadStateTracker = Depends(get_read_state_tracker),
):
    """Mark a received message as read."""
    message = await tracker.mark_read(current_user.id, message_id)
    return MessageResponse.from_entity(message)


@router.get("/chats", response_model=List[ConversationResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Conversations of the current user, most recent first."""
    summaries = await service.list_conversations(current_user.id)
    return [
        ConversationResponse(
            conversation_key=s.conversation_key,
            partner=PartnerResponse(**s.partner.model_dump()),
            last_message=MessageResponse.from_entity(s.last_message),
            unread_count=s.unread_count,
        )
        for s in summaries
    ]


@router.get("/chat/{partner_id}", response_model=List[MessageResponse])
async def list_messages(
    partner_id: str,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Messages exchanged with partner_id, oldest first."""
    messages = await service.list_messages(current_user.id, partner_id)
    return [MessageResponse.from_entity(m) for m in messages]


@router.post("/chat/{partner_id}/read", response_model=MarkConversationReadResponse)
async def mark_conversation_read(
    partner_id: str,
    current_user: User = Depends(get_current_user),
    tracker: ReadStateTracker = Depends(get_read_state_tracker),
):
    """Mark everything received from partner_id as read."""
    updated = await tracker.mark_conversation_read(current_user.id, partner_id)
    return MarkConversationReadResponse(updated=updated)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    tracker: ReadStateTracker = Depends(get_read_state_tracker),
):
    """Number of unread messages addressed to the current user."""
    return UnreadCountResponse(unread_count=await tracker.unread_count(current_user.id))
