"""Negotiation state machine for skill exchange proposals.

    pending --(recipient declines)--> declined
    pending --(recipient accepts, settlement ok)--> accepted
    pending --(recipient accepts, settlement fails)--> pending

Leaving `pending` is a compare-and-set on the stored status, so a proposal is
resolved (and settled) at most once even under concurrent responses.
"""
import logging
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.accounts.services import UserRepository
from app.domain.common.errors import (
    AlreadyResolvedError,
    AuthorizationError,
    DomainError,
    InvalidRecipientError,
    NotFoundError,
    ValidationError,
)
from app.domain.exchange.proposals import build_proposal
from app.domain.exchange.settlement import SettlementService
from app.domain.messaging.events import publish_message_event
from app.domain.messaging.keying import conversation_key
from app.domain.messaging.models import (
    ExchangeDecision,
    Message,
    MessageStatus,
    SystemNotice,
)
from app.domain.messaging.repositories import MessageEventPublisher, MessageRepository

logger = logging.getLogger(__name__)


def _notice_text(responder_name: str, decision: ExchangeDecision) -> str:
    if decision == ExchangeDecision.ACCEPTED:
        return (
            f"Great! {responder_name} has accepted your skill exchange request. "
            "You can now chat freely to coordinate your sessions."
        )
    return f"{responder_name} has declined your skill exchange request."


class NegotiationService:
    """Creates proposals and resolves them on behalf of the recipient."""

    def __init__(
        self,
        message_repo: MessageRepository,
        user_repo: UserRepository,
        settlement: SettlementService,
        db: AsyncSession,
        publisher: Optional[MessageEventPublisher] = None,
        max_note_length: int = 1000,
    ):
        self.message_repo = message_repo
        self.user_repo = user_repo
        self.settlement = settlement
        self.db = db
        self.publisher = publisher
        self.max_note_length = max_note_length

    async def propose(
        self,
        sender_id: str,
        recipient_id: str,
        skill_requested_id: Optional[str],
        skill_offered_id: Optional[str],
        note: Optional[str] = None,
    ) -> Message:
        """Create a pending proposal message from sender to recipient."""
        if recipient_id == sender_id:
            raise InvalidRecipientError(recipient_id, "Cannot send a proposal to yourself")
        recipient = await self.user_repo.get_by_id(recipient_id)
        if not recipient or not recipient.is_active:
            raise InvalidRecipientError(recipient_id)
        sender = await self.user_repo.get_by_id(sender_id)
        if not sender:
            raise NotFoundError("User", sender_id)

        proposal = build_proposal(
            sender,
            recipient,
            skill_requested_id,
            skill_offered_id,
            note,
            max_note_length=self.max_note_length,
        )
        message = Message.create(
            sender_id=sender_id,
            recipient_id=recipient_id,
            conversation_key=conversation_key(sender_id, recipient_id),
            content=proposal,
            status=MessageStatus.PENDING,
        )
        created = await self.message_repo.create(message)
        await self.db.commit()
        logger.info(
            "[NEGOTIATION] Proposal %s from %s to %s: %s (%s) for %s (%s)",
            created.id, sender_id, recipient_id,
            proposal.skill_requested.name, proposal.requested_hours,
            proposal.skill_offered.name, proposal.offered_hours,
        )
        await publish_message_event(self.publisher, "message.new", created)
        return created

    async def respond(
        self,
        actor_id: str,
        message_id: str,
        decision: Union[ExchangeDecision, str],
    ) -> Message:
        """Accept or decline a pending proposal. Only the recipient may respond.

        Acceptance settles credits before the status change is committed; if
        settlement fails the proposal stays pending and the error propagates.
        """
        try:
            decision = ExchangeDecision(decision)
        except ValueError:
            raise ValidationError(f"Invalid decision: {decision!r}. Must be 'accepted' or 'declined'") from None

        message = await self.message_repo.get(message_id)
        if not message:
            raise NotFoundError("Message", message_id)
        if message.recipient_id != actor_id:
            raise AuthorizationError("Only the recipient can respond to this proposal")
        if message.status != MessageStatus.PENDING or not message.is_proposal:
            raise AlreadyResolvedError(message_id, message.status.value)

        target = MessageStatus(decision.value)
        if not await self.message_repo.transition_status(message_id, MessageStatus.PENDING, target):
            await self.db.rollback()
            current = await self.message_repo.get(message_id)
            raise AlreadyResolvedError(message_id, current.status.value if current else "gone")

        if decision == ExchangeDecision.ACCEPTED:
            await self._settle_or_revert(message)

        responder = await self.user_repo.get_by_id(actor_id)
        notice = Message.create(
            sender_id=actor_id,
            recipient_id=message.sender_id,
            conversation_key=message.conversation_key,
            content=SystemNotice(
                content=_notice_text(responder.name if responder else "Your partner", decision),
                exchange_status=decision,
                original_message_id=message.id,
            ),
            status=MessageStatus.COMPLETED,
        )
        notice = await self.message_repo.create(notice)
        await self.db.commit()
        logger.info("[NEGOTIATION] Proposal %s %s by %s", message_id, target.value, actor_id)

        resolved = await self.message_repo.get(message_id)
        await publish_message_event(self.publisher, "message.updated", resolved)
        await publish_message_event(self.publisher, "message.new", notice)
        return resolved

    async def _settle_or_revert(self, message: Message) -> None:
        """Settle an accepted proposal; on failure put it back to pending."""
        try:
            await self.settlement.settle(message)
        except DomainError as e:
            logger.warning(
                "[NEGOTIATION] Settlement failed for proposal %s, reverting to pending: %s",
                message.id, e,
            )
            await self.message_repo.transition_status(
                message.id, MessageStatus.ACCEPTED, MessageStatus.PENDING
            )
            await self.db.commit()
            raise
        except Exception:
            logger.exception("[NEGOTIATION] Unexpected settlement error for proposal %s", message.id)
            await self.db.rollback()
            raise
