"""Credit settlement for accepted proposals.

Policy: each side pays for the skill it receives. The requester (original
sender) pays the requested skill's rate, the recipient pays the offered
skill's rate. Nobody is credited; this is not a zero-sum transfer.
"""
import logging

from app.domain.common.errors import SettlementFailedError
from app.domain.ledger.models import DebitLeg, Transfer
from app.domain.ledger.services import LedgerService
from app.domain.messaging.models import ExchangeProposal, Message

logger = logging.getLogger(__name__)


def settlement_legs(message: Message) -> list[DebitLeg]:
    """Debit legs implied by a proposal message: sender first, then recipient."""
    proposal = message.content
    if not isinstance(proposal, ExchangeProposal):
        raise SettlementFailedError(f"Message {message.id} is not a skill exchange proposal")
    return [
        DebitLeg(user_id=message.sender_id, amount=proposal.requested_hours),
        DebitLeg(user_id=message.recipient_id, amount=proposal.offered_hours),
    ]


class SettlementService:
    """Runs the two-sided debit for an accepted proposal through the ledger."""

    def __init__(self, ledger: LedgerService):
        self.ledger = ledger

    async def settle(self, message: Message) -> Transfer:
        """Apply both debits or neither. Ledger errors propagate unchanged."""
        legs = settlement_legs(message)
        logger.info(
            "[SETTLEMENT] Settling proposal %s: %s",
            message.id,
            ", ".join(f"{leg.user_id} pays {leg.amount}" for leg in legs),
        )
        return await self.ledger.apply_debits(legs)
