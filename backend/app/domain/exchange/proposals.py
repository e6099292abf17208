"""Validation and normalisation of skill exchange proposals."""
from typing import Optional

from app.domain.accounts.models import Skill, User
from app.domain.common.errors import InvalidProposalError
from app.domain.messaging.models import ExchangeProposal, SkillSnapshot


def _resolve(owner: User, skill_id: Optional[str], side: str) -> Skill:
    if not skill_id:
        raise InvalidProposalError(f"{side} skill is required")
    skill = owner.offered_skill(skill_id)
    if skill is None:
        raise InvalidProposalError(f"{side} skill {skill_id} is not offered by user {owner.id}")
    if skill.rate is None or skill.rate <= 0:
        raise InvalidProposalError(f"{side} skill {skill_id} must have a positive rate")
    return skill


def build_proposal(
    sender: User,
    recipient: User,
    skill_requested_id: Optional[str],
    skill_offered_id: Optional[str],
    note: Optional[str] = None,
    max_note_length: int = 1000,
) -> ExchangeProposal:
    """Resolve both skills and snapshot them into a proposal payload.

    The requested skill must be one the recipient offers; the offered skill
    must be one the sender offers.
    """
    requested = _resolve(recipient, skill_requested_id, "Requested")
    offered = _resolve(sender, skill_offered_id, "Offered")
    note = (note or "").strip()
    if len(note) > max_note_length:
        raise InvalidProposalError(f"Note exceeds {max_note_length} characters")
    return ExchangeProposal(
        skill_requested=SkillSnapshot.from_skill(requested),
        skill_offered=SkillSnapshot.from_skill(offered),
        note=note,
        requester_id=sender.id,
    )
