"""Tests for message content variants and proposal building."""
import json
from datetime import datetime

import pytest

from app.domain.accounts.models import Skill, SkillKind, User
from app.domain.common.errors import InvalidProposalError
from app.domain.exchange.proposals import build_proposal
from app.domain.messaging.models import (
    ExchangeDecision,
    ExchangeProposal,
    PlainText,
    SkillSnapshot,
    SystemNotice,
    decode_content,
    encode_content,
)


def _user(name: str, offered: list[tuple[str, int]]) -> User:
    user = User.create(name=name, email=f"{name.lower()}@test.com", credits=5)
    skills = [
        Skill.create(user_id=user.id, kind=SkillKind.OFFERED, name=skill_name, category="General", rate=rate)
        for skill_name, rate in offered
    ]
    return user.model_copy(update={"skills_offered": skills})


@pytest.fixture
def requester():
    return _user("Ana", [("Guitar Lessons", 1)])


@pytest.fixture
def tutor():
    return _user("Ben", [("Web Development", 2)])


class TestContentDecoding:
    """Stored content is parsed into exactly one variant."""

    def test_proposal_wire_format_uses_discriminator_and_camel_case(self, requester, tutor):
        proposal = build_proposal(
            requester, tutor,
            tutor.skills_offered[0].id, requester.skills_offered[0].id,
            note="Weekends work best",
        )
        data = json.loads(encode_content(proposal))
        assert data["type"] == "skill_exchange_request"
        assert data["skillRequested"]["name"] == "Web Development"
        assert data["skillOffered"]["rate"] == 1
        assert data["requesterId"] == requester.id

        decoded = decode_content(encode_content(proposal))
        assert isinstance(decoded, ExchangeProposal)
        assert decoded.requested_hours == 2
        assert decoded.offered_hours == 1

    def test_system_notice_decodes(self):
        notice = SystemNotice(content="Accepted", exchange_status=ExchangeDecision.ACCEPTED, original_message_id="m1")
        decoded = decode_content(encode_content(notice))
        assert isinstance(decoded, SystemNotice)
        assert decoded.exchange_status == ExchangeDecision.ACCEPTED

    @pytest.mark.parametrize("raw", [
        "hello there",
        "{not json",
        "[1, 2, 3]",
        '{"text": "no discriminator"}',
        '{"type": "skill_exchange_request", "note": "missing skills"}',
        '{"type": "something_else"}',
    ])
    def test_anything_else_is_plain_text(self, raw):
        decoded = decode_content(raw)
        assert isinstance(decoded, PlainText)
        assert decoded.text == raw


class TestBuildProposal:
    """Proposal validation against the two users' offered skills."""

    def test_snapshots_both_skills(self, requester, tutor):
        proposal = build_proposal(
            requester, tutor, tutor.skills_offered[0].id, requester.skills_offered[0].id, note="  hi  "
        )
        assert proposal.skill_requested == SkillSnapshot.from_skill(tutor.skills_offered[0])
        assert proposal.skill_offered.name == "Guitar Lessons"
        assert proposal.note == "hi"

    @pytest.mark.parametrize("requested, offered", [(None, "ok"), ("ok", None), ("", "ok")])
    def test_missing_side_is_invalid(self, requester, tutor, requested, offered):
        requested_id = tutor.skills_offered[0].id if requested == "ok" else requested
        offered_id = requester.skills_offered[0].id if offered == "ok" else offered
        with pytest.raises(InvalidProposalError):
            build_proposal(requester, tutor, requested_id, offered_id)

    def test_requested_skill_must_belong_to_recipient(self, requester, tutor):
        # asking the recipient for a skill only the requester offers
        with pytest.raises(InvalidProposalError):
            build_proposal(requester, tutor, requester.skills_offered[0].id, requester.skills_offered[0].id)

    def test_offered_skill_must_belong_to_requester(self, requester, tutor):
        with pytest.raises(InvalidProposalError):
            build_proposal(requester, tutor, tutor.skills_offered[0].id, tutor.skills_offered[0].id)

    def test_non_positive_rate_is_invalid(self, requester, tutor):
        # rates are validated on Skill; simulate a stale row that slipped past it
        bad = tutor.skills_offered[0].model_construct(
            **{**tutor.skills_offered[0].model_dump(), "rate": 0}
        )
        tutor = tutor.model_copy(update={"skills_offered": [bad]})
        with pytest.raises(InvalidProposalError):
            build_proposal(requester, tutor, bad.id, requester.skills_offered[0].id)

    def test_note_length_is_limited(self, requester, tutor):
        with pytest.raises(InvalidProposalError):
            build_proposal(
                requester, tutor,
                tutor.skills_offered[0].id, requester.skills_offered[0].id,
                note="x" * 11, max_note_length=10,
            )
