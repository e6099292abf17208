"""Tests for chat threads, the conversation list and read state."""
from datetime import datetime, timedelta

import pytest

from app.domain.common.errors import AuthorizationError, InvalidRecipientError, NotFoundError, ValidationError
from app.domain.messaging.keying import conversation_key
from app.domain.messaging.models import Message, MessageStatus, PlainText
from app.domain.messaging.read_state import ReadStateTracker
from app.domain.messaging.services import ChatService
from app.infra.db.repositories.message_repo import MessageRepositoryImpl
from app.infra.db.repositories.user_repo import UserRepositoryImpl

T0 = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def message_repo(db_session):
    return MessageRepositoryImpl(db_session)


@pytest.fixture
def chat(db_session, message_repo, publisher):
    return ChatService(message_repo, UserRepositoryImpl(db_session), db_session, publisher=publisher, max_length=50)


@pytest.fixture
def tracker(db_session, message_repo, publisher):
    return ReadStateTracker(message_repo, db_session, publisher=publisher)


async def _seed(db_session, message_repo, sender, recipient, text, at, message_id=None, is_read=False):
    """Insert a plain message with an explicit timestamp."""
    message = Message.create(
        sender_id=sender.id,
        recipient_id=recipient.id,
        conversation_key=conversation_key(sender.id, recipient.id),
        content=PlainText(text=text),
        status=MessageStatus.COMPLETED,
    )
    message = message.model_copy(
        update={"created_at": at, "updated_at": at, "is_read": is_read, "id": message_id or message.id}
    )
    created = await message_repo.create(message)
    await db_session.commit()
    return created


class TestSendMessage:
    """Plain chat messages."""

    async def test_send_creates_completed_message(self, chat, publisher, alice, bob):
        message = await chat.send_message(alice.id, bob.id, "  hi Bob  ")

        assert message.status == MessageStatus.COMPLETED
        assert message.content == PlainText(text="hi Bob")
        assert message.is_read is False
        assert publisher.events[0][0] == conversation_key(alice.id, bob.id)
        assert publisher.events[0][1]["type"] == "message.new"
        assert publisher.events[0][1]["message"]["content"] == {"type": "text", "text": "hi Bob"}

    @pytest.mark.parametrize("text", ["", "   ", "x" * 51])
    async def test_text_is_validated(self, chat, alice, bob, text):
        with pytest.raises(ValidationError):
            await chat.send_message(alice.id, bob.id, text)

    async def test_unknown_recipient(self, chat, alice):
        with pytest.raises(InvalidRecipientError):
            await chat.send_message(alice.id, "nobody", "hello")

    async def test_publisher_failure_does_not_fail_send(self, db_session, message_repo, alice, bob):
        class BrokenPublisher:
            async def publish(self, conversation_key, event):
                raise ConnectionError("redis down")

        chat = ChatService(message_repo, UserRepositoryImpl(db_session), db_session, publisher=BrokenPublisher())
        message = await chat.send_message(alice.id, bob.id, "still delivered")
        assert await message_repo.get(message.id) is not None


class TestThreads:
    """Thread ordering and the conversation list."""

    async def test_thread_is_chronological(self, chat, db_session, message_repo, alice, bob):
        await _seed(db_session, message_repo, alice, bob, "third", T0 + timedelta(minutes=2))
        await _seed(db_session, message_repo, bob, alice, "first", T0)
        await _seed(db_session, message_repo, alice, bob, "second", T0 + timedelta(minutes=1))

        thread = await chat.list_messages(alice.id, bob.id)

        assert [m.content.text for m in thread] == ["first", "second", "third"]
        assert thread == await chat.list_messages(bob.id, alice.id)

    async def test_equal_timestamps_break_ties_by_id(self, chat, db_session, message_repo, alice, bob):
        await _seed(db_session, message_repo, alice, bob, "b", T0, message_id="bbb")
        await _seed(db_session, message_repo, alice, bob, "a", T0, message_id="aaa")

        thread = await chat.list_messages(alice.id, bob.id)
        assert [m.id for m in thread] == ["aaa", "bbb"]

    async def test_unknown_partner(self, chat, alice):
        with pytest.raises(NotFoundError):
            await chat.list_messages(alice.id, "nobody")

    async def test_conversation_list(self, chat, db_session, message_repo, make_user, alice, bob):
        cleo = await make_user("Cleo")
        await _seed(db_session, message_repo, alice, bob, "hi bob", T0)
        last_ab = await _seed(db_session, message_repo, bob, alice, "hi alice", T0 + timedelta(minutes=5))
        last_ac = await _seed(db_session, message_repo, cleo, alice, "hey", T0 + timedelta(minutes=10))

        summaries = await chat.list_conversations(alice.id)

        assert [s.partner.id for s in summaries] == [cleo.id, bob.id]
        by_partner = {s.partner.id: s for s in summaries}
        assert by_partner[bob.id].last_message.id == last_ab.id
        assert by_partner[bob.id].unread_count == 1
        assert by_partner[bob.id].conversation_key == conversation_key(alice.id, bob.id)
        assert by_partner[cleo.id].last_message.id == last_ac.id
        assert by_partner[cleo.id].unread_count == 1
        assert by_partner[cleo.id].partner.name == "Cleo"

    async def test_unread_counts_only_received_messages(self, chat, db_session, message_repo, alice, bob):
        await _seed(db_session, message_repo, alice, bob, "one", T0)
        await _seed(db_session, message_repo, alice, bob, "two", T0 + timedelta(seconds=1))

        (for_alice,) = await chat.list_conversations(alice.id)
        (for_bob,) = await chat.list_conversations(bob.id)
        assert for_alice.unread_count == 0
        assert for_bob.unread_count == 2

    async def test_pending_proposals_excludes_plain_messages(self, chat, negotiation, alice, bob):
        await chat.send_message(alice.id, bob.id, "hello")
        proposal = await negotiation.propose(
            alice.id, bob.id, bob.skills_offered[0].id, alice.skills_offered[0].id
        )

        pending = await chat.pending_proposals(bob.id)
        assert [m.id for m in pending] == [proposal.id]
        assert await chat.pending_proposals(alice.id) == []

    async def test_sent_and_received_proposals_keep_every_status(self, chat, negotiation, make_user, alice, bob):
        cleo = await make_user("Cleo", offered=[("Chess", 1)])
        await chat.send_message(alice.id, bob.id, "hello")
        to_bob = await negotiation.propose(alice.id, bob.id, bob.skills_offered[0].id, alice.skills_offered[0].id)
        to_cleo = await negotiation.propose(alice.id, cleo.id, cleo.skills_offered[0].id, alice.skills_offered[0].id)
        from_bob = await negotiation.propose(bob.id, alice.id, alice.skills_offered[0].id, bob.skills_offered[0].id)
        await negotiation.respond(bob.id, to_bob.id, "declined")

        sent = await chat.sent_proposals(alice.id)
        received = await chat.received_proposals(alice.id)

        assert [(m.id, m.status) for m in sent] == [
            (to_bob.id, MessageStatus.DECLINED),
            (to_cleo.id, MessageStatus.PENDING),
        ]
        assert [m.id for m in received] == [from_bob.id]
        assert [m.id for m in await chat.received_proposals(bob.id)] == [to_bob.id]
        assert await chat.sent_proposals(cleo.id) == []


class TestReadState:
    """Read / unread tracking."""

    async def test_mark_read_by_recipient(self, tracker, publisher, db_session, message_repo, alice, bob):
        message = await _seed(db_session, message_repo, alice, bob, "read me", T0)
        assert await tracker.unread_count(bob.id) == 1

        updated = await tracker.mark_read(bob.id, message.id)

        assert updated.is_read is True
        assert await tracker.unread_count(bob.id) == 0
        assert publisher.types() == ["message.updated"]

    async def test_mark_read_is_idempotent(self, tracker, publisher, db_session, message_repo, alice, bob):
        message = await _seed(db_session, message_repo, alice, bob, "read me", T0, is_read=True)
        again = await tracker.mark_read(bob.id, message.id)
        assert again.is_read is True
        assert publisher.events == []

    async def test_sender_cannot_mark_read(self, tracker, db_session, message_repo, alice, bob):
        message = await _seed(db_session, message_repo, alice, bob, "read me", T0)
        with pytest.raises(AuthorizationError):
            await tracker.mark_read(alice.id, message.id)
        assert (await message_repo.get(message.id)).is_read is False

    async def test_mark_read_unknown_message(self, tracker, bob):
        with pytest.raises(NotFoundError):
            await tracker.mark_read(bob.id, "missing")

    async def test_mark_conversation_read(self, tracker, db_session, message_repo, make_user, alice, bob):
        cleo = await make_user("Cleo")
        await _seed(db_session, message_repo, alice, bob, "1", T0)
        await _seed(db_session, message_repo, alice, bob, "2", T0 + timedelta(seconds=1))
        await _seed(db_session, message_repo, bob, alice, "mine", T0 + timedelta(seconds=2))
        await _seed(db_session, message_repo, cleo, bob, "other thread", T0)

        assert await tracker.mark_conversation_read(bob.id, alice.id) == 2
        assert await tracker.unread_count(bob.id) == 1
        assert await tracker.unread_count(alice.id) == 1

    async def test_mark_conversation_read_publishes_each_change(
        self, tracker, publisher, db_session, message_repo, alice, bob
    ):
        first = await _seed(db_session, message_repo, alice, bob, "1", T0)
        second = await _seed(db_session, message_repo, alice, bob, "2", T0 + timedelta(seconds=1))
        await _seed(db_session, message_repo, alice, bob, "old", T0 - timedelta(seconds=1), is_read=True)

        await tracker.mark_conversation_read(bob.id, alice.id)

        assert publisher.types() == ["message.updated", "message.updated"]
        assert [event["message"]["id"] for _, event in publisher.events] == [first.id, second.id]
        assert all(event["message"]["is_read"] is True for _, event in publisher.events)
        assert {key for key, _ in publisher.events} == {conversation_key(alice.id, bob.id)}

    async def test_mark_conversation_read_with_nothing_unread(self, tracker, publisher, alice, bob):
        assert await tracker.mark_conversation_read(bob.id, alice.id) == 0
        assert publisher.events == []
