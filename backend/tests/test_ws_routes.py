"""Conversation WebSocket endpoint: auth, handshake, ping/pong, pushes and idle timeout."""
import asyncio
from datetime import datetime

import pytest
from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.domain.accounts.models import SkillKind, SkillLevel
from app.domain.common.types import generate_id
from app.domain.messaging.keying import conversation_key
from app.infra.db import base
from app.infra.db.base import Base
from app.infra.db.models.skill import SkillModel
from app.infra.db.models.user import UserModel
from app.infra.security.jwt import create_access_token
from app.settings import get_config_store, get_settings


@pytest.fixture
def session_factory_file(tmp_path, monkeypatch):
    """File-backed SQLite shared by the WebSocket route and HTTP routes."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ws.db'}", poolclass=NullPool)

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(base, "AsyncSessionLocal", factory)
    yield factory
    asyncio.run(engine.dispose())


@pytest.fixture
def ws_settings():
    """Local push delivery only; restores the previous values afterwards."""
    store = get_config_store()
    keys = ("redis_url", "websocket_heartbeat_interval", "websocket_timeout")
    previous = {key: getattr(get_settings(), key) for key in keys}
    store.update({"redis_url": ""})
    yield store
    store.update(previous)


@pytest.fixture
def client(session_factory_file, ws_settings):
    from app.main import app
    from app.api.deps import get_db

    async def override_get_db():
        async with session_factory_file() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_db, None)


def _seed_user(factory, name: str, skill: str, rate: int = 1) -> dict:
    """Insert an active user offering one skill; returns ids."""
    user_id, skill_id = generate_id(), generate_id()
    now = datetime.utcnow()

    async def insert():
        async with factory() as session:
            session.add(UserModel(
                id=user_id, name=name, email=f"{name.lower()}@test.com",
                credits=10, is_active=True, created_at=now, updated_at=now,
            ))
            session.add(SkillModel(
                id=skill_id, user_id=user_id, kind=SkillKind.OFFERED, name=skill,
                category="General", rate=rate, level=SkillLevel.BEGINNER, created_at=now,
            ))
            await session.commit()

    asyncio.run(insert())
    return {"id": user_id, "skill_id": skill_id}


@pytest.fixture
def ana(session_factory_file):
    return _seed_user(session_factory_file, "Ana", "Guitar Lessons")


@pytest.fixture
def ben(session_factory_file):
    return _seed_user(session_factory_file, "Ben", "Web Development", rate=2)


def _assert_rejected(client, url):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(url):
            pass
    assert exc.value.code == status.WS_1008_POLICY_VIOLATION


class TestHandshake:

    def test_missing_token(self, client, ben):
        _assert_rejected(client, f"/v1/messages/ws/{ben['id']}")

    def test_invalid_token(self, client, ben):
        _assert_rejected(client, f"/v1/messages/ws/{ben['id']}?token=not-a-jwt")

    def test_unknown_user_token(self, client, ben):
        token = create_access_token(generate_id())
        _assert_rejected(client, f"/v1/messages/ws/{ben['id']}?token={token}")

    def test_unknown_partner(self, client, ana):
        token = create_access_token(ana["id"])
        _assert_rejected(client, f"/v1/messages/ws/{generate_id()}?token={token}")

    def test_self_is_not_a_partner(self, client, ana):
        token = create_access_token(ana["id"])
        _assert_rejected(client, f"/v1/messages/ws/{ana['id']}?token={token}")

    def test_established_and_ping(self, client, ana, ben):
        token = create_access_token(ana["id"])
        with client.websocket_connect(f"/v1/messages/ws/{ben['id']}?token={token}") as ws:
            assert ws.receive_json() == {
                "type": "connection.established",
                "conversation_key": conversation_key(ana["id"], ben["id"]),
            }
            ws.send_text("ping")
            assert ws.receive_text() == "pong"


class TestPushes:

    def test_proposal_reaches_recipient_socket(self, client, ana, ben):
        token = create_access_token(ben["id"])
        with client.websocket_connect(f"/v1/messages/ws/{ana['id']}?token={token}") as ws:
            ws.receive_json()

            r = client.post(
                "/v1/messages/proposals",
                json={
                    "recipientId": ben["id"],
                    "skillRequestedId": ben["skill_id"],
                    "skillOfferedId": ana["skill_id"],
                },
                headers={"Authorization": f"Bearer {create_access_token(ana['id'])}"},
            )
            assert r.status_code == 201

            event = ws.receive_json()
            assert event["type"] == "message.new"
            assert event["conversation_key"] == conversation_key(ana["id"], ben["id"])
            assert event["message"]["id"] == r.json()["id"]
            assert event["message"]["content"]["type"] == "skill_exchange_request"

    def test_idle_socket_gets_heartbeat_then_closes(self, client, ws_settings, ana, ben):
        ws_settings.update({"websocket_heartbeat_interval": 1, "websocket_timeout": 2})
        token = create_access_token(ana["id"])
        with client.websocket_connect(f"/v1/messages/ws/{ben['id']}?token={token}") as ws:
            ws.receive_json()
            assert ws.receive_json() == {"type": "heartbeat"}
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
            assert exc.value.code == status.WS_1000_NORMAL_CLOSURE
