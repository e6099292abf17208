"""Pytest configuration and shared fixtures."""
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Add the backend directory to Python path
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.infra.db.models  # noqa: F401  (register tables on Base.metadata)
from app.domain.accounts.models import SkillKind, SkillLevel, User
from app.domain.common.types import generate_id
from app.domain.exchange.negotiation import NegotiationService
from app.domain.exchange.settlement import SettlementService
from app.domain.ledger.locks import AccountLockRegistry
from app.domain.ledger.services import LedgerService
from app.infra.db.base import Base
from app.infra.db.models.skill import SkillModel
from app.infra.db.models.user import UserModel
from app.infra.db.repositories.ledger_repo import LedgerRepositoryImpl
from app.infra.db.repositories.message_repo import MessageRepositoryImpl
from app.infra.db.repositories.user_repo import UserRepositoryImpl


def pytest_configure(config):
    """Register markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that need a real DB (deselect with '-m \"not integration\"')"
    )


class RecordingPublisher:
    """Message event publisher that remembers what it was asked to push."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def publish(self, conversation_key: str, event: dict) -> None:
        self.events.append((conversation_key, event))

    def types(self) -> list[str]:
        return [event["type"] for _, event in self.events]


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


async def _insert_user(
    session: AsyncSession,
    name: str,
    credits: int = 10,
    offered: Optional[list[tuple[str, int]]] = None,
    wanted: Optional[list[tuple[str, int]]] = None,
) -> User:
    """Insert a user with (name, rate) skills and return the loaded entity."""
    now = datetime.utcnow()
    user_id = generate_id()
    session.add(
        UserModel(
            id=user_id,
            name=name,
            email=f"{name.lower()}.{user_id[:8]}@test.com",
            credits=credits,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
    )
    for kind, skills in ((SkillKind.OFFERED, offered or []), (SkillKind.WANTED, wanted or [])):
        for skill_name, rate in skills:
            session.add(
                SkillModel(
                    id=generate_id(),
                    user_id=user_id,
                    kind=kind,
                    name=skill_name,
                    category="General",
                    rate=rate,
                    level=SkillLevel.INTERMEDIATE,
                    created_at=now,
                )
            )
    await session.commit()
    return await UserRepositoryImpl(session).get_by_id(user_id)


@pytest.fixture
def make_user(db_session):
    """Factory: `await make_user("Name", credits=..., offered=[("Skill", rate)])`."""

    async def _make(name, credits=10, offered=None, wanted=None):
        return await _insert_user(db_session, name, credits=credits, offered=offered, wanted=wanted)

    return _make


@pytest.fixture
async def alice(db_session):
    """Teaches Guitar at 2 credits, 10 credits on hand."""
    return await _insert_user(db_session, "Alice", credits=10, offered=[("Guitar", 2)])


@pytest.fixture
async def bob(db_session):
    """Teaches Spanish at 3 credits, 10 credits on hand."""
    return await _insert_user(db_session, "Bob", credits=10, offered=[("Spanish", 3)])


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def account_locks():
    return AccountLockRegistry()


@pytest.fixture
def ledger(db_session, account_locks):
    return LedgerService(LedgerRepositoryImpl(db_session), account_locks)


@pytest.fixture
def negotiation(db_session, ledger, publisher):
    return NegotiationService(
        MessageRepositoryImpl(db_session),
        UserRepositoryImpl(db_session),
        SettlementService(ledger),
        db_session,
        publisher=publisher,
    )
