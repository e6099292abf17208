"""API dependencies."""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.infra.db.session import get_db
from app.infra.security.jwt import decode_token
from app.domain.accounts.models import User
from app.domain.accounts.services import UserRepository, UserService
from app.domain.exchange.negotiation import NegotiationService
from app.domain.exchange.settlement import SettlementService
from app.domain.ledger.locks import AccountLockRegistry
from app.domain.ledger.services import LedgerService
from app.domain.messaging.read_state import ReadStateTracker
from app.domain.messaging.services import ChatService
from app.infra.db.repositories.ledger_repo import LedgerRepositoryImpl
from app.infra.db.repositories.message_repo import MessageRepositoryImpl
from app.infra.db.repositories.user_repo import SkillRepositoryImpl, UserRepositoryImpl
from app.infra.realtime.conversation_ws_manager import conversation_ws_manager
from app.settings import settings

__all__ = [
    "get_db",
    "get_current_user",
    "get_user_service",
    "get_ledger_service",
    "get_chat_service",
    "get_negotiation_service",
    "get_read_state_tracker",
]

bearer_scheme = HTTPBearer(auto_error=False)

# Process-wide: serialises balance updates per account across requests
account_locks = AccountLockRegistry()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    user_id: str = payload.get("sub")
    token_type: str = payload.get("type")
    if user_id is None or token_type != "access":
        raise credentials_exception

    user_repo: UserRepository = UserRepositoryImpl(db)
    user = await user_repo.get_by_id(user_id)
    if user is None or not user.is_active:
        raise credentials_exception

    return user


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(
        UserRepositoryImpl(db),
        SkillRepositoryImpl(db),
        db,
        starting_credits=settings.starting_credits,
    )


def get_ledger_service(db: AsyncSession = Depends(get_db)) -> LedgerService:
    return LedgerService(LedgerRepositoryImpl(db), account_locks)


def get_chat_service(db: AsyncSession = Depends(get_db)) -> ChatService:
    return ChatService(
        MessageRepositoryImpl(db),
        UserRepositoryImpl(db),
        db,
        publisher=conversation_ws_manager,
        max_length=settings.message_max_length,
    )


def get_negotiation_service(db: AsyncSession = Depends(get_db)) -> NegotiationService:
    """Negotiation service wired to the ledger for settlement on accept."""
    ledger = LedgerService(LedgerRepositoryImpl(db), account_locks)
    return NegotiationService(
        MessageRepositoryImpl(db),
        UserRepositoryImpl(db),
        SettlementService(ledger),
        db,
        publisher=conversation_ws_manager,
        max_note_length=settings.proposal_note_max_length,
    )


def get_read_state_tracker(db: AsyncSession = Depends(get_db)) -> ReadStateTracker:
    return ReadStateTracker(MessageRepositoryImpl(db), db, publisher=conversation_ws_manager)
