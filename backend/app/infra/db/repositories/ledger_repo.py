"""Ledger repository implementation over users.credits."""
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from app.domain.ledger.services import LedgerRepository
from app.infra.db.models.user import UserModel


class LedgerRepositoryImpl(LedgerRepository):
    """Balance reads and guarded balance updates.

    Debits are a single conditional UPDATE (`credits >= amount`), so two
    writers racing on the same row cannot take it below zero; the
    ck_users_credits_non_negative constraint backs this up.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_balance(self, user_id: str) -> Optional[int]:
        """Current balance, or None if the user does not exist."""
        result = await self.session.execute(
            select(UserModel.credits).where(UserModel.id == user_id)
        )
        return result.scalar_one_or_none()

    async def lock_accounts(self, user_ids: Sequence[str]) -> dict[str, int]:
        """Row-lock the accounts (sorted by id) and return their balances."""
        ids = sorted(set(user_ids))
        result = await self.session.execute(
            select(UserModel.id, UserModel.credits)
            .where(UserModel.id.in_(ids))
            .order_by(UserModel.id)
            .with_for_update()
        )
        return {row.id: row.credits for row in result.all()}

    async def apply_debit(self, user_id: str, amount: int) -> bool:
        """Subtract amount only if the balance covers it. Returns True if applied."""
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.credits >= amount)
            .values(credits=UserModel.credits - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def apply_credit(self, user_id: str, amount: int) -> bool:
        """Add amount. Returns True if the account exists."""
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(credits=UserModel.credits + amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
