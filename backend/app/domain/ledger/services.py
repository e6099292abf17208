"""Ledger domain services.

The ledger is the only writer of user credit balances. Balance reads-then-writes
for an account happen while holding that account's lock from the
AccountLockRegistry, and every debit is also a guarded update at the storage
level (`credits >= amount`), so a committed balance is never negative.

The ledger does not commit: the service that owns the unit of work (e.g. the
negotiation service) commits or rolls back around it.
"""
import logging
from typing import Optional, Protocol, Sequence

from app.domain.common.errors import (
    InsufficientCreditsError,
    LedgerTransferFailedError,
    NotFoundError,
    ValidationError,
)
from app.domain.ledger.locks import AccountLockRegistry
from app.domain.ledger.models import DebitLeg, Transfer

logger = logging.getLogger(__name__)


class LedgerRepository(Protocol):
    """Ledger repository protocol."""

    async def get_balance(self, user_id: str) -> Optional[int]:
        """Current balance, or None if the user does not exist."""
        ...

    async def lock_accounts(self, user_ids: Sequence[str]) -> dict[str, int]:
        """Row-lock the accounts (sorted by id) and return their balances."""
        ...

    async def apply_debit(self, user_id: str, amount: int) -> bool:
        """Subtract amount only if the balance covers it. Returns True if applied."""
        ...

    async def apply_credit(self, user_id: str, amount: int) -> bool:
        """Add amount. Returns True if the account exists."""
        ...


def _require_positive(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError(f"Amount must be a positive integer, got {amount!r}")


class LedgerService:
    """Atomic debit / credit / multi-leg transfer over user balances."""

    def __init__(self, repo: LedgerRepository, locks: AccountLockRegistry):
        self.repo = repo
        self.locks = locks

    async def get_balance(self, user_id: str) -> int:
        """Get a user's balance."""
        balance = await self.repo.get_balance(user_id)
        if balance is None:
            raise NotFoundError("User", user_id)
        return balance

    async def credit(self, user_id: str, amount: int) -> int:
        """Add credits to an account. Returns the new balance."""
        _require_positive(amount)
        async with self.locks.hold([user_id]):
            if not await self.repo.apply_credit(user_id, amount):
                raise NotFoundError("User", user_id)
            balance = await self.repo.get_balance(user_id)
        logger.info("[LEDGER] Credited %s to user %s (balance %s)", amount, user_id, balance)
        return balance

    async def debit(self, user_id: str, amount: int) -> int:
        """Remove credits from an account. Returns the new balance."""
        _require_positive(amount)
        async with self.locks.hold([user_id]):
            balances = await self.repo.lock_accounts([user_id])
            if user_id not in balances:
                raise NotFoundError("User", user_id)
            if balances[user_id] < amount:
                raise InsufficientCreditsError(user_id, amount, balances[user_id])
            if not await self.repo.apply_debit(user_id, amount):
                raise InsufficientCreditsError(
                    user_id, amount, await self.repo.get_balance(user_id) or 0
                )
            balance = await self.repo.get_balance(user_id)
        logger.info("[LEDGER] Debited %s from user %s (balance %s)", amount, user_id, balance)
        return balance

    async def apply_debits(self, legs: Sequence[DebitLeg]) -> Transfer:
        """Apply every debit leg or none of them.

        Raises InsufficientCreditsError before any mutation if a party cannot
        cover its total. If a leg fails after earlier legs were applied (the
        balance moved underneath us), the applied legs are credited back and
        LedgerTransferFailedError is raised.
        """
        if not legs:
            raise ValidationError("A transfer needs at least one leg")
        for leg in legs:
            _require_positive(leg.amount)

        transfer = Transfer(legs=list(legs))
        async with self.locks.hold(transfer.user_ids):
            balances = await self.repo.lock_accounts(transfer.user_ids)

            required: dict[str, int] = {}
            for leg in legs:
                required[leg.user_id] = required.get(leg.user_id, 0) + leg.amount
            for leg in legs:
                if leg.user_id not in balances:
                    raise NotFoundError("User", leg.user_id)
                available = balances[leg.user_id]
                if available < required[leg.user_id]:
                    logger.warning(
                        "[LEDGER] Insufficient credits for %s: required %s, available %s",
                        leg.user_id, required[leg.user_id], available,
                    )
                    raise InsufficientCreditsError(leg.user_id, required[leg.user_id], available)

            for leg in legs:
                if await self.repo.apply_debit(leg.user_id, leg.amount):
                    transfer.applied.append(leg)
                    continue
                reverted = [applied.user_id for applied in transfer.applied]
                await self._compensate(transfer)
                raise LedgerTransferFailedError(leg.user_id, leg.amount, reverted)

        logger.info(
            "[LEDGER] Transfer applied: %s",
            ", ".join(f"{leg.user_id} -{leg.amount}" for leg in transfer.applied),
        )
        return transfer

    async def _compensate(self, transfer: Transfer) -> None:
        """Credit back every applied leg, newest first."""
        for leg in reversed(transfer.applied):
            logger.error(
                "[LEDGER] Reverting debit of %s from user %s after a failed leg",
                leg.amount, leg.user_id,
            )
            await self.repo.apply_credit(leg.user_id, leg.amount)
        transfer.applied.clear()
