"""Ledger domain models."""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class DebitLeg:
    """One side of a settlement: `user_id` pays `amount` credits."""
    user_id: str
    amount: int


@dataclass
class Transfer:
    """Unit of work applied by the ledger. Not persisted."""
    legs: list[DebitLeg]
    applied: list[DebitLeg] = field(default_factory=list)

    @property
    def user_ids(self) -> list[str]:
        return [leg.user_id for leg in self.legs]
