"""Per-account locks for serialising balance read-then-write sequences."""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable


@dataclass
class _Slot:
    lock: asyncio.Lock
    users: int = 0  # holders plus waiters


class AccountLockRegistry:
    """One asyncio.Lock per user id, kept only while someone holds or waits on it.

    Locks for several accounts are always taken in sorted id order so two
    settlements sharing a participant cannot deadlock.
    """

    def __init__(self) -> None:
        self._slots: dict[str, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def _checkout(self, user_id: str) -> asyncio.Lock:
        slot = self._slots.get(user_id)
        if slot is None:
            slot = _Slot(asyncio.Lock())
            self._slots[user_id] = slot
        slot.users += 1
        return slot.lock

    def _checkin(self, user_id: str) -> None:
        slot = self._slots[user_id]
        slot.users -= 1
        if slot.users == 0:
            del self._slots[user_id]

    @asynccontextmanager
    async def hold(self, user_ids: Iterable[str]) -> AsyncIterator[list[str]]:
        """Acquire the locks of all given accounts (deduplicated, sorted)."""
        ordered = sorted(set(user_ids))
        checked_out: list[str] = []
        acquired: list[asyncio.Lock] = []
        try:
            for user_id in ordered:
                lock = self._checkout(user_id)
                checked_out.append(user_id)
                await lock.acquire()
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()
            for user_id in checked_out:
                self._checkin(user_id)
