"""Per-key locks and bounded retries for the ledger and redemption writes.

A child's balance and a reward's redemption count are shared by every
device in the household.  Writers take an in-process lock keyed by the
child or reward id and, inside the transaction, a row lock
(``SELECT ... FOR UPDATE``) so separate worker processes are serialized
by the database as well.  Nothing waits forever: lock waits time out and
database conflicts are retried a fixed number of times.
"""

import asyncio
import logging
import os
import weakref
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Hashable, TypeVar

from sqlalchemy.exc import OperationalError

from points_economy.exceptions import ConcurrencyConflict

MAX_ATTEMPTS = int(os.getenv("LEDGER_MAX_ATTEMPTS", "3"))
RETRY_BACKOFF_SECONDS = float(os.getenv("LEDGER_RETRY_BACKOFF_SECONDS", "0.05"))
LOCK_TIMEOUT_SECONDS = float(os.getenv("LEDGER_LOCK_TIMEOUT_SECONDS", "5"))

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LockTimeout(Exception):
    """Raised when a keyed lock could not be acquired in time."""

    def __init__(self, key: Hashable) -> None:
        self.key = key
        super().__init__(f"Timed out waiting for lock {key!r}")


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0  # holders plus waiters


class KeyedLocks:
    """Lazily created ``asyncio.Lock`` objects addressed by a hashable key.

    Locks are tracked per event loop because an ``asyncio.Lock`` cannot be
    shared between loops.  A key's lock is discarded as soon as nobody holds
    or waits for it, so the registry only keeps keys that are in use.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._by_loop: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict]" = (
            weakref.WeakKeyDictionary()
        )

    def __len__(self) -> int:
        return sum(len(slots) for slots in self._by_loop.values())

    @asynccontextmanager
    async def hold(self, key: Hashable, timeout: float | None = None):
        slots = self._by_loop.setdefault(asyncio.get_running_loop(), {})
        slot = slots.get(key)
        if slot is None:
            slot = slots[key] = _Slot()
        slot.users += 1
        try:
            try:
                await asyncio.wait_for(
                    slot.lock.acquire(),
                    timeout if timeout is not None else LOCK_TIMEOUT_SECONDS,
                )
            except asyncio.TimeoutError:
                raise LockTimeout((self.name, key))
            try:
                yield
            finally:
                slot.lock.release()
        finally:
            slot.users -= 1
            if slot.users == 0 and slots.get(key) is slot:
                del slots[key]


child_locks = KeyedLocks("child")
reward_locks = KeyedLocks("reward")


async def run_with_retries(
    operation: Callable[[], Awaitable[T]], description: str
) -> T:
    """Run ``operation`` until it succeeds or ``MAX_ATTEMPTS`` are used up.

    ``operation`` must roll back its own session before raising so every
    attempt starts from a clean transaction.
    """
    last_exc: Exception | None = None
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            return await operation()
        except (OperationalError, LockTimeout) as exc:
            last_exc = exc
            logger.warning(
                "%s conflicted (attempt %s/%s): %s",
                description,
                attempt,
                MAX_ATTEMPTS,
                exc,
            )
            if attempt < MAX_ATTEMPTS:
                await asyncio.sleep(RETRY_BACKOFF_SECONDS * 2 ** (attempt - 1))
    logger.error("%s gave up after %s attempts", description, MAX_ATTEMPTS)
    raise ConcurrencyConflict(description) from last_exc
