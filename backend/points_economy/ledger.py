"""Append-only points ledger.

The ledger is the only authority for a child's balance.  Every credit
or debit is written as a new :class:`PointsLedgerEntry` together with
the matching update of ``ChildAccount.points_balance`` in one commit;
entries are never edited or deleted.  Appends for the same child are
serialized so two writers can never derive ``balance_after`` from the
same starting balance.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from points_economy.concurrency import child_locks, run_with_retries
from points_economy.crud import (
    get_child_account,
    get_ledger_entries,
    lock_child_account,
    sum_points_by_type,
)
from points_economy.exceptions import (
    AccountNotFound,
    InsufficientBalance,
    IntegrityViolation,
    ValidationError,
)
from points_economy.models import (
    CREDIT_TYPES,
    DEBIT_TYPES,
    TRANSACTION_TYPES,
    ChildAccount,
    PointsLedgerEntry,
)

logger = logging.getLogger(__name__)
integrity_logger = logging.getLogger("points_economy.integrity")


@dataclass
class LedgerAudit:
    child_id: int
    entries_checked: int
    points_balance: int


def validate_entry(transaction_type: str, points_amount: int) -> None:
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type: {transaction_type}")
    if isinstance(points_amount, bool) or not isinstance(points_amount, int):
        raise ValidationError("Points amount must be an integer")
    if points_amount == 0:
        raise ValidationError("Points amount must not be zero")
    if transaction_type in DEBIT_TYPES and points_amount > 0:
        raise ValidationError(f"A {transaction_type} entry must be negative")
    if transaction_type in CREDIT_TYPES and points_amount < 0:
        raise ValidationError(f"An {transaction_type} entry must be positive")


def apply_entry(
    db: AsyncSession,
    account: ChildAccount,
    transaction_type: str,
    points_amount: int,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
    breakdown: Optional[dict] = None,
    description: Optional[str] = None,
) -> PointsLedgerEntry:
    """Stage an entry and the balance update on ``account`` without committing.

    ``account`` must have been loaded with :func:`lock_child_account` in the
    current transaction.
    """
    validate_entry(transaction_type, points_amount)
    if transaction_type in DEBIT_TYPES and -points_amount > account.points_balance:
        raise InsufficientBalance(
            account.child_id, account.points_balance, -points_amount
        )
    balance_after = account.points_balance + points_amount
    entry = PointsLedgerEntry(
        child_id=account.child_id,
        transaction_type=transaction_type,
        points_amount=points_amount,
        balance_after=balance_after,
        reference_type=reference_type,
        reference_id=reference_id,
        breakdown=breakdown,
        description=description,
    )
    account.points_balance = balance_after
    if transaction_type in CREDIT_TYPES:
        account.total_points_earned += points_amount
    db.add(entry)
    db.add(account)
    return entry


async def append_entry(
    db: AsyncSession,
    child_id: int,
    transaction_type: str,
    points_amount: int,
    reference_type: Optional[str] = None,
    reference_id: Optional[int] = None,
    breakdown: Optional[dict] = None,
    description: Optional[str] = None,
) -> PointsLedgerEntry:
    """Atomically append one entry to a child's ledger and return it."""
    validate_entry(transaction_type, points_amount)

    async def attempt() -> PointsLedgerEntry:
        async with child_locks.hold(child_id):
            try:
                account = await lock_child_account(db, child_id)
                if account is None:
                    raise AccountNotFound(child_id)
                entry = apply_entry(
                    db,
                    account,
                    transaction_type,
                    points_amount,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    breakdown=breakdown,
                    description=description,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        await db.refresh(entry)
        return entry

    entry = await run_with_retries(attempt, f"ledger append for child {child_id}")
    logger.info(
        "Ledger %s %+d for child %s (balance %s)",
        entry.transaction_type,
        entry.points_amount,
        child_id,
        entry.balance_after,
    )
    return entry


async def get_ledger(
    db: AsyncSession, child_id: int
) -> tuple[ChildAccount, list[PointsLedgerEntry]]:
    """Return the account and its full ledger in creation order."""
    account = await get_child_account(db, child_id)
    if account is None:
        raise AccountNotFound(child_id)
    return account, await get_ledger_entries(db, child_id)


async def summarize_ledger(db: AsyncSession, child_id: int) -> dict[str, int]:
    """Totals per transaction type; types with no entries report 0."""
    account = await get_child_account(db, child_id)
    if account is None:
        raise AccountNotFound(child_id)
    totals = await sum_points_by_type(db, child_id)
    return {t: totals.get(t, 0) for t in TRANSACTION_TYPES}


def replay_balances(amounts: Iterable[int]) -> list[int]:
    """Running balances produced by applying ``amounts`` from zero."""
    balances = []
    balance = 0
    for amount in amounts:
        balance += amount
        balances.append(balance)
    return balances


async def verify_ledger(db: AsyncSession, child_id: int) -> LedgerAudit:
    """Replay a child's ledger and compare it with the stored balances.

    Raises :class:`IntegrityViolation` on the first mismatch.  A mismatch
    means the single-writer discipline was broken somewhere and needs an
    operator, so it is logged on its own logger at CRITICAL.
    """
    account, entries = await get_ledger(db, child_id)
    expected = replay_balances(e.points_amount for e in entries)
    for entry, balance in zip(entries, expected):
        if entry.balance_after != balance:
            detail = (
                f"Ledger entry {entry.id} for child {child_id} records balance "
                f"{entry.balance_after}, replay gives {balance}"
            )
            integrity_logger.critical(detail)
            raise IntegrityViolation(child_id, detail)
    final = expected[-1] if expected else 0
    if account.points_balance != final:
        detail = (
            f"Child {child_id} balance is {account.points_balance}, "
            f"ledger replay gives {final}"
        )
        integrity_logger.critical(detail)
        raise IntegrityViolation(child_id, detail)
    return LedgerAudit(
        child_id=child_id, entries_checked=len(entries), points_balance=final
    )
