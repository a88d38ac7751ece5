"""Redemption guard and the reward redemption workflow.

A redemption passes three ordered gates before any points move:

1. expiry: the reward's ``expires_at`` has passed
2. household cap: non-cancelled redemptions reached ``max_redemptions_total``
3. per-child cap: this child's non-cancelled redemptions reached
   ``max_redemptions_per_child``

The first failing gate decides the message shown to the child.  Counting
and inserting the new redemption row happen while the reward is locked,
so two concurrent attempts can never both see a free slot.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from points_economy.concurrency import child_locks, reward_locks, run_with_retries
from points_economy.crud import (
    count_active_redemptions,
    get_redemption,
    get_reward,
    lock_child_account,
    lock_redemption,
    lock_reward,
)
from points_economy.exceptions import (
    AccountNotFound,
    CapViolation,
    InvalidRedemptionState,
    RedemptionNotFound,
    RewardNotFound,
)
from points_economy.ledger import apply_entry
from points_economy.models import (
    REDEMPTION_APPROVED,
    REDEMPTION_CANCELLED,
    REDEMPTION_FULFILLED,
    REDEMPTION_PENDING,
    TRANSACTION_ADJUSTMENT,
    TRANSACTION_REDEEMED,
    Reward,
    RewardRedemption,
    utcnow,
)

logger = logging.getLogger(__name__)

REASON_EXPIRED = "This reward has expired."
REASON_SOLD_OUT = "This reward has been fully claimed by the household."
REASON_CHILD_LIMIT = (
    "You have already claimed this reward the maximum number of times."
)
REASON_INACTIVE = "This reward is no longer available."
CAP_STATUS_CODE = 409


@dataclass
class CapCheckResult:
    allowed: bool
    reason: Optional[str] = None
    status_code: Optional[int] = None


@dataclass
class RedemptionOutcome:
    redemption: RewardRedemption
    points_spent: int
    new_balance: int


def is_expired(reward: Reward, now: datetime) -> bool:
    return reward.expires_at is not None and reward.expires_at <= now


def is_sold_out(reward: Reward, total_used: int) -> bool:
    return (
        reward.max_redemptions_total is not None
        and total_used >= reward.max_redemptions_total
    )


def is_child_limit_reached(reward: Reward, child_used: int) -> bool:
    return (
        reward.max_redemptions_per_child is not None
        and child_used >= reward.max_redemptions_per_child
    )


def evaluate_caps(
    reward: Reward,
    total_used: Optional[int],
    child_used: Optional[int],
    now: datetime,
) -> CapCheckResult:
    """Run the three gates against already counted redemptions."""
    if is_expired(reward, now):
        return CapCheckResult(False, REASON_EXPIRED, CAP_STATUS_CODE)
    if is_sold_out(reward, total_used or 0):
        return CapCheckResult(False, REASON_SOLD_OUT, CAP_STATUS_CODE)
    if is_child_limit_reached(reward, child_used or 0):
        return CapCheckResult(False, REASON_CHILD_LIMIT, CAP_STATUS_CODE)
    return CapCheckResult(True)


async def check_redemption_caps(
    db: AsyncSession,
    reward_id: int,
    child_id: int,
    reward: Reward,
    now: Optional[datetime] = None,
) -> CapCheckResult:
    """Decide whether ``child_id`` may redeem ``reward`` right now.

    Read-only.  Only counts what a configured cap needs, and nothing once
    the reward is known to be expired.
    """
    now = now or utcnow()
    total_used = child_used = None
    if not is_expired(reward, now):
        if reward.max_redemptions_total is not None:
            total_used = await count_active_redemptions(db, reward_id)
        if reward.max_redemptions_per_child is not None:
            child_used = await count_active_redemptions(db, reward_id, child_id)
    return evaluate_caps(reward, total_used, child_used, now)


async def reserve_redemption_slot(
    db: AsyncSession,
    reward: Reward,
    child_id: int,
    now: Optional[datetime] = None,
) -> RewardRedemption:
    """Check the caps and stage a pending redemption in one step.

    Must run inside the caller's transaction while the reward is locked;
    the caller commits or rolls back.  Raises :class:`CapViolation` with the
    failing gate's reason.
    """
    result = await check_redemption_caps(db, reward.id, child_id, reward, now)
    if not result.allowed:
        raise CapViolation(result.reason)
    redemption = RewardRedemption(
        reward_id=reward.id,
        child_id=child_id,
        points_spent=reward.points_cost,
        status=REDEMPTION_PENDING,
    )
    db.add(redemption)
    await db.flush()
    return redemption


async def redeem_reward(
    db: AsyncSession, reward_id: int, child_id: int
) -> RedemptionOutcome:
    """Claim a reward for a child and debit its cost in a single commit."""

    async def attempt() -> RedemptionOutcome:
        async with reward_locks.hold(reward_id):
            async with child_locks.hold(child_id):
                try:
                    reward = await lock_reward(db, reward_id)
                    if reward is None:
                        raise RewardNotFound(reward_id)
                    if not reward.is_active:
                        raise CapViolation(REASON_INACTIVE)
                    account = await lock_child_account(db, child_id)
                    if account is None:
                        raise AccountNotFound(child_id)
                    redemption = await reserve_redemption_slot(db, reward, child_id)
                    if reward.points_cost > 0:
                        apply_entry(
                            db,
                            account,
                            TRANSACTION_REDEEMED,
                            -reward.points_cost,
                            reference_type="reward_redemption",
                            reference_id=redemption.id,
                            description=f"Redeemed: {reward.name}",
                        )
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise
        return RedemptionOutcome(
            redemption=redemption,
            points_spent=redemption.points_spent,
            new_balance=account.points_balance,
        )

    outcome = await run_with_retries(
        attempt, f"redemption of reward {reward_id} by child {child_id}"
    )
    logger.info(
        "Child %s redeemed reward %s for %s points (redemption %s)",
        child_id,
        reward_id,
        outcome.points_spent,
        outcome.redemption.id,
    )
    return outcome


async def cancel_redemption(
    db: AsyncSession, redemption_id: int
) -> RewardRedemption:
    """Cancel a pending redemption and refund its points as an adjustment."""
    existing = await get_redemption(db, redemption_id)
    if existing is None:
        raise RedemptionNotFound(redemption_id)
    reward_id, child_id = existing.reward_id, existing.child_id

    async def attempt() -> RewardRedemption:
        async with reward_locks.hold(reward_id):
            async with child_locks.hold(child_id):
                try:
                    reward = await lock_reward(db, reward_id)
                    redemption = await lock_redemption(db, redemption_id)
                    if redemption is None:
                        raise RedemptionNotFound(redemption_id)
                    if redemption.status != REDEMPTION_PENDING:
                        raise InvalidRedemptionState(
                            "Only pending redemptions can be cancelled"
                        )
                    account = await lock_child_account(db, child_id)
                    if account is None:
                        raise AccountNotFound(child_id)
                    redemption.status = REDEMPTION_CANCELLED
                    redemption.cancelled_at = utcnow()
                    db.add(redemption)
                    if redemption.points_spent > 0:
                        name = reward.name if reward else f"reward {reward_id}"
                        apply_entry(
                            db,
                            account,
                            TRANSACTION_ADJUSTMENT,
                            redemption.points_spent,
                            reference_type="reward_cancellation",
                            reference_id=redemption.id,
                            description=f"Refund: {name} (cancelled)",
                        )
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise
        return redemption

    redemption = await run_with_retries(
        attempt, f"cancellation of redemption {redemption_id}"
    )
    logger.info(
        "Redemption %s cancelled, refunded %s points to child %s",
        redemption_id,
        redemption.points_spent,
        child_id,
    )
    return redemption


async def _transition(
    db: AsyncSession,
    redemption_id: int,
    allowed_from: tuple[str, ...],
    new_status: str,
) -> RewardRedemption:
    existing = await get_redemption(db, redemption_id)
    if existing is None:
        raise RedemptionNotFound(redemption_id)
    reward_id = existing.reward_id

    async def attempt() -> RewardRedemption:
        async with reward_locks.hold(reward_id):
            try:
                redemption = await lock_redemption(db, redemption_id)
                if redemption is None:
                    raise RedemptionNotFound(redemption_id)
                if redemption.status not in allowed_from:
                    raise InvalidRedemptionState(
                        f"Cannot mark a {redemption.status} redemption as {new_status}"
                    )
                now = utcnow()
                redemption.status = new_status
                redemption.approved_at = redemption.approved_at or now
                if new_status == REDEMPTION_FULFILLED:
                    redemption.fulfilled_at = now
                db.add(redemption)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return redemption

    redemption = await run_with_retries(
        attempt, f"{new_status} of redemption {redemption_id}"
    )
    logger.info("Redemption %s marked %s", redemption_id, new_status)
    return redemption


async def approve_redemption(
    db: AsyncSession, redemption_id: int
) -> RewardRedemption:
    return await _transition(
        db, redemption_id, (REDEMPTION_PENDING,), REDEMPTION_APPROVED
    )


async def fulfill_redemption(
    db: AsyncSession, redemption_id: int
) -> RewardRedemption:
    return await _transition(
        db,
        redemption_id,
        (REDEMPTION_PENDING, REDEMPTION_APPROVED),
        REDEMPTION_FULFILLED,
    )


async def require_reward(db: AsyncSession, reward_id: int) -> Reward:
    reward = await get_reward(db, reward_id)
    if reward is None:
        raise RewardNotFound(reward_id)
    return reward
