"""Asynchronous data-access helpers for the points economy models.

Each function in this module encapsulates one database operation using
SQLModel and SQLAlchemy.  The ``lock_*`` helpers issue
``SELECT ... FOR UPDATE`` and refresh the identity map, so they must be
called inside the transaction that later writes the row.  Functions that
do not commit are meant to be composed into a larger unit of work by the
ledger and redemption modules.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from sqlalchemy import func
from points_economy.models import (
    ChildAccount,
    PointsLedgerEntry,
    Reward,
    RewardRedemption,
    Settings,
    REDEMPTION_CANCELLED,
)


async def get_settings(db: AsyncSession) -> Settings:
    """Fetch the singleton settings record, creating it if necessary."""
    result = await db.execute(select(Settings).where(Settings.id == 1))
    settings = result.scalar_one_or_none()
    if not settings:
        settings = Settings()
        db.add(settings)
        await db.commit()
        await db.refresh(settings)
    return settings


async def save_settings(db: AsyncSession, settings: Settings) -> Settings:
    """Persist settings changes and return the refreshed object."""

    db.add(settings)
    await db.commit()
    await db.refresh(settings)
    return settings


async def create_child_account(
    db: AsyncSession, account: ChildAccount
) -> ChildAccount:
    """Persist a new, empty child account."""

    db.add(account)
    await db.commit()
    await db.refresh(account)
    return account


async def get_child_account(
    db: AsyncSession, child_id: int
) -> ChildAccount | None:
    """Return the account for a child or ``None`` if it does not exist."""
    result = await db.execute(
        select(ChildAccount).where(ChildAccount.child_id == child_id)
    )
    return result.scalar_one_or_none()


async def lock_child_account(
    db: AsyncSession, child_id: int
) -> ChildAccount | None:
    """Load a child account for update, discarding any cached state."""
    result = await db.execute(
        select(ChildAccount)
        .where(ChildAccount.child_id == child_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_ledger_entries(
    db: AsyncSession, child_id: int
) -> list[PointsLedgerEntry]:
    """Return all ledger entries for a child in the order they were written."""

    result = await db.execute(
        select(PointsLedgerEntry)
        .where(PointsLedgerEntry.child_id == child_id)
        .order_by(PointsLedgerEntry.created_at, PointsLedgerEntry.id)
    )
    return result.scalars().all()


async def sum_points_by_type(db: AsyncSession, child_id: int) -> dict[str, int]:
    """Total ``points_amount`` per transaction type for a child."""

    result = await db.execute(
        select(
            PointsLedgerEntry.transaction_type,
            func.coalesce(func.sum(PointsLedgerEntry.points_amount), 0),
        )
        .where(PointsLedgerEntry.child_id == child_id)
        .group_by(PointsLedgerEntry.transaction_type)
    )
    return {row[0]: int(row[1]) for row in result.all()}


async def create_reward(db: AsyncSession, reward: Reward) -> Reward:
    """Persist a new reward."""

    db.add(reward)
    await db.commit()
    await db.refresh(reward)
    return reward


async def get_reward(db: AsyncSession, reward_id: int) -> Reward | None:
    """Return a reward by id or ``None`` if missing."""
    result = await db.execute(select(Reward).where(Reward.id == reward_id))
    return result.scalar_one_or_none()


async def lock_reward(db: AsyncSession, reward_id: int) -> Reward | None:
    """Load a reward for update so redemptions of it are serialized."""
    result = await db.execute(
        select(Reward)
        .where(Reward.id == reward_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_rewards(
    db: AsyncSession, include_inactive: bool = False
) -> list[Reward]:
    """Return rewards ordered by cost, active ones only unless asked."""

    query = select(Reward)
    if not include_inactive:
        query = query.where(Reward.is_active == True)  # noqa: E712
    result = await db.execute(query.order_by(Reward.points_cost, Reward.id))
    return result.scalars().all()


async def save_reward(db: AsyncSession, reward: Reward) -> Reward:
    """Persist updates to a reward."""

    db.add(reward)
    await db.commit()
    await db.refresh(reward)
    return reward


async def count_active_redemptions(
    db: AsyncSession, reward_id: int, child_id: int | None = None
) -> int:
    """Count non-cancelled redemptions of a reward, optionally for one child."""

    query = select(func.count(RewardRedemption.id)).where(
        RewardRedemption.reward_id == reward_id,
        RewardRedemption.status != REDEMPTION_CANCELLED,
    )
    if child_id is not None:
        query = query.where(RewardRedemption.child_id == child_id)
    result = await db.execute(query)
    return int(result.scalar_one())


async def get_redemption(
    db: AsyncSession, redemption_id: int
) -> RewardRedemption | None:
    """Return a redemption by id or ``None`` if missing."""
    result = await db.execute(
        select(RewardRedemption).where(RewardRedemption.id == redemption_id)
    )
    return result.scalar_one_or_none()


async def lock_redemption(
    db: AsyncSession, redemption_id: int
) -> RewardRedemption | None:
    """Load a redemption for update, discarding any cached state."""
    result = await db.execute(
        select(RewardRedemption)
        .where(RewardRedemption.id == redemption_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_redemptions(
    db: AsyncSession, child_id: int | None = None
) -> list[RewardRedemption]:
    """Return redemptions newest first, optionally filtered to one child."""

    query = select(RewardRedemption)
    if child_id is not None:
        query = query.where(RewardRedemption.child_id == child_id)
    result = await db.execute(
        query.order_by(RewardRedemption.created_at.desc(), RewardRedemption.id.desc())
    )
    return result.scalars().all()
