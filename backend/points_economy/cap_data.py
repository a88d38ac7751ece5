"""Display-only redemption capacity for reward listings.

These fields are hints for the UI (remaining slots, sold-out and expired
badges).  They are computed from plain reads and may be slightly stale;
whether a redemption is actually allowed is decided only by the guard in
:mod:`points_economy.redemptions`.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from points_economy.crud import count_active_redemptions
from points_economy.models import Reward, utcnow
from points_economy.redemptions import is_expired, is_sold_out


@dataclass
class RewardCapData:
    total_redemptions_used: int
    remaining_total: Optional[int]  # None when there is no household cap
    remaining_for_child: Optional[int]  # None when uncapped or no child given
    is_expired: bool
    is_sold_out: bool


def _remaining(cap: Optional[int], used: int) -> Optional[int]:
    if cap is None:
        return None
    return max(0, cap - used)


def compute_cap_data(
    reward: Reward,
    total_used: int,
    child_used: int,
    child_id: Optional[int],
    now: datetime,
) -> RewardCapData:
    return RewardCapData(
        total_redemptions_used=total_used,
        remaining_total=_remaining(reward.max_redemptions_total, total_used),
        remaining_for_child=(
            _remaining(reward.max_redemptions_per_child, child_used)
            if child_id is not None
            else None
        ),
        is_expired=is_expired(reward, now),
        is_sold_out=is_sold_out(reward, total_used),
    )


async def get_reward_cap_data(
    db: AsyncSession,
    reward_id: int,
    child_id: Optional[int],
    reward: Reward,
    now: Optional[datetime] = None,
) -> RewardCapData:
    """Count redemptions of ``reward_id`` and project the capacity fields."""
    total_used = await count_active_redemptions(db, reward_id)
    child_used = 0
    if child_id is not None and reward.max_redemptions_per_child is not None:
        child_used = await count_active_redemptions(db, reward_id, child_id)
    return compute_cap_data(
        reward, total_used, child_used, child_id, now or utcnow()
    )
