"""Endpoints for rewards, their redemption caps and the redemption lifecycle."""

import logging
from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from points_economy.database import get_session
from points_economy.models import Reward
from points_economy.schemas import (
    RewardCreate,
    RewardUpdate,
    RewardRead,
    RewardCapDataRead,
    RewardWithCapData,
    RedeemRequest,
    RedemptionRead,
    RedemptionResult,
)
from points_economy.crud import (
    create_reward,
    list_rewards,
    save_reward,
    list_redemptions,
)
from points_economy.cap_data import get_reward_cap_data
from points_economy.redemptions import (
    redeem_reward,
    cancel_redemption,
    approve_redemption,
    fulfill_redemption,
    require_reward,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rewards", tags=["rewards"])


async def _with_cap_data(
    db: AsyncSession, reward: Reward, child_id: Optional[int]
) -> RewardWithCapData:
    cap = await get_reward_cap_data(db, reward.id, child_id, reward)
    return RewardWithCapData(
        **RewardRead.model_validate(reward).model_dump(),
        cap_data=RewardCapDataRead(**asdict(cap)),
    )


@router.post("/", response_model=RewardRead)
async def create_reward_route(
    data: RewardCreate,
    db: AsyncSession = Depends(get_session),
):
    reward = await create_reward(db, Reward(**data.model_dump()))
    logger.info("Reward %s created (%s points)", reward.id, reward.points_cost)
    return reward


@router.get("/", response_model=list[RewardWithCapData])
async def list_rewards_route(
    child_id: Optional[int] = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_session),
):
    """List rewards with remaining capacity for the household and ``child_id``."""
    rewards = await list_rewards(db, include_inactive=include_inactive)
    return [await _with_cap_data(db, r, child_id) for r in rewards]


@router.get("/redemptions/history", response_model=list[RedemptionRead])
async def redemption_history(
    child_id: Optional[int] = None,
    db: AsyncSession = Depends(get_session),
):
    return await list_redemptions(db, child_id)


@router.get("/{reward_id}", response_model=RewardWithCapData)
async def read_reward(
    reward_id: int,
    child_id: Optional[int] = None,
    db: AsyncSession = Depends(get_session),
):
    reward = await require_reward(db, reward_id)
    return await _with_cap_data(db, reward, child_id)


@router.put("/{reward_id}", response_model=RewardRead)
async def update_reward(
    reward_id: int,
    data: RewardUpdate,
    db: AsyncSession = Depends(get_session),
):
    reward = await require_reward(db, reward_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "points_cost", "is_active"):
            continue
        setattr(reward, field, value)
    updated = await save_reward(db, reward)
    logger.info("Reward %s updated", reward_id)
    return updated


@router.post(
    "/{reward_id}/redeem",
    response_model=RedemptionResult,
    status_code=status.HTTP_201_CREATED,
)
async def redeem_reward_route(
    reward_id: int,
    data: RedeemRequest,
    db: AsyncSession = Depends(get_session),
):
    """Redeem a reward; cap and balance failures come back as 409/400."""
    outcome = await redeem_reward(db, reward_id, data.child_id)
    return RedemptionResult.model_validate(outcome)


@router.put("/redemptions/{redemption_id}/approve", response_model=RedemptionRead)
async def approve_redemption_route(
    redemption_id: int, db: AsyncSession = Depends(get_session)
):
    return await approve_redemption(db, redemption_id)


@router.put("/redemptions/{redemption_id}/fulfill", response_model=RedemptionRead)
async def fulfill_redemption_route(
    redemption_id: int, db: AsyncSession = Depends(get_session)
):
    return await fulfill_redemption(db, redemption_id)


@router.put("/redemptions/{redemption_id}/cancel", response_model=RedemptionRead)
async def cancel_redemption_route(
    redemption_id: int, db: AsyncSession = Depends(get_session)
):
    """Cancel a pending redemption and refund the points spent on it."""
    return await cancel_redemption(db, redemption_id)
