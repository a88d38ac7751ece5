"""Routes for child points accounts and task completion awards."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from points_economy.schemas import (
    ChildAccountCreate,
    ChildAccountRead,
    ChildAccountDetail,
    LevelProgressRead,
    TaskCompletionCreate,
    TaskAwardRead,
)
from points_economy.models import ChildAccount, utcnow
from points_economy.database import get_session
from points_economy.crud import (
    create_child_account,
    get_child_account,
    get_settings,
)
from points_economy.awards import award_task_completion
from points_economy.exceptions import AccountNotFound
from points_economy.leveling import level_from_xp
from points_economy.streaks import is_streak_at_risk

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post("/", response_model=ChildAccountRead)
async def open_account(
    data: ChildAccountCreate,
    db: AsyncSession = Depends(get_session),
):
    """Open an empty points account for a child."""
    if await get_child_account(db, data.child_id):
        raise HTTPException(status_code=400, detail="Account already exists")
    account = ChildAccount(child_id=data.child_id, display_name=data.display_name)
    account = await create_child_account(db, account)
    logger.info("Opened points account for child %s", data.child_id)
    return account


@router.get("/{child_id}", response_model=ChildAccountDetail)
async def read_account(child_id: int, db: AsyncSession = Depends(get_session)):
    """Return balance, level progress and streak state for a child."""
    account = await get_child_account(db, child_id)
    if not account:
        raise AccountNotFound(child_id)
    settings = await get_settings(db)
    progress = level_from_xp(account.total_xp_earned)
    return ChildAccountDetail(
        **ChildAccountRead.model_validate(account).model_dump(),
        progress=LevelProgressRead(**progress._asdict()),
        streak_at_risk=is_streak_at_risk(
            account.current_streak_days,
            account.last_streak_date,
            utcnow(),
            settings.streak_grace_period_hours,
        ),
    )


@router.post("/{child_id}/task-completions", response_model=TaskAwardRead)
async def complete_task(
    child_id: int,
    data: TaskCompletionCreate,
    db: AsyncSession = Depends(get_session),
):
    """Credit an approved task completion, including streak and level bonuses."""
    settings = await get_settings(db)
    award = await award_task_completion(
        db,
        child_id,
        data.base_points,
        completed_at=data.completed_at,
        due_at=data.due_at,
        xp=data.xp,
        difficulty=data.difficulty,
        reference_id=data.task_id,
        grace_period_hours=settings.streak_grace_period_hours,
    )
    return TaskAwardRead.model_validate(award)
