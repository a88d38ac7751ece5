"""Turn an approved task completion into points, XP and streak progress.

One completion can write several ledger entries: the ``earned`` entry
(base points plus streak and early-completion bonuses), a ``bonus`` for
any level gained, and a ``bonus`` for each streak milestone crossed.
All of them and the account changes are committed together.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from points_economy.concurrency import child_locks, run_with_retries
from points_economy.crud import lock_child_account
from points_economy.exceptions import AccountNotFound, ValidationError
from points_economy.ledger import apply_entry
from points_economy.leveling import level_from_xp, level_up_bonus
from points_economy.models import (
    TRANSACTION_BONUS,
    TRANSACTION_EARNED,
    PointsLedgerEntry,
    utcnow,
)
from points_economy.streaks import (
    DEFAULT_GRACE_PERIOD_HOURS,
    advance_streak,
    bonus_breakdown,
    hours_before_due,
    milestone_bonus,
    milestones_to_pay,
)

logger = logging.getLogger(__name__)

TASK_XP = {
    "easy": 10,
    "medium": 15,
    "hard": 35,
}
DEFAULT_TASK_XP = 15


@dataclass
class TaskAward:
    child_id: int
    points_awarded: int
    xp_awarded: int
    breakdown: dict
    new_balance: int
    old_level: int
    new_level: int
    current_streak_days: int
    milestones_paid: list[int] = field(default_factory=list)
    entries: list[PointsLedgerEntry] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


def xp_for_difficulty(difficulty: Optional[str]) -> int:
    return TASK_XP.get(difficulty, DEFAULT_TASK_XP) if difficulty else DEFAULT_TASK_XP


async def award_task_completion(
    db: AsyncSession,
    child_id: int,
    base_points: int,
    completed_at: Optional[datetime] = None,
    due_at: Optional[datetime] = None,
    xp: Optional[int] = None,
    difficulty: Optional[str] = None,
    reference_id: Optional[int] = None,
    grace_period_hours: float = DEFAULT_GRACE_PERIOD_HOURS,
) -> TaskAward:
    """Credit one approved task completion to ``child_id``.

    ``xp`` defaults to the value for ``difficulty``.  Streak milestones
    already covered by the account's watermark are never paid again.
    """
    if base_points <= 0:
        raise ValidationError("Task points must be positive")
    if xp is None:
        xp = xp_for_difficulty(difficulty)
    if xp < 0:
        raise ValidationError("Experience points cannot be negative")
    completed_at = completed_at or utcnow()

    async def attempt() -> TaskAward:
        async with child_locks.hold(child_id):
            try:
                account = await lock_child_account(db, child_id)
                if account is None:
                    raise AccountNotFound(child_id)

                streak = advance_streak(
                    account.current_streak_days,
                    account.longest_streak_days,
                    account.last_streak_date,
                    completed_at,
                    grace_period_hours,
                )
                account.current_streak_days = streak.current_streak_days
                account.longest_streak_days = streak.longest_streak_days
                account.last_streak_date = streak.last_streak_date
                if streak.reset:
                    account.last_milestone_paid = 0

                breakdown = bonus_breakdown(
                    base_points,
                    streak.current_streak_days,
                    hours_before_due(completed_at, due_at),
                )
                points = sum(breakdown.values())
                entries = [
                    apply_entry(
                        db,
                        account,
                        TRANSACTION_EARNED,
                        points,
                        reference_type="task_completion",
                        reference_id=reference_id,
                        breakdown=breakdown,
                        description="Task completed",
                    )
                ]

                old_level = account.level
                account.total_xp_earned += xp
                progress = level_from_xp(account.total_xp_earned)
                account.level = progress.level
                account.experience_points = progress.current_xp
                level_bonus = level_up_bonus(old_level, progress.level)
                if level_bonus > 0:
                    entries.append(
                        apply_entry(
                            db,
                            account,
                            TRANSACTION_BONUS,
                            level_bonus,
                            reference_type="level_up",
                            reference_id=child_id,
                            breakdown={"from_level": old_level, "to_level": progress.level},
                            description=f"Level up! Reached Level {progress.level}",
                        )
                    )

                paid = milestones_to_pay(
                    streak.current_streak_days, account.last_milestone_paid
                )
                for milestone in paid:
                    entries.append(
                        apply_entry(
                            db,
                            account,
                            TRANSACTION_BONUS,
                            milestone_bonus(milestone),
                            reference_type="streak_milestone",
                            reference_id=child_id,
                            breakdown={"milestone": milestone},
                            description=f"{milestone}-day streak milestone",
                        )
                    )
                    account.last_milestone_paid = milestone

                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return TaskAward(
            child_id=child_id,
            points_awarded=points,
            xp_awarded=xp,
            breakdown=breakdown,
            new_balance=account.points_balance,
            old_level=old_level,
            new_level=account.level,
            current_streak_days=account.current_streak_days,
            milestones_paid=paid,
            entries=entries,
        )

    award = await run_with_retries(attempt, f"task award for child {child_id}")
    logger.info(
        "Child %s earned %s points and %s XP (level %s -> %s, streak %s)",
        child_id,
        award.points_awarded,
        award.xp_awarded,
        award.old_level,
        award.new_level,
        award.current_streak_days,
    )
    return award
