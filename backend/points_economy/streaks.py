"""Streak tracking and bonus point calculations.

All functions are pure: they take the current streak state and the
completion timing and return new values.  The award workflow persists
the results and records the bonuses as ``breakdown`` components of the
``earned`` ledger entry.
"""

import math
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

STREAK_MULTIPLIER_PER_DAY = 0.05
MAX_STREAK_MULTIPLIER = 2.5
MILESTONE_DAYS = (3, 7, 14, 30, 60, 100)
MILESTONE_BONUS_PER_DAY = 5
DEFAULT_GRACE_PERIOD_HOURS = 4

# (minimum hours before the due date, bonus fraction), highest tier first
EARLY_COMPLETION_TIERS = (
    (48, 0.25),
    (24, 0.15),
    (12, 0.10),
    (6, 0.05),
)


class StreakUpdate(NamedTuple):
    current_streak_days: int
    longest_streak_days: int
    last_streak_date: datetime
    # True when the previous run ended and this completion started a new one
    reset: bool


def _midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def streak_multiplier(streak_days: int) -> float:
    return min(streak_days * STREAK_MULTIPLIER_PER_DAY, MAX_STREAK_MULTIPLIER)


def milestone_bonus(milestone_day: int) -> int:
    return MILESTONE_BONUS_PER_DAY * milestone_day


def milestones_to_pay(streak_days: int, last_milestone_paid: int) -> list[int]:
    """Milestones crossed by ``streak_days`` that the watermark has not covered."""
    return [m for m in MILESTONE_DAYS if last_milestone_paid < m <= streak_days]


def hours_before_due(
    completed_at: datetime, due_at: Optional[datetime]
) -> Optional[float]:
    if due_at is None:
        return None
    return (due_at - completed_at).total_seconds() / 3600


def early_completion_rate(hours_early: Optional[float]) -> float:
    """Bonus fraction for finishing ``hours_early`` hours before the deadline."""
    if hours_early is None:
        return 0.0
    for min_hours, rate in EARLY_COMPLETION_TIERS:
        if hours_early >= min_hours:
            return rate
    return 0.0


def bonus_breakdown(
    base_points: int, streak_days: int, hours_early: Optional[float]
) -> dict[str, int]:
    """Split an award into its base, streak and early-completion components."""
    return {
        "base": base_points,
        "streak": math.floor(base_points * streak_multiplier(streak_days)),
        "early": math.floor(base_points * early_completion_rate(hours_early)),
    }


def streak_deadline(last_streak_date: datetime, grace_period_hours: float) -> datetime:
    """Latest moment at which a completion still extends the streak.

    The streak survives through the whole following calendar day plus the
    family's grace period after that day's end.
    """
    return _midnight(last_streak_date) + timedelta(days=2, hours=grace_period_hours)


def advance_streak(
    current_streak_days: int,
    longest_streak_days: int,
    last_streak_date: Optional[datetime],
    completed_at: datetime,
    grace_period_hours: float = DEFAULT_GRACE_PERIOD_HOURS,
) -> StreakUpdate:
    """Apply one completion at ``completed_at`` to the streak state."""
    reset = False
    if last_streak_date is None or current_streak_days <= 0:
        streak = 1
        reset = True
    elif _midnight(completed_at) <= _midnight(last_streak_date):
        # already counted today
        streak = current_streak_days
    elif completed_at < streak_deadline(last_streak_date, grace_period_hours):
        streak = current_streak_days + 1
    else:
        streak = 1
        reset = True
    return StreakUpdate(
        current_streak_days=streak,
        longest_streak_days=max(streak, longest_streak_days),
        last_streak_date=max(completed_at, last_streak_date or completed_at),
        reset=reset,
    )


def is_streak_at_risk(
    current_streak_days: int,
    last_streak_date: Optional[datetime],
    now: datetime,
    grace_period_hours: float = DEFAULT_GRACE_PERIOD_HOURS,
) -> bool:
    """True when the streak will break unless the child completes a task today.

    A streak already extended today is safe, and so is one whose grace
    window after today's midnight is still open.
    """
    if current_streak_days <= 0 or last_streak_date is None:
        return False
    today = _midnight(now)
    if _midnight(last_streak_date) >= today:
        return False
    within_grace = grace_period_hours > 0 and now <= today + timedelta(
        hours=grace_period_hours
    )
    return not within_grace
