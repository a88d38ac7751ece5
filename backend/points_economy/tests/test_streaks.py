"""Tests for streak continuation and bonus calculations."""

import pathlib
import sys
from datetime import datetime, timedelta

# Allow importing the points_economy package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from points_economy.streaks import (
    advance_streak,
    bonus_breakdown,
    early_completion_rate,
    hours_before_due,
    is_streak_at_risk,
    milestone_bonus,
    milestones_to_pay,
    streak_multiplier,
)

DAY_ONE = datetime(2026, 3, 1, 15, 0)


def test_streak_multiplier_is_capped():
    assert streak_multiplier(0) == 0
    assert streak_multiplier(10) == 0.5
    assert streak_multiplier(50) == 2.5
    assert streak_multiplier(80) == 2.5


def test_early_completion_uses_highest_tier_only():
    assert early_completion_rate(72) == 0.25
    assert early_completion_rate(48) == 0.25
    assert early_completion_rate(47.9) == 0.15
    assert early_completion_rate(24) == 0.15
    assert early_completion_rate(12) == 0.10
    assert early_completion_rate(6) == 0.05
    assert early_completion_rate(5.9) == 0.0
    assert early_completion_rate(-3) == 0.0
    assert early_completion_rate(None) == 0.0


def test_hours_before_due():
    due = DAY_ONE + timedelta(hours=30)
    assert hours_before_due(DAY_ONE, due) == 30
    assert hours_before_due(DAY_ONE, None) is None


def test_bonus_breakdown_components():
    assert bonus_breakdown(20, 10, 30) == {"base": 20, "streak": 10, "early": 3}
    assert bonus_breakdown(10, 1, None) == {"base": 10, "streak": 0, "early": 0}
    # 60-day streak is capped at 250% of base
    assert bonus_breakdown(10, 60, 50) == {"base": 10, "streak": 25, "early": 2}


def test_first_completion_starts_streak():
    update = advance_streak(0, 0, None, DAY_ONE)
    assert update.current_streak_days == 1
    assert update.longest_streak_days == 1
    assert update.last_streak_date == DAY_ONE
    assert update.reset


def test_same_day_completion_keeps_streak():
    update = advance_streak(4, 6, DAY_ONE, DAY_ONE + timedelta(hours=5))
    assert update.current_streak_days == 4
    assert update.longest_streak_days == 6
    assert not update.reset


def test_next_day_completion_extends_streak():
    update = advance_streak(4, 4, DAY_ONE, DAY_ONE + timedelta(days=1, hours=8))
    assert update.current_streak_days == 5
    assert update.longest_streak_days == 5
    assert not update.reset


def test_grace_period_extends_deadline():
    # day one 15:00 -> deadline is day three 04:00 with a 4 hour grace period
    inside = datetime(2026, 3, 3, 3, 30)
    outside = datetime(2026, 3, 3, 5, 0)
    assert advance_streak(4, 4, DAY_ONE, inside, 4).current_streak_days == 5

    update = advance_streak(4, 4, DAY_ONE, outside, 4)
    assert update.current_streak_days == 1
    assert update.longest_streak_days == 4
    assert update.reset

    # no grace at all: day three is already too late
    assert advance_streak(4, 4, DAY_ONE, inside, 0).current_streak_days == 1


def test_milestones_to_pay_respects_watermark():
    assert milestones_to_pay(2, 0) == []
    assert milestones_to_pay(3, 0) == [3]
    assert milestones_to_pay(3, 3) == []
    assert milestones_to_pay(7, 3) == [7]
    assert milestones_to_pay(15, 0) == [3, 7, 14]
    assert milestone_bonus(7) == 35


def test_streak_at_risk():
    grace = 4
    assert not is_streak_at_risk(0, DAY_ONE, DAY_ONE + timedelta(days=1), grace)
    assert not is_streak_at_risk(2, None, DAY_ONE, grace)
    # already active today
    assert not is_streak_at_risk(2, DAY_ONE, DAY_ONE + timedelta(hours=3), grace)
    # grace window after midnight is still open
    assert not is_streak_at_risk(2, DAY_ONE, datetime(2026, 3, 2, 2, 0), grace)
    assert is_streak_at_risk(2, DAY_ONE, datetime(2026, 3, 2, 10, 0), grace)
    assert is_streak_at_risk(2, DAY_ONE, datetime(2026, 3, 2, 2, 0), 0)
