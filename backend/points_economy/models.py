"""Database models used by the points economy engine.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic)
and represent child point accounts, the append-only points ledger,
rewards and their redemptions.  Datetimes are stored as naive UTC.
"""

from typing import Optional
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON

TRANSACTION_EARNED = "earned"
TRANSACTION_REDEEMED = "redeemed"
TRANSACTION_BONUS = "bonus"
TRANSACTION_PENALTY = "penalty"
TRANSACTION_ADJUSTMENT = "adjustment"

TRANSACTION_TYPES = (
    TRANSACTION_EARNED,
    TRANSACTION_REDEEMED,
    TRANSACTION_BONUS,
    TRANSACTION_PENALTY,
    TRANSACTION_ADJUSTMENT,
)
DEBIT_TYPES = (TRANSACTION_REDEEMED, TRANSACTION_PENALTY)
CREDIT_TYPES = (TRANSACTION_EARNED, TRANSACTION_BONUS)

REDEMPTION_PENDING = "pending"
REDEMPTION_APPROVED = "approved"
REDEMPTION_FULFILLED = "fulfilled"
REDEMPTION_CANCELLED = "cancelled"


def utcnow() -> datetime:
    """Current time as naive UTC, the form every datetime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ChildAccount(SQLModel, table=True):
    """Per-child points account; mirrors the ledger and tracks progression."""

    child_id: Optional[int] = Field(default=None, primary_key=True)
    display_name: Optional[str] = None
    points_balance: int = 0
    total_points_earned: int = 0  # lifetime credits, never decremented
    level: int = 1
    experience_points: int = 0  # progress within the current level
    total_xp_earned: int = 0
    current_streak_days: int = 0
    longest_streak_days: int = 0
    last_streak_date: Optional[datetime] = Field(default=None, sa_type=DateTime)
    last_milestone_paid: int = 0  # highest streak milestone paid this run
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class PointsLedgerEntry(SQLModel, table=True):
    """Immutable record of one change to a child's balance."""

    id: Optional[int] = Field(default=None, primary_key=True)
    child_id: int = Field(foreign_key="childaccount.child_id", index=True)
    transaction_type: str  # earned, redeemed, bonus, penalty, adjustment
    points_amount: int  # positive for credits, negative for debits
    balance_after: int
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    breakdown: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)


class Reward(SQLModel, table=True):
    """Something a child can spend points on, optionally capped."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    points_cost: int
    expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    max_redemptions_total: Optional[int] = None  # None means unlimited
    max_redemptions_per_child: Optional[int] = None  # None means unlimited
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class RewardRedemption(SQLModel, table=True):
    """One claim of a reward; non-cancelled rows count against the caps."""

    id: Optional[int] = Field(default=None, primary_key=True)
    reward_id: int = Field(foreign_key="reward.id", index=True)
    child_id: int = Field(foreign_key="childaccount.child_id", index=True)
    points_spent: int
    status: str = REDEMPTION_PENDING  # pending, approved, fulfilled, cancelled
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    approved_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    fulfilled_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    cancelled_at: Optional[datetime] = Field(default=None, sa_type=DateTime)


class Settings(SQLModel, table=True):
    """Singleton table storing household-wide configuration values."""

    id: Optional[int] = Field(default=1, primary_key=True)
    site_name: str = "TaskBuddy"
    streak_grace_period_hours: int = 4
