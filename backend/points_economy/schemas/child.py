"""Schemas for child points accounts and task completion awards."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .ledger import LedgerEntryRead
from .times import to_naive_utc


class ChildAccountCreate(BaseModel):
    child_id: int = Field(gt=0)
    display_name: Optional[str] = None


class LevelProgressRead(BaseModel):
    level: int
    current_xp: int
    next_level_xp: int


class ChildAccountRead(BaseModel):
    child_id: int
    display_name: Optional[str] = None
    points_balance: int
    total_points_earned: int
    level: int
    experience_points: int
    total_xp_earned: int
    current_streak_days: int
    longest_streak_days: int
    last_streak_date: Optional[datetime] = None
    last_milestone_paid: int
    created_at: datetime

    class Config:
        from_attributes = True


class ChildAccountDetail(ChildAccountRead):
    progress: LevelProgressRead
    streak_at_risk: bool


class TaskCompletionCreate(BaseModel):
    base_points: int = Field(gt=0)
    xp: Optional[int] = Field(default=None, ge=0)
    difficulty: Optional[str] = None  # easy, medium, hard
    completed_at: Optional[datetime] = None
    due_at: Optional[datetime] = None
    task_id: Optional[int] = None

    @field_validator("completed_at", "due_at")
    @classmethod
    def _naive_utc(cls, value):
        return to_naive_utc(value)


class TaskAwardRead(BaseModel):
    child_id: int
    points_awarded: int
    xp_awarded: int
    breakdown: dict[str, int]
    new_balance: int
    old_level: int
    new_level: int
    leveled_up: bool
    current_streak_days: int
    milestones_paid: list[int]
    entries: list[LedgerEntryRead]

    class Config:
        from_attributes = True
