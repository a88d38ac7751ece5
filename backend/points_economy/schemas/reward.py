"""Schemas for rewards, their capacity data and redemptions."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

from .times import to_naive_utc


class RewardBase(BaseModel):
    name: str
    description: Optional[str] = None
    points_cost: int = Field(ge=0)
    expires_at: Optional[datetime] = None
    max_redemptions_total: Optional[int] = Field(default=None, ge=0)
    max_redemptions_per_child: Optional[int] = Field(default=None, ge=0)
    is_active: bool = True

    @field_validator("expires_at")
    @classmethod
    def _naive_utc(cls, value):
        return to_naive_utc(value)


class RewardCreate(RewardBase):
    pass


class RewardUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    points_cost: Optional[int] = Field(default=None, ge=0)
    expires_at: Optional[datetime] = None
    max_redemptions_total: Optional[int] = Field(default=None, ge=0)
    max_redemptions_per_child: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("expires_at")
    @classmethod
    def _naive_utc(cls, value):
        return to_naive_utc(value)


class RewardRead(RewardBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class RewardCapDataRead(BaseModel):
    total_redemptions_used: int
    remaining_total: Optional[int] = None
    remaining_for_child: Optional[int] = None
    is_expired: bool
    is_sold_out: bool

    class Config:
        from_attributes = True


class RewardWithCapData(RewardRead):
    cap_data: RewardCapDataRead


class RedeemRequest(BaseModel):
    child_id: int


class RedemptionRead(BaseModel):
    id: int
    reward_id: int
    child_id: int
    points_spent: int
    status: str
    created_at: datetime
    approved_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RedemptionResult(BaseModel):
    redemption: RedemptionRead
    points_spent: int
    new_balance: int

    class Config:
        from_attributes = True
