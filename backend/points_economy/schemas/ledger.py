"""Ledger entry request and response models."""

from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel


class LedgerEntryCreate(BaseModel):
    # earned and redeemed entries are written only by awards and redemptions
    transaction_type: Literal["bonus", "penalty", "adjustment"]
    points_amount: int
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    breakdown: Optional[dict[str, int]] = None
    description: Optional[str] = None


class LedgerEntryRead(BaseModel):
    id: int
    child_id: int
    transaction_type: str
    points_amount: int
    balance_after: int
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    breakdown: Optional[dict] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LedgerResponse(BaseModel):
    balance: int
    entries: list[LedgerEntryRead]


class LedgerSummary(BaseModel):
    child_id: int
    balance: int
    totals: dict[str, int]


class LedgerAuditRead(BaseModel):
    child_id: int
    entries_checked: int
    points_balance: int
    consistent: bool = True

    class Config:
        from_attributes = True
