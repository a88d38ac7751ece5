"""Convenience imports for all schema classes used by the API."""

from .child import (
    ChildAccountCreate,
    ChildAccountRead,
    ChildAccountDetail,
    LevelProgressRead,
    TaskCompletionCreate,
    TaskAwardRead,
)
from .ledger import (
    LedgerEntryCreate,
    LedgerEntryRead,
    LedgerResponse,
    LedgerSummary,
    LedgerAuditRead,
)
from .reward import (
    RewardCreate,
    RewardUpdate,
    RewardRead,
    RewardCapDataRead,
    RewardWithCapData,
    RedeemRequest,
    RedemptionRead,
    RedemptionResult,
)
from .level import LevelRequirementRead
from .settings import SettingsRead, SettingsUpdate

__all__ = [
    "ChildAccountCreate",
    "ChildAccountRead",
    "ChildAccountDetail",
    "LevelProgressRead",
    "TaskCompletionCreate",
    "TaskAwardRead",
    "LedgerEntryCreate",
    "LedgerEntryRead",
    "LedgerResponse",
    "LedgerSummary",
    "LedgerAuditRead",
    "RewardCreate",
    "RewardUpdate",
    "RewardRead",
    "RewardCapDataRead",
    "RewardWithCapData",
    "RedeemRequest",
    "RedemptionRead",
    "RedemptionResult",
    "LevelRequirementRead",
    "SettingsRead",
    "SettingsUpdate",
]
