"""Aggregate import for all API route modules."""

from . import (
    children,
    ledger,
    rewards,
    levels,
    settings,
)

__all__ = [
    "children",
    "ledger",
    "rewards",
    "levels",
    "settings",
]
