"""Datetime normalization shared by request schemas."""

from datetime import datetime, timezone
from typing import Optional


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert aware datetimes to naive UTC, the form stored in the database."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
