"""Pydantic models for household configuration settings."""

from pydantic import BaseModel, Field


class SettingsRead(BaseModel):
    site_name: str
    streak_grace_period_hours: int

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    site_name: str | None = None
    streak_grace_period_hours: int | None = Field(default=None, ge=0, le=24)
