"""Endpoints for viewing and updating household settings."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from points_economy.database import get_session
from points_economy.schemas import SettingsRead, SettingsUpdate
from points_economy.crud import get_settings, save_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/", response_model=SettingsRead)
async def read_settings(db: AsyncSession = Depends(get_session)):
    """Retrieve the current configuration values."""
    settings = await get_settings(db)
    return SettingsRead(
        site_name=settings.site_name,
        streak_grace_period_hours=settings.streak_grace_period_hours,
    )


@router.put("/", response_model=SettingsRead)
async def update_settings(
    data: SettingsUpdate,
    db: AsyncSession = Depends(get_session),
):
    """Update settings such as the streak grace period."""
    settings = await get_settings(db)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(settings, field, value)
    updated = await save_settings(db, settings)
    logger.info("Settings updated: %s", data.model_dump(exclude_unset=True))
    return SettingsRead(
        site_name=updated.site_name,
        streak_grace_period_hours=updated.streak_grace_period_hours,
    )
