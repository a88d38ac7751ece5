"""Read-only endpoints exposing the XP curve for progress displays."""

from fastapi import APIRouter, Query

from points_economy.leveling import (
    level_from_xp,
    total_xp_for_level,
    xp_for_level,
)
from points_economy.schemas import LevelProgressRead, LevelRequirementRead

router = APIRouter(prefix="/levels", tags=["levels"])


@router.get("/progress", response_model=LevelProgressRead)
async def read_progress(total_xp: int = Query(ge=0)):
    return LevelProgressRead(**level_from_xp(total_xp)._asdict())


@router.get("/{level}", response_model=LevelRequirementRead)
async def read_level(level: int):
    return LevelRequirementRead(
        level=level,
        xp_for_level=xp_for_level(level),
        total_xp_for_level=total_xp_for_level(level),
    )
