from pydantic import BaseModel


class LevelRequirementRead(BaseModel):
    level: int
    xp_for_level: int
    total_xp_for_level: int
