"""Experience-point curve used to derive a child's level.

Level ``n`` needs ``floor(100 * 1.5 ** (n - 1))`` XP to reach level
``n + 1``.  XP is never spent, so a child's level is always a function
of lifetime XP alone and these helpers can be called from anywhere
without locking.
"""

import math
from typing import NamedTuple

from points_economy.exceptions import ValidationError

BASE_XP = 100
GROWTH_FACTOR = 1.5
MAX_LEVEL = 100

# Points paid per level reached on level-up (level 2 pays 10, level 3 pays 15).
LEVEL_UP_BONUS_MULTIPLIER = 5


class LevelProgress(NamedTuple):
    level: int
    current_xp: int
    next_level_xp: int


def xp_for_level(level: int) -> int:
    """XP needed to advance from ``level`` to ``level + 1``."""
    if level < 1 or level > MAX_LEVEL:
        raise ValidationError(f"Level must be between 1 and {MAX_LEVEL}")
    return math.floor(BASE_XP * math.pow(GROWTH_FACTOR, level - 1))


def total_xp_for_level(level: int) -> int:
    """Lifetime XP at which ``level`` is first reached."""
    if level < 1 or level > MAX_LEVEL:
        raise ValidationError(f"Level must be between 1 and {MAX_LEVEL}")
    return sum(xp_for_level(i) for i in range(1, level))


def level_from_xp(total_xp: int) -> LevelProgress:
    """Return the level, XP into that level, and XP needed for the next one.

    Accumulation stops at ``MAX_LEVEL``; XP earned beyond the cap stays in
    ``current_xp``.
    """
    if total_xp < 0:
        raise ValidationError("Experience points cannot be negative")
    level = 1
    remaining = total_xp
    while level < MAX_LEVEL and remaining >= xp_for_level(level):
        remaining -= xp_for_level(level)
        level += 1
    return LevelProgress(
        level=level, current_xp=remaining, next_level_xp=xp_for_level(level)
    )


def level_up_bonus(old_level: int, new_level: int) -> int:
    """Points owed for moving from ``old_level`` to ``new_level``.

    A single award can jump several levels; every level reached pays.
    """
    return sum(
        lvl * LEVEL_UP_BONUS_MULTIPLIER for lvl in range(old_level + 1, new_level + 1)
    )
