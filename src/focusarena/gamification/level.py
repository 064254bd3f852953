"""Level computation.

Levels are a flat 100 XP each: level 1 covers 0-99 XP, level 2 covers
100-199 XP, and so on. The frontend progress bar reads ``xp_into_level``.
"""

from __future__ import annotations

XP_PER_LEVEL = 100


def compute_level(total_xp: int) -> int:
    """Level for a lifetime XP total."""
    return max(total_xp, 0) // XP_PER_LEVEL + 1


def level_progress(total_xp: int) -> dict:
    """Level plus progress toward the next one."""
    xp_into_level = max(total_xp, 0) % XP_PER_LEVEL
    return {
        "level": compute_level(total_xp),
        "xp_into_level": xp_into_level,
        "xp_for_next_level": XP_PER_LEVEL - xp_into_level,
        "level_progress": xp_into_level / XP_PER_LEVEL * 100,
    }
