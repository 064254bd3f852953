"""XP settlement for completed study sessions.

Pure functions only; persistence lives in ``sessions.service``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from focusarena.gamification.level import compute_level

BASE_XP_PER_MINUTE = 1.2
PUNCTUALITY_TOLERANCE_MINUTES = 5
PUNCTUALITY_BONUS_RATE = 0.3


@dataclass(frozen=True)
class SessionSettlement:
    """Outcome of settling one session against a user's current totals."""

    actual_duration: int
    xp_earned: int
    new_xp: int
    new_level: int
    leveled_up: bool


def elapsed_minutes(start_time: datetime, end_time: datetime) -> int:
    """Whole minutes between two instants, rounded half up and clamped at zero."""
    seconds = (end_time - start_time).total_seconds()
    return max(0, math.floor(seconds / 60 + 0.5))


def session_xp(intended_duration: int, actual_duration: int, completed: bool) -> int:
    """XP for one session.

    1.2 XP per elapsed minute, plus 30% of the planned duration when the
    session ended within five minutes of plan. Abandoned sessions earn 0.
    """
    if not completed:
        return 0
    xp = math.floor(actual_duration * BASE_XP_PER_MINUTE)
    if abs(actual_duration - intended_duration) <= PUNCTUALITY_TOLERANCE_MINUTES:
        xp += math.floor(intended_duration * PUNCTUALITY_BONUS_RATE)
    return xp


def settle_session(
    user_xp: int,
    user_level: int,
    intended_duration: int,
    actual_duration: int,
    completed: bool,
) -> SessionSettlement:
    """Compute the XP award and resulting level for a finished session."""
    actual_duration = max(0, actual_duration)
    xp_earned = session_xp(intended_duration, actual_duration, completed)
    new_xp = user_xp + xp_earned
    new_level = compute_level(new_xp)
    return SessionSettlement(
        actual_duration=actual_duration,
        xp_earned=xp_earned,
        new_xp=new_xp,
        new_level=new_level,
        leveled_up=new_level > user_level,
    )
