"""Real-time event names and channel naming."""

from __future__ import annotations

from typing import Any

SESSION_STARTED = "session:started"
SESSION_COMPLETED = "session:completed"
CAMPUS_ACTIVITY = "campus:activity"
ACHIEVEMENT_UNLOCKED = "achievement:unlocked"
LEVEL_UP = "level:up"
FRIEND_REQUEST_RECEIVED = "friend:request_received"
FRIEND_REQUEST_ACCEPTED = "friend:request_accepted"
FRIEND_REQUEST_REJECTED = "friend:request_rejected"
FRIEND_REMOVED = "friend:removed"

Event = tuple[str, str, Any]  # (channel, event, data)

EVENT_TYPES = frozenset(
    {
        SESSION_STARTED,
        SESSION_COMPLETED,
        CAMPUS_ACTIVITY,
        ACHIEVEMENT_UNLOCKED,
        LEVEL_UP,
        FRIEND_REQUEST_RECEIVED,
        FRIEND_REQUEST_ACCEPTED,
        FRIEND_REQUEST_REJECTED,
        FRIEND_REMOVED,
    }
)

USER_CHANNEL_PREFIX = "user:"
CAMPUS_CHANNEL_PREFIX = "campus:"


def user_channel(user_id: int) -> str:
    return f"{USER_CHANNEL_PREFIX}{user_id}"


def campus_channel(university_id: int) -> str:
    return f"{CAMPUS_CHANNEL_PREFIX}{university_id}"


def is_known_channel(channel: str) -> bool:
    """True for ``user:{int}`` and ``campus:{int}`` channel names."""
    for prefix in (USER_CHANNEL_PREFIX, CAMPUS_CHANNEL_PREFIX):
        if channel.startswith(prefix):
            return channel[len(prefix):].isdigit()
    return False
