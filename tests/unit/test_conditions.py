"""Achievement condition parsing and evaluation."""

import pytest

from focusarena.gamification.conditions import (
    CONDITION_TYPES,
    DailyStudyHoursCondition,
    SubjectSessionsCondition,
    is_satisfied,
    parse_condition,
)
from focusarena.gamification.stats import UserStats


def _stats(**overrides) -> UserStats:
    return UserStats(user_id=1, **overrides)


class TestParseCondition:
    def test_known_types_parse(self):
        for kind in CONDITION_TYPES:
            payload = {"type": kind, "value": 1}
            if kind == "subject_sessions":
                payload["subject"] = "Math"
            if kind == "daily_study_hours":
                payload["timeframe"] = "today"
            assert parse_condition(payload) is not None, kind

    def test_unknown_type_is_none(self):
        assert parse_condition({"type": "lines_of_code", "value": 10}) is None

    def test_missing_value_is_none(self):
        assert parse_condition({"type": "total_sessions"}) is None

    def test_negative_value_is_none(self):
        assert parse_condition({"type": "total_sessions", "value": -1}) is None

    def test_subject_required(self):
        assert parse_condition({"type": "subject_sessions", "value": 5}) is None

    def test_timeframe_restricted(self):
        assert parse_condition({"type": "daily_study_hours", "value": 2, "timeframe": "month"}) is None

    def test_extra_keys_ignored(self):
        condition = parse_condition({"type": "subject_sessions", "value": 5, "subject": "Math", "note": "x"})
        assert isinstance(condition, SubjectSessionsCondition)

    def test_non_dict_payload(self):
        assert parse_condition("total_sessions") is None
        assert parse_condition(None) is None


class TestIsSatisfied:
    def test_total_study_hours(self):
        assert is_satisfied({"type": "total_study_hours", "value": 10}, _stats(total_study_hours=10.0))
        assert not is_satisfied({"type": "total_study_hours", "value": 10}, _stats(total_study_hours=9.9))

    def test_total_sessions(self):
        assert is_satisfied({"type": "total_sessions", "value": 1}, _stats(completed_sessions=1))
        assert not is_satisfied({"type": "total_sessions", "value": 1}, _stats())

    def test_streak_and_consecutive_days_read_streak(self):
        stats = _stats(streak_count=7)
        assert is_satisfied({"type": "streak_days", "value": 7}, stats)
        assert is_satisfied({"type": "consecutive_days", "value": 7}, stats)
        assert not is_satisfied({"type": "consecutive_days", "value": 8}, stats)

    def test_subject_sessions_exact_subject(self):
        stats = _stats(subject_sessions={"Math": 5})
        assert is_satisfied({"type": "subject_sessions", "value": 5, "subject": "Math"}, stats)
        assert not is_satisfied({"type": "subject_sessions", "value": 5, "subject": "math"}, stats)

    @pytest.mark.parametrize(("timeframe", "expected"), [("today", False), ("week", True)])
    def test_daily_study_hours_timeframes(self, timeframe, expected):
        stats = _stats(minutes_today=90, minutes_week=240)
        condition = DailyStudyHoursCondition(type="daily_study_hours", value=2, timeframe=timeframe)
        assert condition.is_satisfied(stats) is expected

    def test_milestones(self):
        stats = _stats(xp=1000, level=11)
        assert is_satisfied({"type": "xp_milestone", "value": 1000}, stats)
        assert is_satisfied({"type": "level_milestone", "value": 10}, stats)
        assert not is_satisfied({"type": "level_milestone", "value": 12}, stats)

    def test_malformed_never_satisfied(self):
        assert not is_satisfied({"type": "bogus", "value": 0}, _stats(xp=10_000))
