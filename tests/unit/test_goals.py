"""Tests for goal progress and rank-up."""
from datetime import datetime

import pytest

from surftrack.analysis.aggregate import SessionSummary
from surftrack.analysis.goals import (
    ActiveGoal,
    GoalDefinition,
    RankDefinition,
    apply_session_to_goals,
    rank_for_xp,
    reset_expired_goals,
)

SESSION_DATE = datetime(2025, 6, 14, 7, 30)   # a Saturday

SUMMARY = SessionSummary(
    wave_count=5,
    total_duration_seconds=62.0,
    longest_wave_seconds=18.0,
    max_speed_kph=27.5,
)

DEFINITIONS = {
    "ten_waves": GoalDefinition("ten_waves", "Ride 10 waves", "lifetime", "waveCount", 10, 50),
    "daily_three": GoalDefinition("daily_three", "Ride 3 waves today", "daily", "waveCount", 3, 20),
    "weekly_sessions": GoalDefinition(
        "weekly_sessions", "Surf 3 times this week", "weekly", "sessionCount", 3, 30),
    "minute_riding": GoalDefinition(
        "minute_riding", "Ride for a minute", "lifetime", "sessionDuration", 60, 40),
    "long_ride": GoalDefinition(
        "long_ride", "Ride a 20s wave", "lifetime", "longestWaveDuration", 20, 60),
    "speed_25": GoalDefinition("speed_25", "Hit 25 kph", "lifetime", "topSpeed", 25, 70),
}

RANKS = [
    RankDefinition(3, "Ripper", 300),
    RankDefinition(1, "Kook", 0),
    RankDefinition(2, "Grom", 100),
]


def apply(goals, xp=0, rank=1, summary=SUMMARY, when=SESSION_DATE):
    return apply_session_to_goals(xp, rank, goals, DEFINITIONS, RANKS, summary, when)


class TestGoalDefinition:
    def test_unknown_metric_rejected(self):
        with pytest.raises(ValueError):
            GoalDefinition("g", "", "lifetime", "distance", 1, 1)

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            GoalDefinition("g", "", "monthly", "waveCount", 1, 1)


class TestCumulativeGoals:
    def test_wave_count_adds(self):
        outcome = apply({"ten_waves": ActiveGoal(progress=2)})
        assert outcome.active_goals["ten_waves"].progress == 7
        assert not outcome.active_goals["ten_waves"].completed
        assert outcome.xp_gained == 0

    def test_session_count_adds_one(self):
        outcome = apply({"weekly_sessions": ActiveGoal(progress=1)})
        assert outcome.active_goals["weekly_sessions"].progress == 2

    def test_duration_adds_and_completes(self):
        outcome = apply({"minute_riding": ActiveGoal()})
        goal = outcome.active_goals["minute_riding"]
        assert goal.progress == 62.0
        assert goal.completed
        assert outcome.xp_gained == 40
        assert outcome.completed_goal_ids == ["minute_riding"]

    def test_zero_wave_session_makes_no_wave_progress(self):
        outcome = apply({"ten_waves": ActiveGoal(progress=2)}, summary=SessionSummary())
        assert outcome.active_goals["ten_waves"].progress == 2


class TestBestOfGoals:
    def test_top_speed_replaced_when_faster(self):
        outcome = apply({"speed_25": ActiveGoal(progress=21.0)})
        goal = outcome.active_goals["speed_25"]
        assert goal.progress == 27.5
        assert goal.completed
        assert outcome.xp_gained == 70

    def test_longest_wave_kept_when_not_beaten(self):
        outcome = apply({"long_ride": ActiveGoal(progress=19.0)})
        assert outcome.active_goals["long_ride"].progress == 19.0

    def test_longest_wave_improves_without_completing(self):
        outcome = apply({"long_ride": ActiveGoal(progress=10.0)})
        assert outcome.active_goals["long_ride"].progress == 18.0
        assert not outcome.active_goals["long_ride"].completed


class TestTimeframes:
    def test_daily_goal_counts_on_reset_day(self):
        goals = {"daily_three": ActiveGoal(last_reset=datetime(2025, 6, 14, 0, 0))}
        outcome = apply(goals)
        assert outcome.active_goals["daily_three"].completed

    def test_daily_goal_skipped_on_other_day(self):
        goals = {"daily_three": ActiveGoal(last_reset=datetime(2025, 6, 13, 0, 0))}
        outcome = apply(goals)
        assert outcome.active_goals["daily_three"].progress == 0

    def test_weekly_goal_counts_within_monday_week(self):
        # Monday 9 June → Saturday 14 June
        goals = {"weekly_sessions": ActiveGoal(last_reset=datetime(2025, 6, 9, 0, 0))}
        assert apply(goals).active_goals["weekly_sessions"].progress == 1

    def test_weekly_goal_skipped_in_previous_week(self):
        # Sunday 8 June belongs to the week before
        goals = {"weekly_sessions": ActiveGoal(last_reset=datetime(2025, 6, 8, 23, 0))}
        assert apply(goals).active_goals["weekly_sessions"].progress == 0


class TestSkippedGoals:
    def test_completed_goal_untouched(self):
        done = ActiveGoal(progress=10, completed=True)
        outcome = apply({"ten_waves": done})
        assert outcome.active_goals["ten_waves"] is done
        assert outcome.xp_gained == 0

    def test_unknown_goal_untouched(self):
        mystery = ActiveGoal(progress=1)
        outcome = apply({"retired_goal": mystery})
        assert outcome.active_goals["retired_goal"] is mystery

    def test_input_mapping_not_modified(self):
        goals = {"minute_riding": ActiveGoal()}
        apply(goals)
        assert goals == {"minute_riding": ActiveGoal()}


class TestRanks:
    def test_rank_up_after_xp_award(self):
        goals = {"speed_25": ActiveGoal(), "minute_riding": ActiveGoal()}
        outcome = apply(goals, xp=10, rank=1)
        assert outcome.xp_gained == 110
        assert outcome.xp == 120
        assert outcome.rank_level == 2

    def test_no_xp_no_rank_change(self):
        outcome = apply({"ten_waves": ActiveGoal()}, xp=500, rank=1)
        assert outcome.rank_level == 1

    def test_rank_never_goes_down(self):
        assert rank_for_xp(150, RANKS, current_rank=3) == 3

    def test_rank_for_xp_walks_ascending_thresholds(self):
        assert rank_for_xp(0, RANKS, current_rank=1) == 1
        assert rank_for_xp(100, RANKS, current_rank=1) == 2
        assert rank_for_xp(299, RANKS, current_rank=1) == 2
        assert rank_for_xp(300, RANKS, current_rank=1) == 3


SATURDAY = datetime(2025, 6, 14, 0, 0)
SUNDAY = datetime(2025, 6, 15, 0, 0)
MONDAY = datetime(2025, 6, 16, 0, 0)
TUESDAY = datetime(2025, 6, 17, 0, 0)
PREVIOUS_MONDAY = datetime(2025, 6, 9, 0, 0)


class TestResetExpiredGoals:
    def test_daily_goal_restarts_next_day(self):
        goals = {"daily_three": ActiveGoal(progress=3, completed=True, last_reset=SATURDAY)}
        reset = reset_expired_goals(goals, DEFINITIONS, SUNDAY)
        assert reset["daily_three"] == ActiveGoal(progress=0.0, completed=False, last_reset=SUNDAY)

    def test_daily_goal_kept_on_same_day(self):
        goal = ActiveGoal(progress=2, last_reset=SUNDAY)
        reset = reset_expired_goals({"daily_three": goal}, DEFINITIONS, SUNDAY.replace(hour=18))
        assert reset["daily_three"] is goal

    def test_daily_goal_without_reset_date_restarts(self):
        reset = reset_expired_goals({"daily_three": ActiveGoal(progress=1)}, DEFINITIONS, SUNDAY)
        assert reset["daily_three"].last_reset == SUNDAY
        assert reset["daily_three"].progress == 0.0

    def test_weekly_goal_restarts_on_monday(self):
        goals = {"weekly_sessions": ActiveGoal(progress=2, last_reset=PREVIOUS_MONDAY)}
        reset = reset_expired_goals(goals, DEFINITIONS, MONDAY)
        assert reset["weekly_sessions"] == ActiveGoal(progress=0.0, completed=False, last_reset=MONDAY)

    def test_weekly_goal_waits_for_monday(self):
        goal = ActiveGoal(progress=3, completed=True, last_reset=PREVIOUS_MONDAY)
        for day in (SATURDAY, SUNDAY, TUESDAY):
            reset = reset_expired_goals({"weekly_sessions": goal}, DEFINITIONS, day)
            assert reset["weekly_sessions"] is goal

    def test_weekly_goal_in_progress_kept_on_its_own_monday(self):
        goal = ActiveGoal(progress=1, last_reset=MONDAY)
        reset = reset_expired_goals({"weekly_sessions": goal}, DEFINITIONS, MONDAY.replace(hour=12))
        assert reset["weekly_sessions"] is goal

    def test_completed_weekly_goal_restarts_on_monday(self):
        goal = ActiveGoal(progress=3, completed=True, last_reset=MONDAY)
        reset = reset_expired_goals({"weekly_sessions": goal}, DEFINITIONS, MONDAY.replace(hour=12))
        assert not reset["weekly_sessions"].completed

    def test_lifetime_goal_never_reset(self):
        goal = ActiveGoal(progress=9, last_reset=PREVIOUS_MONDAY)
        reset = reset_expired_goals({"ten_waves": goal}, DEFINITIONS, MONDAY)
        assert reset["ten_waves"] is goal

    def test_unknown_and_inactive_goals_removed(self):
        definitions = dict(DEFINITIONS)
        definitions["retired"] = GoalDefinition(
            "retired", "Old goal", "lifetime", "waveCount", 5, 10, is_active=False)
        goals = {
            "retired": ActiveGoal(progress=1),
            "mystery": ActiveGoal(progress=1),
            "ten_waves": ActiveGoal(progress=4),
        }
        reset = reset_expired_goals(goals, definitions, MONDAY)
        assert set(reset) == {"ten_waves"}

    def test_input_mapping_not_modified(self):
        goals = {"daily_three": ActiveGoal(progress=3, completed=True, last_reset=SATURDAY)}
        reset_expired_goals(goals, DEFINITIONS, SUNDAY)
        assert goals["daily_three"].completed

    def test_restarted_daily_goal_counts_sessions_again(self):
        goals = {"daily_three": ActiveGoal(progress=3, completed=True, last_reset=SATURDAY)}
        assert apply(goals, when=SUNDAY.replace(hour=8)).xp_gained == 0

        goals = reset_expired_goals(goals, DEFINITIONS, SUNDAY)
        outcome = apply(goals, when=SUNDAY.replace(hour=8))
        assert outcome.active_goals["daily_three"].completed
        assert outcome.xp_gained == 20
