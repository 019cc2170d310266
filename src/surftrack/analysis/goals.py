"""
Goal progress and rank-up for a newly recorded session.

Goals come in three timeframes:
  - daily:    only sessions on the same calendar day as the goal's last reset count
  - weekly:   only sessions in the same Monday-start week as the last reset count
  - lifetime: every session counts

and five metrics. Cumulative metrics add the session's contribution:
  waveCount        += summary.wave_count
  sessionCount     += 1
  sessionDuration  += summary.total_duration_seconds
Best-of metrics replace progress only when the session beats it:
  longestWaveDuration, topSpeed

A goal that reaches its target is completed once and awards its XP. XP gained
may lift the user into a higher rank; ranks never go down.

reset_expired_goals() is the daily rollover run at 00:00 UTC. It drops goals
whose definition is gone or inactive. It also restarts daily goals from a
previous day, and on Mondays restarts weekly goals from a previous week or
already completed.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence

from surftrack.analysis.aggregate import SessionSummary

logger = logging.getLogger(__name__)

CUMULATIVE_METRICS = ("waveCount", "sessionCount", "sessionDuration")
BEST_OF_METRICS = ("longestWaveDuration", "topSpeed")
WEEKLY_RESET_WEEKDAY = 0  # Monday


@dataclass(frozen=True)
class GoalDefinition:
    goal_id: str
    description: str
    type: str           # "daily" | "weekly" | "lifetime"
    metric: str         # one of CUMULATIVE_METRICS + BEST_OF_METRICS
    target: float
    xp_reward: int
    is_active: bool = True

    def __post_init__(self):
        if self.type not in ("daily", "weekly", "lifetime"):
            raise ValueError(f"Unknown goal type: {self.type!r}")
        if self.metric not in CUMULATIVE_METRICS + BEST_OF_METRICS:
            raise ValueError(f"Unknown goal metric: {self.metric!r}")


@dataclass(frozen=True)
class ActiveGoal:
    progress: float = 0.0
    completed: bool = False
    last_reset: Optional[datetime] = None


@dataclass(frozen=True)
class RankDefinition:
    rank_level: int
    name: str
    xp_threshold: int


@dataclass
class GoalOutcome:
    active_goals: Dict[str, ActiveGoal]
    xp_gained: int
    xp: int
    rank_level: int
    completed_goal_ids: List[str] = field(default_factory=list)


def _week_start(d: date) -> date:
    return d - timedelta(days=d.weekday())


def _in_timeframe(goal: GoalDefinition, active: ActiveGoal, session_date: datetime) -> bool:
    if goal.type == "lifetime" or active.last_reset is None:
        return True
    reset = active.last_reset.date()
    if goal.type == "daily":
        return reset == session_date.date()
    return _week_start(reset) == _week_start(session_date.date())


def _session_value(metric: str, summary: SessionSummary) -> float:
    if metric == "waveCount":
        return float(summary.wave_count)
    if metric == "sessionCount":
        return 1.0
    if metric == "sessionDuration":
        return summary.total_duration_seconds
    if metric == "longestWaveDuration":
        return summary.longest_wave_seconds
    return summary.max_speed_kph


def rank_for_xp(xp: int, ranks: Sequence[RankDefinition], current_rank: int) -> int:
    """Highest rank whose threshold xp has reached, never below current_rank."""
    level = current_rank
    for rank in sorted(ranks, key=lambda r: r.xp_threshold):
        if xp < rank.xp_threshold:
            break
        level = max(level, rank.rank_level)
    return level


def apply_session_to_goals(
    xp: int,
    rank_level: int,
    active_goals: Mapping[str, ActiveGoal],
    definitions: Mapping[str, GoalDefinition],
    ranks: Sequence[RankDefinition],
    summary: SessionSummary,
    session_date: datetime,
) -> GoalOutcome:
    """
    Advance a user's active goals with one session and award XP.

    Goals without a definition, already-completed goals and goals whose
    timeframe doesn't include session_date are left as they are. The input
    mapping is not modified.

    Args:
        xp: User's XP before this session.
        rank_level: User's rank before this session.
        active_goals: goal_id → ActiveGoal for the user.
        definitions: goal_id → GoalDefinition for all known goals.
        ranks: All rank definitions (any order).
        summary: The session's rollup.
        session_date: When the session took place.

    Returns:
        GoalOutcome with the updated goals, XP and rank.
    """
    updated = dict(active_goals)
    xp_gained = 0
    completed: List[str] = []

    for goal_id, active in active_goals.items():
        goal = definitions.get(goal_id)
        if goal is None or active.completed:
            continue
        if not _in_timeframe(goal, active, session_date):
            continue

        value = _session_value(goal.metric, summary)
        if goal.metric in BEST_OF_METRICS:
            if value <= active.progress:
                continue
            progress = value
        else:
            if value <= 0:
                continue
            progress = active.progress + value

        new_goal = replace(active, progress=progress)
        if progress >= goal.target:
            new_goal = replace(new_goal, completed=True)
            xp_gained += goal.xp_reward
            completed.append(goal_id)
        updated[goal_id] = new_goal

    new_xp = xp + xp_gained
    new_rank = rank_for_xp(new_xp, ranks, rank_level) if xp_gained > 0 else rank_level

    return GoalOutcome(
        active_goals=updated,
        xp_gained=xp_gained,
        xp=new_xp,
        rank_level=new_rank,
        completed_goal_ids=completed,
    )


def _restarted(goal_id: str, now: datetime) -> ActiveGoal:
    logger.info("Resetting goal %s", goal_id)
    return ActiveGoal(progress=0.0, completed=False, last_reset=now)


def reset_expired_goals(
    active_goals: Mapping[str, ActiveGoal],
    definitions: Mapping[str, GoalDefinition],
    now: datetime,
) -> Dict[str, ActiveGoal]:
    """
    Roll a user's active goals over into the current period.

    - Goals with no definition, or an inactive one, are removed.
    - A daily goal last reset on an earlier day restarts.
    - On the weekly reset day (Monday), a weekly goal restarts if it was last
      reset in an earlier week or is already completed.
    - Lifetime goals are never reset.

    A restarted goal has progress 0, is not completed and has last_reset=now,
    so the sessions that follow fall inside its timeframe. A goal with no
    last_reset counts as due. The input mapping is not modified.
    """
    today = now.date()
    is_weekly_reset_day = today.weekday() == WEEKLY_RESET_WEEKDAY
    updated: Dict[str, ActiveGoal] = {}

    for goal_id, active in active_goals.items():
        goal = definitions.get(goal_id)
        if goal is None or not goal.is_active:
            logger.info("Removing inactive or unknown goal %s", goal_id)
            continue

        last = active.last_reset.date() if active.last_reset is not None else None
        if goal.type == "daily" and (last is None or last < today):
            active = _restarted(goal_id, now)
        elif goal.type == "weekly" and is_weekly_reset_day and (
            last is None or _week_start(last) < _week_start(today) or active.completed
        ):
            active = _restarted(goal_id, now)
        updated[goal_id] = active

    return updated
