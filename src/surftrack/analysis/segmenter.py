"""
Wave segmentation: splits a continuous surf track into individual rides.

A hysteresis state machine walks the time-ordered track once:

  SEARCHING ──speed > start──▶ IN_WAVE ──speed < end──▶ POTENTIAL_END
      ▲                           ▲                          │
      │                           └──speed > end, in time────┤
      └──────────── gap expired: wave finalized ◀────────────┘

Two thresholds (start > end) stop the state flapping when speed hovers around a
single cutoff. The gap tolerance lets a ride survive brief dips caused by GPS
noise: the wave only ends once the time since the first low-speed point is
strictly greater than gap_tolerance_seconds. A finalized wave ends at that first
low-speed point; the trailing points belong to the gap. The point that expired
the gap is then re-evaluated from SEARCHING, so it can open the next wave.

step() is a pure transition function: it never rewinds and holds no state
outside the SegmenterState it is given, so transitions can be tested one point
at a time. segment_waves() folds it over a whole track.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from surftrack.analysis.track import TrackPoint


class Phase(str, Enum):
    SEARCHING = "searching"
    IN_WAVE = "in_wave"
    POTENTIAL_END = "potential_end"


@dataclass(frozen=True)
class SegmenterConfig:
    """Segmentation sensitivity. Speeds in kph, durations in seconds."""

    start_speed_threshold: float
    end_speed_threshold: float
    gap_tolerance_seconds: float
    min_wave_duration_seconds: float

    def __post_init__(self):
        if self.start_speed_threshold < 0 or self.end_speed_threshold < 0:
            raise ValueError("speed thresholds must be non-negative")
        if self.end_speed_threshold >= self.start_speed_threshold:
            raise ValueError(
                "end_speed_threshold must be strictly less than start_speed_threshold "
                f"(got end={self.end_speed_threshold}, start={self.start_speed_threshold})"
            )
        if self.gap_tolerance_seconds < 0:
            raise ValueError("gap_tolerance_seconds must be non-negative")
        if self.min_wave_duration_seconds < 0:
            raise ValueError("min_wave_duration_seconds must be non-negative")


@dataclass(frozen=True)
class SegmenterState:
    """
    Position of the state machine between two points.

    start_index: first point of the candidate wave (IN_WAVE / POTENTIAL_END).
    drop_index:  first point that fell below the end threshold (POTENTIAL_END),
                 with its timestamp in drop_time.
    """

    phase: Phase = Phase.SEARCHING
    start_index: Optional[int] = None
    drop_index: Optional[int] = None
    drop_time: Optional[datetime] = None


SEARCHING = SegmenterState()

# (start_index, end_index), both inclusive
Candidate = Tuple[int, int]


@dataclass(frozen=True)
class WaveInterval:
    """A contiguous run of track points identified as one ride."""

    start_index: int
    end_index: int                      # inclusive
    points: Tuple[TrackPoint, ...]

    @property
    def start_time(self):
        return self.points[0].timestamp

    @property
    def end_time(self):
        return self.points[-1].timestamp

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()


def step(
    state: SegmenterState,
    index: int,
    point: TrackPoint,
    config: SegmenterConfig,
) -> Tuple[SegmenterState, Optional[Candidate]]:
    """
    Advance the state machine by one point.

    Args:
        state: State after points[:index] were consumed.
        index: Position of point in the track.
        point: The point being consumed.
        config: Thresholds.

    Returns:
        (new_state, finalized) where finalized is the (start, end) index pair of
        a candidate wave that this point closed, or None. Candidates are not yet
        filtered by minimum duration; see segment_waves().
    """
    if state.phase is Phase.SEARCHING:
        if point.speed > config.start_speed_threshold:
            return SegmenterState(Phase.IN_WAVE, start_index=index), None
        return state, None

    if state.phase is Phase.IN_WAVE:
        if point.speed < config.end_speed_threshold:
            return SegmenterState(
                Phase.POTENTIAL_END,
                start_index=state.start_index,
                drop_index=index,
                drop_time=point.timestamp,
            ), None
        return state, None

    # POTENTIAL_END
    elapsed = (point.timestamp - state.drop_time).total_seconds()
    if elapsed > config.gap_tolerance_seconds:
        finalized = (state.start_index, state.drop_index)
        # Re-evaluate this point as a fresh candidate instead of skipping it.
        new_state, _ = step(SEARCHING, index, point, config)
        return new_state, finalized
    if point.speed > config.end_speed_threshold:
        return SegmenterState(Phase.IN_WAVE, start_index=state.start_index), None
    return state, None


def finish(state: SegmenterState, last_index: int) -> Optional[Candidate]:
    """Close whatever candidate is open when the track runs out."""
    if state.phase is Phase.IN_WAVE:
        return (state.start_index, last_index)
    if state.phase is Phase.POTENTIAL_END:
        return (state.start_index, state.drop_index)
    return None


def _to_interval(
    candidate: Candidate,
    points: Sequence[TrackPoint],
    config: SegmenterConfig,
) -> Optional[WaveInterval]:
    start, end = candidate
    if end - start < 1:
        return None
    interval = WaveInterval(
        start_index=start,
        end_index=end,
        points=tuple(points[start:end + 1]),
    )
    if interval.duration_seconds < config.min_wave_duration_seconds:
        return None
    return interval


def segment_waves(
    points: Sequence[TrackPoint],
    config: SegmenterConfig,
) -> List[WaveInterval]:
    """
    Segment a time-ordered track into waves.

    Candidates shorter than min_wave_duration_seconds, or with fewer than two
    points, are discarded silently. A track that never exceeds the start
    threshold yields an empty list.

    Args:
        points: Track points sorted by timestamp (see analysis.track).
        config: Segmentation thresholds.

    Returns:
        Non-overlapping WaveIntervals ordered by start time.
    """
    waves: List[WaveInterval] = []
    state = SEARCHING

    for i, point in enumerate(points):
        state, finalized = step(state, i, point, config)
        if finalized is not None:
            interval = _to_interval(finalized, points, config)
            if interval is not None:
                waves.append(interval)

    if points:
        finalized = finish(state, len(points) - 1)
        if finalized is not None:
            interval = _to_interval(finalized, points, config)
            if interval is not None:
                waves.append(interval)

    return waves
