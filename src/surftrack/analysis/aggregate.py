"""
Session and lifetime rollups over wave statistics.

Both reductions are pure folds over already-collected records. Every average is
0.0 when its denominator is 0, and every best/longest value is a running
maximum starting at 0.0, so an empty input yields an all-zero summary.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from surftrack.analysis.track import TrackPoint
from surftrack.analysis.wave_stats import WaveStats


@dataclass(frozen=True)
class SessionSummary:
    """Aggregate over the waves of one outing."""

    wave_count: int = 0
    total_duration_seconds: float = 0.0     # sum of wave durations, not wall-clock span
    longest_wave_seconds: float = 0.0
    max_speed_kph: float = 0.0
    total_distance_km: float = 0.0
    start_latitude: float = 0.0
    start_longitude: float = 0.0


@dataclass(frozen=True)
class LifetimeSummary:
    """Aggregate over all of a user's sessions."""

    total_sessions: int = 0
    total_waves: int = 0
    total_time_seconds: float = 0.0
    avg_speed_kph: float = 0.0
    longest_wave_seconds: float = 0.0
    best_speed_kph: float = 0.0
    avg_waves_per_session: float = 0.0


def _safe_mean(total: float, count: int) -> float:
    return total / count if count > 0 else 0.0


def summarize_session(
    waves: Sequence[WaveStats],
    track_start: Optional[TrackPoint] = None,
) -> SessionSummary:
    """
    Roll up one session's waves.

    The start position is the first point of the first wave. When waves were
    computed without coordinates, track_start (the first ingested point) is
    used instead. With no waves at all the summary is all zeros.
    """
    if not waves:
        return SessionSummary()

    total_duration = 0.0
    longest = 0.0
    max_speed = 0.0
    distance = 0.0
    for w in waves:
        total_duration += w.duration_seconds
        distance += w.total_distance_km
        longest = max(longest, w.duration_seconds)
        max_speed = max(max_speed, w.top_speed_kph)

    first = waves[0].coordinates[0] if waves[0].coordinates else track_start
    return SessionSummary(
        wave_count=len(waves),
        total_duration_seconds=total_duration,
        longest_wave_seconds=longest,
        max_speed_kph=max_speed,
        total_distance_km=distance,
        start_latitude=first.latitude if first else 0.0,
        start_longitude=first.longitude if first else 0.0,
    )


def summarize_lifetime(
    sessions: Sequence[SessionSummary],
    waves: Sequence[WaveStats],
) -> LifetimeSummary:
    """
    Roll up every session and wave a user has recorded.

    Counts and totals come from the session summaries. The average speed is the
    mean of per-wave average speeds over `waves` (all waves across all
    sessions); longest wave and best speed take the maximum over both inputs,
    so a session summary stored without its waves still counts.
    """
    total_waves = 0
    total_time = 0.0
    longest = 0.0
    best = 0.0
    for s in sessions:
        total_waves += s.wave_count
        total_time += s.total_duration_seconds
        longest = max(longest, s.longest_wave_seconds)
        best = max(best, s.max_speed_kph)

    speed_sum = 0.0
    for w in waves:
        speed_sum += w.average_speed_kph
        longest = max(longest, w.duration_seconds)
        best = max(best, w.top_speed_kph)

    return LifetimeSummary(
        total_sessions=len(sessions),
        total_waves=total_waves,
        total_time_seconds=total_time,
        avg_speed_kph=_safe_mean(speed_sum, len(waves)),
        longest_wave_seconds=longest,
        best_speed_kph=best,
        avg_waves_per_session=_safe_mean(total_waves, len(sessions)),
    )
