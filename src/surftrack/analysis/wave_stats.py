"""
Per-wave kinematics: duration, distance, average and top speed.

Speeds are derived from consecutive GPS fixes (haversine distance over elapsed
time), not taken from the device-reported speed channel. The device speed only
drives segmentation; it is too noisy to report as a ride's top speed.

Average speed is the mean of the per-step derived speeds, so it can exceed
distance / duration when steps are unevenly spaced. Both values are always
finite and non-negative.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from statistics import mean
from typing import List, Optional, Tuple

from surftrack.analysis.geodesy import distance_km, speed_from_distance_time
from surftrack.analysis.segmenter import WaveInterval
from surftrack.analysis.track import TrackPoint

logger = logging.getLogger(__name__)


class DegenerateSegmentWarning(Warning):
    """A pair of consecutive points with zero or negative elapsed time."""


@dataclass(frozen=True)
class WaveStats:
    """Computed summary of one wave. Replaced, never mutated, on correction."""

    start_time: datetime
    end_time: datetime
    duration_seconds: float
    top_speed_kph: float
    average_speed_kph: float
    total_distance_km: float
    skipped_pairs: int = 0
    coordinates: Optional[Tuple[TrackPoint, ...]] = None   # full path, for display


def _step(a: TrackPoint, b: TrackPoint) -> Tuple[float, float]:
    """
    Distance (km) and derived speed (kph) between two consecutive points.

    Raises:
        DegenerateSegmentWarning: if b is not strictly later than a.
    """
    elapsed = (b.timestamp - a.timestamp).total_seconds()
    if elapsed <= 0:
        raise DegenerateSegmentWarning(
            f"{elapsed:.3f}s between points at {a.timestamp.isoformat()}"
        )
    dist = distance_km(a.position, b.position)
    return dist, speed_from_distance_time(dist, elapsed)


def compute_wave_stats(
    wave: WaveInterval,
    include_coordinates: bool = True,
) -> WaveStats:
    """
    Compute duration, distance and speed statistics for one wave.

    Pairs with zero or negative elapsed time are skipped: they add nothing to
    distance and are left out of the speed average. A wave made only of such
    pairs reports zero speed and distance.

    Args:
        wave: A segmented wave (at least two points).
        include_coordinates: Attach the wave's points for path display.

    Returns:
        A WaveStats record.
    """
    pts = wave.points
    speeds: List[float] = []
    total_distance = 0.0
    skipped = 0

    for a, b in zip(pts, pts[1:]):
        try:
            dist, speed = _step(a, b)
        except DegenerateSegmentWarning as exc:
            skipped += 1
            logger.debug("Skipping degenerate segment: %s", exc)
            continue
        total_distance += dist
        speeds.append(speed)

    duration = max(0.0, (pts[-1].timestamp - pts[0].timestamp).total_seconds())

    return WaveStats(
        start_time=pts[0].timestamp,
        end_time=pts[-1].timestamp,
        duration_seconds=duration,
        top_speed_kph=max(speeds) if speeds else 0.0,
        average_speed_kph=mean(speeds) if speeds else 0.0,
        total_distance_km=total_distance,
        skipped_pairs=skipped,
        coordinates=tuple(pts) if include_coordinates else None,
    )
