"""
End-to-end telemetry → session pipeline.

    raw rows → ingest_rows → segment_waves → compute_wave_stats → summarize_session

Each stage is a pure function of the previous stage's output, so one call never
shares state with another and identical input always produces identical
output. Reading the upload and persisting the result are the caller's job.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Mapping

from surftrack.analysis.aggregate import SessionSummary, summarize_session
from surftrack.analysis.segmenter import SegmenterConfig, segment_waves
from surftrack.analysis.track import (
    InsufficientDataError,
    RejectedRow,
    TrackPoint,
    ingest_rows,
    sort_track,
)
from surftrack.analysis.wave_stats import WaveStats, compute_wave_stats

logger = logging.getLogger(__name__)


class NoWavesFoundError(Exception):
    """Raised when a valid track contains no ride long enough to count."""


# Errors a caller must surface to the user, as opposed to rows and segments
# that are dropped silently along the way.
PIPELINE_ERRORS = (InsufficientDataError, NoWavesFoundError)


@dataclass
class SessionResult:
    summary: SessionSummary
    waves: List[WaveStats]
    point_count: int
    rejected_rows: List[RejectedRow] = field(default_factory=list)


def process_points(
    points: Iterable[TrackPoint],
    config: SegmenterConfig,
    include_coordinates: bool = True,
) -> SessionResult:
    """
    Run segmentation, statistics and session rollup over parsed points.

    Used directly for onboard-device tracks that arrive as TrackPoints; the
    points are time-sorted first.

    Raises:
        InsufficientDataError: if fewer than 2 points are given.
        NoWavesFoundError: if segmentation finds no wave.
    """
    track = sort_track(points)
    if len(track) < 2:
        raise InsufficientDataError(
            f"Only {len(track)} point(s) in track; need at least 2"
        )

    intervals = segment_waves(track, config)
    if not intervals:
        raise NoWavesFoundError(
            f"No waves detected in {len(track)} points "
            f"(start > {config.start_speed_threshold} kph, "
            f"min {config.min_wave_duration_seconds}s)"
        )

    waves = [compute_wave_stats(iv, include_coordinates) for iv in intervals]
    summary = summarize_session(waves, track_start=track[0])
    logger.info(
        "Detected %d wave(s) in %d points (total %.1fs, top %.1f kph)",
        summary.wave_count,
        len(track),
        summary.total_duration_seconds,
        summary.max_speed_kph,
    )
    return SessionResult(summary=summary, waves=waves, point_count=len(track))


def process_rows(
    rows: Iterable[Mapping[str, Any]],
    reference_date: date,
    config: SegmenterConfig,
    require_speed: bool = True,
    include_coordinates: bool = True,
) -> SessionResult:
    """
    Run the full pipeline over raw upload rows.

    Args:
        rows: Rows keyed by Time / Latitude / Longitude / Speed.
        reference_date: Session date that anchors each row's time of day.
        config: Segmentation thresholds.
        require_speed: Drop rows without Speed instead of deriving it.
        include_coordinates: Attach each wave's path to its WaveStats.

    Raises:
        InsufficientDataError: if fewer than 2 rows are valid.
        NoWavesFoundError: if segmentation finds no wave.
    """
    ingested = ingest_rows(rows, reference_date, require_speed)

    if ingested.rejected:
        logger.warning(
            "Skipped %d malformed row(s); %d valid point(s) remain",
            len(ingested.rejected),
            len(ingested.points),
        )
        for rej in ingested.rejected:
            logger.debug("Row %d rejected: %s", rej.row_number, rej.reason)

    result = process_points(ingested.points, config, include_coordinates)
    result.rejected_rows = ingested.rejected
    return result
