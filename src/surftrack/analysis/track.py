"""
TrackPoint dataclass and the ingestor that turns raw upload rows into a clean track.

TrackPoint is the in-memory representation used by every analysis module. It is
a plain frozen dataclass with no DB dependencies; analysis functions take
List[TrackPoint] and return pure results.

Raw rows are dicts keyed by the canonical column names (see
ingest.csv_reader):
  Time       → "HH:MM:SS" time of day, anchored to a caller-supplied date
  Latitude   → degrees, [-90, 90]
  Longitude  → degrees, [-180, 180]
  Speed      → kph, >= 0 (optional when require_speed=False)
Any other keys (Altitude, Satellites, AccelX/Y/Z, ...) are ignored.
"""
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Iterable, List, Mapping

from surftrack.analysis.geodesy import distance_km, speed_from_distance_time

_TIME_OF_DAY = re.compile(r"^\d{2}:\d{2}:\d{2}$")


class MalformedRowError(Exception):
    """Raised when a single input row cannot be turned into a TrackPoint."""


class InsufficientDataError(Exception):
    """Raised when fewer than two valid points remain, so no wave can exist."""


@dataclass(frozen=True)
class TrackPoint:
    """One telemetry sample. Immutable once ingested."""

    timestamp: datetime
    latitude: float     # degrees
    longitude: float    # degrees
    speed: float        # kph, >= 0

    @property
    def position(self):
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class RejectedRow:
    """A dropped input row: its 0-based position in the input and why."""

    row_number: int
    reason: str


@dataclass
class IngestResult:
    points: List[TrackPoint]
    rejected: List[RejectedRow] = field(default_factory=list)


def _parse_float(value: Any, name: str) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MalformedRowError(f"{name} is missing")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedRowError(f"{name} is not a number: {value!r}") from None
    if not math.isfinite(number):
        raise MalformedRowError(f"{name} is not finite: {value!r}")
    return number


def _parse_time_of_day(value: Any) -> time:
    text = value.strip() if isinstance(value, str) else ""
    if not _TIME_OF_DAY.match(text):
        raise MalformedRowError(f"Time is not HH:MM:SS: {value!r}")
    try:
        return datetime.strptime(text, "%H:%M:%S").time()
    except ValueError:
        raise MalformedRowError(f"Time is out of range: {value!r}") from None


def parse_row(row: Mapping[str, Any], reference_date: date) -> TrackPoint:
    """
    Parse one raw row into a TrackPoint.

    Speed is required: a missing, blank, unparseable or negative Speed is
    malformed, so every returned point has a finite speed >= 0.

    Raises:
        MalformedRowError: if any required field is missing or invalid.
    """
    return _parse_row(row, reference_date, require_speed=True)


def _parse_row(
    row: Mapping[str, Any],
    reference_date: date,
    require_speed: bool,
) -> TrackPoint:
    # With require_speed False a missing Speed comes back as NaN for
    # ingest_rows() to fill in.
    tod = _parse_time_of_day(row.get("Time"))

    lat = _parse_float(row.get("Latitude"), "Latitude")
    lon = _parse_float(row.get("Longitude"), "Longitude")
    if not -90.0 <= lat <= 90.0:
        raise MalformedRowError(f"Latitude out of range: {lat}")
    if not -180.0 <= lon <= 180.0:
        raise MalformedRowError(f"Longitude out of range: {lon}")

    raw_speed = row.get("Speed")
    speed_missing = raw_speed is None or (isinstance(raw_speed, str) and not raw_speed.strip())
    if speed_missing and not require_speed:
        speed = math.nan
    else:
        speed = _parse_float(raw_speed, "Speed")
        if speed < 0:
            raise MalformedRowError(f"Speed is negative: {speed}")

    return TrackPoint(
        timestamp=datetime.combine(reference_date, tod),
        latitude=lat,
        longitude=lon,
        speed=speed,
    )


def _fill_missing_speeds(points: List[TrackPoint]) -> List[TrackPoint]:
    """Derive speed from the previous fix for points ingested without one."""
    filled: List[TrackPoint] = []
    for i, pt in enumerate(points):
        if math.isnan(pt.speed):
            if i == 0:
                speed = 0.0
            else:
                prev = points[i - 1]
                elapsed = (pt.timestamp - prev.timestamp).total_seconds()
                speed = speed_from_distance_time(
                    distance_km(prev.position, pt.position), elapsed
                )
            pt = TrackPoint(pt.timestamp, pt.latitude, pt.longitude, speed)
        filled.append(pt)
    return filled


def ingest_rows(
    rows: Iterable[Mapping[str, Any]],
    reference_date: date,
    require_speed: bool = True,
) -> IngestResult:
    """
    Validate raw rows and return a clean, time-ordered track.

    Malformed rows are dropped and reported in IngestResult.rejected; they never
    fail the batch. Accepted rows are sorted by timestamp (stable, so rows with
    equal timestamps keep their input order).

    Args:
        rows: Raw rows keyed by Time / Latitude / Longitude / Speed.
        reference_date: Calendar date the times of day belong to.
        require_speed: Drop rows without a Speed value instead of deriving one.

    Raises:
        InsufficientDataError: if fewer than 2 rows survive validation.
    """
    points: List[TrackPoint] = []
    rejected: List[RejectedRow] = []

    for i, row in enumerate(rows):
        try:
            points.append(_parse_row(row, reference_date, require_speed))
        except MalformedRowError as exc:
            rejected.append(RejectedRow(row_number=i, reason=str(exc)))

    points.sort(key=lambda p: p.timestamp)

    if len(points) < 2:
        raise InsufficientDataError(
            f"Only {len(points)} valid point(s) after ingestion "
            f"({len(rejected)} row(s) rejected); need at least 2"
        )

    if not require_speed:
        points = _fill_missing_speeds(points)

    return IngestResult(points=points, rejected=rejected)


def sort_track(points: Iterable[TrackPoint]) -> List[TrackPoint]:
    """Time-order an already-parsed track (e.g. from an onboard device)."""
    return sorted(points, key=lambda p: p.timestamp)
