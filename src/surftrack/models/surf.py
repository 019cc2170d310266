"""Surf data models: sessions and the waves ridden in them.

Every datetime column holds a timezone-aware UTC value. Track timestamps are
naive wall-clock times; as_utc() tags them before they are written.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


def as_utc(value: datetime) -> datetime:
    """Tag a naive datetime as UTC, or convert an aware one to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SurfSession(SQLModel, table=True):
    """One row per tracked outing. Scalar fields mirror SessionSummary."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)  # opaque id from the auth layer
    location: str = ""
    session_date: datetime = Field(index=True)

    wave_count: int = 0
    duration_seconds: float = 0.0  # sum of wave durations
    longest_wave_seconds: float = 0.0
    max_speed_kph: float = 0.0
    total_distance_km: float = 0.0
    start_latitude: float = 0.0
    start_longitude: float = 0.0

    created_at: datetime = Field(default_factory=_utcnow)

    # Relationships
    waves: List["Wave"] = Relationship(back_populates="session")


class Wave(SQLModel, table=True):
    """
    One row per detected wave. Rows are never edited in place: re-processing a
    session deletes its waves and inserts fresh ones.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="surfsession.id", index=True)
    user_id: str

    wave_index: int  # 0-based order within the session
    start_time: datetime
    end_time: datetime
    duration_seconds: float
    top_speed_kph: float
    average_speed_kph: float
    distance_km: float
    skipped_pairs: int = 0  # zero-duration GPS pairs left out of the stats

    # JSON list of {"t", "lat", "lon", "speed"} for path display; None when
    # the pipeline ran without coordinates
    coordinates_json: Optional[str] = None

    # Relationship
    session: Optional[SurfSession] = Relationship(back_populates="waves")
