"""
SessionStore: persists pipeline results and reads them back for rollups.

The analysis core never touches the database: this store hands it complete,
already-fetched collections. Lifetime stats need every wave of every session,
so the per-session wave fetches are fanned out concurrently (one worker thread
per session) and only aggregated once all of them have returned.

Corrections are replacement: saving over an existing session rewrites its
scalar fields and deletes + re-inserts its waves, so stale waves never linger.
"""
import asyncio
import json
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from surftrack.analysis.aggregate import LifetimeSummary, SessionSummary, summarize_lifetime
from surftrack.analysis.pipeline import SessionResult
from surftrack.analysis.track import TrackPoint
from surftrack.analysis.wave_stats import WaveStats
from surftrack.models.surf import SurfSession, Wave, as_utc

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "latest": (col(SurfSession.session_date).desc(),),
    "oldest": (col(SurfSession.session_date).asc(),),
    "spot_az": (col(SurfSession.location).asc(), col(SurfSession.session_date).desc()),
    "most_waves": (col(SurfSession.wave_count).desc(), col(SurfSession.session_date).desc()),
}


def _coordinates_to_json(points: Optional[tuple]) -> Optional[str]:
    if points is None:
        return None
    return json.dumps([
        {
            "t": p.timestamp.isoformat(),
            "lat": p.latitude,
            "lon": p.longitude,
            "speed": p.speed,
        }
        for p in points
    ])


def _coordinates_from_json(raw: Optional[str]) -> Optional[tuple]:
    if raw is None:
        return None
    return tuple(
        TrackPoint(
            timestamp=datetime.fromisoformat(p["t"]),
            latitude=p["lat"],
            longitude=p["lon"],
            speed=p["speed"],
        )
        for p in json.loads(raw)
    )


def _wall_clock(value: datetime) -> datetime:
    # Stored as UTC-tagged wall-clock time; the analysis side works in naive time.
    return as_utc(value).replace(tzinfo=None)


def wave_row_to_stats(row: Wave) -> WaveStats:
    return WaveStats(
        start_time=_wall_clock(row.start_time),
        end_time=_wall_clock(row.end_time),
        duration_seconds=row.duration_seconds,
        top_speed_kph=row.top_speed_kph,
        average_speed_kph=row.average_speed_kph,
        total_distance_km=row.distance_km,
        skipped_pairs=row.skipped_pairs,
        coordinates=_coordinates_from_json(row.coordinates_json),
    )


def session_row_to_summary(row: SurfSession) -> SessionSummary:
    return SessionSummary(
        wave_count=row.wave_count,
        total_duration_seconds=row.duration_seconds,
        longest_wave_seconds=row.longest_wave_seconds,
        max_speed_kph=row.max_speed_kph,
        total_distance_km=row.total_distance_km,
        start_latitude=row.start_latitude,
        start_longitude=row.start_longitude,
    )


class SessionStore:
    """Reads and writes surf sessions for one database."""

    def __init__(self, engine):
        """
        Args:
            engine: SQLAlchemy engine (SQLModel create_engine result).
        """
        self.engine = engine

    def save_session(
        self,
        user_id: str,
        result: SessionResult,
        session_date: datetime,
        location: str = "",
        session_id: Optional[int] = None,
    ) -> SurfSession:
        """
        Persist a pipeline result as a session plus its waves.

        Args:
            user_id: Owner of the session (not validated here).
            result: Output of analysis.pipeline.
            session_date: When the outing took place.
            location: Spot name.
            session_id: Existing session to replace, or None to create one.

        Returns:
            The persisted SurfSession row.

        Raises:
            KeyError: if session_id is given but doesn't exist.
        """
        summary = result.summary
        fields = dict(
            user_id=user_id,
            location=location,
            session_date=as_utc(session_date),
            wave_count=summary.wave_count,
            duration_seconds=summary.total_duration_seconds,
            longest_wave_seconds=summary.longest_wave_seconds,
            max_speed_kph=summary.max_speed_kph,
            total_distance_km=summary.total_distance_km,
            start_latitude=summary.start_latitude,
            start_longitude=summary.start_longitude,
        )

        with Session(self.engine) as s:
            if session_id is not None:
                row = s.get(SurfSession, session_id)
                if row is None:
                    raise KeyError(f"No session with id {session_id}")
                for k, v in fields.items():
                    setattr(row, k, v)
                for old in s.exec(select(Wave).where(Wave.session_id == session_id)).all():
                    s.delete(old)
                s.flush()
            else:
                row = SurfSession(**fields)
                s.add(row)
                s.flush()

            for i, w in enumerate(result.waves):
                s.add(Wave(
                    session_id=row.id,
                    user_id=user_id,
                    wave_index=i,
                    start_time=as_utc(w.start_time),
                    end_time=as_utc(w.end_time),
                    duration_seconds=w.duration_seconds,
                    top_speed_kph=w.top_speed_kph,
                    average_speed_kph=w.average_speed_kph,
                    distance_km=w.total_distance_km,
                    skipped_pairs=w.skipped_pairs,
                    coordinates_json=_coordinates_to_json(w.coordinates),
                ))
            s.add(row)
            s.commit()
            s.refresh(row)

        logger.info(
            "Saved session %s for user %s (%d waves)",
            row.id, user_id, summary.wave_count,
        )
        return row

    def list_sessions(self, user_id: str, sort: str = "latest") -> List[SurfSession]:
        """
        A user's sessions in one of the SORT_ORDERS.

        Raises:
            ValueError: for an unknown sort key.
        """
        if sort not in SORT_ORDERS:
            raise ValueError(f"Unknown sort {sort!r}; expected one of {sorted(SORT_ORDERS)}")
        with Session(self.engine) as s:
            return list(s.exec(
                select(SurfSession)
                .where(SurfSession.user_id == user_id)
                .order_by(*SORT_ORDERS[sort])
            ).all())

    def load_waves(self, session_id: int) -> List[WaveStats]:
        """A session's waves, in ride order."""
        with Session(self.engine) as s:
            rows = s.exec(
                select(Wave)
                .where(Wave.session_id == session_id)
                .order_by(col(Wave.wave_index).asc())
            ).all()
            return [wave_row_to_stats(r) for r in rows]

    def weekly_wave_count(self, user_id: str, now: datetime, days: int = 7) -> int:
        """
        Waves ridden in sessions dated on or after `days` before `now`.

        There is no upper bound, so a session dated later today still counts.
        Naive datetimes are taken as UTC.
        """
        since = as_utc(now) - timedelta(days=days)
        with Session(self.engine) as s:
            total = s.exec(
                select(func.coalesce(func.sum(SurfSession.wave_count), 0))
                .where(SurfSession.user_id == user_id)
                .where(SurfSession.session_date >= since)
            ).one()
        return int(total)

    async def lifetime_summary(self, user_id: str) -> LifetimeSummary:
        """
        Lifetime rollup for a user.

        Fetches the session list, then every session's waves concurrently, and
        aggregates only once all fetches have completed.
        """
        sessions = self.list_sessions(user_id)
        loop = asyncio.get_event_loop()
        wave_lists = await asyncio.gather(*(
            loop.run_in_executor(None, self.load_waves, row.id) for row in sessions
        ))
        waves = [w for batch in wave_lists for w in batch]
        logger.info(
            "Lifetime stats for %s: %d sessions, %d waves",
            user_id, len(sessions), len(waves),
        )
        return summarize_lifetime(
            [session_row_to_summary(row) for row in sessions],
            waves,
        )
