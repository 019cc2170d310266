"""
Command-line entrypoint.

Usage:
    python -m surftrack process track.csv --date 2025-06-14 --location "Pipeline"
    python -m surftrack process track.csv --date 2025-06-14 --no-save
    python -m surftrack stats --sort most_waves

Thresholds and the database location come from the environment / .env
(see surftrack.config.Settings).
"""
import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


def _parse_date(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from None


def _run_process(args: argparse.Namespace) -> int:
    from surftrack.analysis.pipeline import NoWavesFoundError, process_rows
    from surftrack.analysis.track import InsufficientDataError
    from surftrack.config import get_settings
    from surftrack.ingest.csv_reader import CsvReadError, read_csv_rows

    settings = get_settings()
    user_id = args.user or settings.user_id

    try:
        rows = read_csv_rows(args.csv)
        result = process_rows(
            rows,
            args.date.date(),
            settings.segmenter_config(),
            require_speed=settings.require_speed,
            include_coordinates=not args.no_save,
        )
    except CsvReadError as exc:
        logger.error("%s", exc)
        return 1
    except InsufficientDataError as exc:
        logger.error("Upload had too little data: %s", exc)
        return 1
    except NoWavesFoundError as exc:
        logger.error("No rides detected in this upload: %s", exc)
        return 1

    s = result.summary
    print(
        f"{s.wave_count} waves | {s.total_duration_seconds:.0f}s riding | "
        f"longest {s.longest_wave_seconds:.0f}s | top {s.max_speed_kph:.1f} kph | "
        f"{s.total_distance_km * 1000:.0f} m"
    )
    for i, w in enumerate(result.waves, start=1):
        print(
            f"  Wave {i}: {w.start_time:%H:%M:%S}-{w.end_time:%H:%M:%S} "
            f"{w.duration_seconds:.0f}s avg {w.average_speed_kph:.1f} kph "
            f"top {w.top_speed_kph:.1f} kph {w.total_distance_km * 1000:.0f} m"
        )

    if not args.no_save:
        from surftrack.db.engine import get_engine
        from surftrack.store.session_store import SessionStore

        store = SessionStore(get_engine())
        row = store.save_session(user_id, result, args.date, location=args.location)
        print(f"Saved as session {row.id}")
    return 0


def _run_stats(args: argparse.Namespace) -> int:
    from surftrack.config import get_settings
    from surftrack.db.engine import get_engine
    from surftrack.store.session_store import SessionStore

    settings = get_settings()
    user_id = args.user or settings.user_id
    store = SessionStore(get_engine())

    lifetime = asyncio.run(store.lifetime_summary(user_id))
    weekly = store.weekly_wave_count(user_id, datetime.now(timezone.utc))

    print(
        f"{lifetime.total_sessions} sessions | {lifetime.total_waves} waves "
        f"({lifetime.avg_waves_per_session:.1f}/session) | "
        f"{lifetime.total_time_seconds:.0f}s riding"
    )
    print(
        f"avg {lifetime.avg_speed_kph:.1f} kph | best {lifetime.best_speed_kph:.1f} kph | "
        f"longest wave {lifetime.longest_wave_seconds:.0f}s | {weekly} waves this week"
    )
    for row in store.list_sessions(user_id, sort=args.sort):
        print(
            f"  #{row.id} {row.session_date:%Y-%m-%d} {row.location or '-'}: "
            f"{row.wave_count} waves, top {row.max_speed_kph:.1f} kph"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="surftrack", description="Surf session analytics")
    sub = parser.add_subparsers(dest="command", required=True)

    proc = sub.add_parser("process", help="Detect waves in a track CSV")
    proc.add_argument("csv", type=Path, help="Track CSV (Time, Latitude, Longitude, Speed)")
    proc.add_argument("--date", type=_parse_date, required=True, help="Session date, YYYY-MM-DD")
    proc.add_argument("--location", default="", help="Spot name")
    proc.add_argument("--user", default=None, help="User id (default: settings.user_id)")
    proc.add_argument("--no-save", action="store_true", help="Print results without saving")
    proc.set_defaults(func=_run_process)

    stats = sub.add_parser("stats", help="Show lifetime stats and sessions")
    stats.add_argument("--user", default=None, help="User id (default: settings.user_id)")
    stats.add_argument(
        "--sort",
        choices=["latest", "oldest", "spot_az", "most_waves"],
        default="latest",
    )
    stats.set_defaults(func=_run_stats)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
