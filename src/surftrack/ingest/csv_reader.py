"""
CSV upload reader: turns a board-tracker CSV export into raw row dicts.

Column names vary between firmware versions and phone exports, so each
canonical column is matched against a list of known variants:

  Time       ← Time, time, TIME, GPS Time, gps_time
  Latitude   ← Latitude, latitude, Lat, lat
  Longitude  ← Longitude, longitude, Lon, lon, Long, long
  Speed      ← Speed, speed, KPH, kph, Speed (KPH), Speed (km/h), speed_kph

Every cell is read as a string; validation happens in analysis.track so a bad
cell drops one row instead of the whole upload. Extra channels (Altitude,
Satellites, AccelX/Y/Z) are passed through untouched.
"""
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

COLUMN_MAPPINGS = {
    "Time": ["Time", "time", "TIME", "GPS Time", "gps_time"],
    "Latitude": ["Latitude", "latitude", "LATITUDE", "Lat", "lat"],
    "Longitude": ["Longitude", "longitude", "LONGITUDE", "Lon", "lon", "Long", "long"],
    "Speed": ["Speed", "speed", "KPH", "kph", "Speed (KPH)", "Speed (km/h)", "speed_kph"],
}

REQUIRED_COLUMNS = ("Time", "Latitude", "Longitude")


class CsvReadError(Exception):
    """Raised when an upload can't be read as a track CSV."""


def _map_columns(columns: List[str]) -> Dict[str, Optional[str]]:
    col_map: Dict[str, Optional[str]] = {}
    for std_name, variants in COLUMN_MAPPINGS.items():
        col_map[std_name] = None
        for variant in variants:
            if variant in columns:
                col_map[std_name] = variant
                break
    return col_map


def read_csv_rows(path: Path) -> List[Dict[str, str]]:
    """
    Read a track CSV into a list of row dicts keyed by canonical column names.

    Args:
        path: Path to the uploaded .csv file.

    Returns:
        One dict per data row, in file order.

    Raises:
        CsvReadError: if the file is missing, empty, unparseable, or lacks a
            Time, Latitude or Longitude column.
    """
    if not path.exists():
        raise CsvReadError(f"CSV file not found: {path}")

    try:
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError:
        raise CsvReadError(f"CSV file is empty: {path}") from None
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise CsvReadError(f"Failed to parse CSV file {path}: {exc}") from exc

    df.columns = df.columns.str.strip()
    col_map = _map_columns(df.columns.tolist())

    missing = [name for name in REQUIRED_COLUMNS if col_map[name] is None]
    if missing:
        raise CsvReadError(
            f"CSV file {path} is missing required column(s): {', '.join(missing)}"
        )

    df = df.rename(columns={src: std for std, src in col_map.items() if src and src != std})
    return df.to_dict(orient="records")
