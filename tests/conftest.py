"""Shared test fixtures."""
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models so SQLModel.metadata knows about them
from surftrack.models.surf import SurfSession, Wave  # noqa: F401

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine. Tables recreated fresh for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="file_engine")
def file_engine_fixture(tmp_path):
    """On-disk SQLite engine: one connection per thread, for concurrent reads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'surftrack.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="seeded_session")
def seeded_session_fixture(test_session: Session) -> SurfSession:
    """A persisted SurfSession for use in wave tests."""
    row = SurfSession(
        user_id="user-1",
        location="Pipeline",
        session_date=datetime(2025, 6, 14, 7, 0, tzinfo=timezone.utc),
        wave_count=2,
        duration_seconds=20.0,
        longest_wave_seconds=12.0,
        max_speed_kph=24.5,
        total_distance_km=0.09,
        start_latitude=21.6649,
        start_longitude=-158.0539,
    )
    test_session.add(row)
    test_session.commit()
    test_session.refresh(row)
    return row
