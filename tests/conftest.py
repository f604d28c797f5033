# Rev 0.3.0

"""Pytest fixtures for zenboard (Rev 0.3.0)"""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
import pytest
from pathlib import Path
from zenboard.repositories.db import Database
from zenboard.services.scheduling_service import SchedulingService


class FakeClock:
    """Mutable UTC clock handed to the service instead of datetime.now."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture()
def db(tmp_path: Path):
    db_path = tmp_path / "test.db"
    database = Database(path=str(db_path))
    try:
        database.run_migrations()
        yield database
    finally:
        database.close()


@pytest.fixture()
def clock() -> FakeClock:
    # Monday 2024-05-06 10:00 UTC
    return FakeClock(datetime(2024, 5, 6, 10, 0, tzinfo=timezone.utc))


@pytest.fixture()
def svc(db, clock) -> SchedulingService:
    return SchedulingService(db, clock=clock, tz=timezone.utc)


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtCore import QCoreApplication
    return QCoreApplication.instance() or QCoreApplication([])
