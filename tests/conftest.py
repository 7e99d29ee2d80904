"""Shared fixtures."""
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from notamwatch.database import NotamDatabase
from notamwatch.models.notam import Notam, NotamType

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def db():
    """Create a temporary database for testing."""
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)

    database = NotamDatabase(path)

    yield database

    for suffix in ('', '-wal', '-shm'):
        try:
            os.unlink(path + suffix)
        except OSError:
            pass


@pytest.fixture
def clock():
    return MutableClock(FIXED_NOW)


@pytest.fixture
def make_notam():
    """Factory for Notam records with sensible defaults."""
    def _make(notam_id="A0001/25", region="LROP", text="TWY A LIGHTING U/S", **overrides):
        fields = dict(
            id=notam_id,
            series=notam_id[0],
            number=notam_id[1:],
            notam_type=NotamType.NEW,
            issued=FIXED_NOW - timedelta(hours=1),
            region=region,
            location=region,
            effective_start=FIXED_NOW - timedelta(hours=1),
            effective_end=FIXED_NOW + timedelta(days=1),
            text=text,
            minimum_fl="000",
            maximum_fl="999",
        )
        fields.update(overrides)
        return Notam(**fields)

    return _make
