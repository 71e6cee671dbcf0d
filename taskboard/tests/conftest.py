"""Shared fixtures: a ticking clock, an in-memory SQLite engine, and a store per backend."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import SQLModel, create_engine
from sqlmodel.pool import StaticPool

from taskboard.database import DatabaseTaskStore
from taskboard.store import InMemoryTaskStore


class FakeClock:
    """Clock that advances one second on every call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)):
        self.start = start
        self._ticks = itertools.count()

    def __call__(self) -> datetime:
        return self.start + timedelta(seconds=next(self._ticks))


@pytest.fixture(name="engine")
def engine_fixture():
    """Fresh in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="clock")
def clock_fixture():
    """Clock starting at 2024-01-01 09:00 UTC, one second per reading."""
    return FakeClock()


@pytest.fixture(name="store", params=["memory", "database"])
def store_fixture(request, clock):
    """Each store contract test runs against both backends."""
    if request.param == "memory":
        return InMemoryTaskStore(clock=clock)
    engine = request.getfixturevalue("engine")
    return DatabaseTaskStore(engine, clock=clock)
