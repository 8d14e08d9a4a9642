"""
Shared fixtures – an in-memory SQLite engine with the schema created.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from accessgate.database import create_schema


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def clock():
    return FakeClock()
