"""
Shared test fixtures for pytest
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, Settings
from core.bet_manager import BetManager
from core.repository import SqlAlchemyRoundRepository
from core.round_manager import RoundManager
from services.outcome_service import classify


class FakeClock:
    """Controllable wall clock"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int, second: float = 0):
        whole = int(second)
        micro = int(round((second - whole) * 1_000_000))
        self.now = self.now.replace(hour=hour, minute=minute, second=whole, microsecond=micro)

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across threads"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    return SqlAlchemyRoundRepository(session_factory)


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        lock_threshold_seconds=5,
        poll_interval_ms=10,
        min_bet_amount=10,
        period_timezone="UTC"
    )


@pytest.fixture
def clock():
    """2025-01-15 10:00:07 UTC"""
    return FakeClock(datetime(2025, 1, 15, 10, 0, 7, tzinfo=timezone.utc))


@pytest.fixture
def round_manager(repository, settings, clock):
    return RoundManager(
        repository,
        settings,
        clock=clock,
        outcome_generator=lambda: classify(7),
        tz=timezone.utc
    )


@pytest.fixture
def bet_manager(repository, settings, clock):
    return BetManager(repository, settings, clock)
