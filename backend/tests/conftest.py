"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shopnotify.database.base import Base
from shopnotify.notifications.engine import NotificationEngine
from shopnotify.records.models import StoredRecord
from shopnotify.records.store import InMemoryRecordStore, SqlRecordStore

# Models must be imported so Base.metadata.create_all() sees all tables.
_ALL_MODELS = [StoredRecord]

SHOP_TZ = timezone(timedelta(hours=1))

# Tuesday, midday in the shop's timezone
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=SHOP_TZ)


class FakeClock:
    """Settable clock so a test can move time between sync runs."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db_session():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestSession = sessionmaker(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def sql_store(db_session):
    return SqlRecordStore(db_session)


@pytest.fixture
def engine(store, clock):
    return NotificationEngine(store, clock=clock)
