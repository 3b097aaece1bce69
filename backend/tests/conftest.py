# backend/tests/conftest.py
"""
Pytest configuration for the booking core.

Every test gets its own SQLite file under tmp_path, so tests never touch
the configured database and threads in concurrency tests share one store.
Time is pinned with FrozenClock; the default "now" is Monday 2030-06-03
08:00 UTC and the default booking date is the following Tuesday morning.
"""

import os

# Set testing mode BEFORE any courtbook imports
os.environ["COURTBOOK_ENVIRONMENT"] = "test"
os.environ.pop("COURTBOOK_REDIS_URL", None)

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session, sessionmaker

from courtbook.api.dependencies import get_clock, get_db
from courtbook.core.enums import ResourceCategory
from courtbook.database import Base, create_db_engine
from courtbook.main import app
from courtbook.models.club import Club, OperatingWindow
from courtbook.models.resource import Resource
from courtbook.services.booking_ledger import BookingLedger
from courtbook.services.redemption_policy_engine import RedemptionPolicyEngine
from courtbook.services.session_scheduler import SessionScheduler
from courtbook.services.token_pool_ledger import TokenPoolLedger

DEFAULT_NOW = datetime(2030, 6, 3, 8, 0, tzinfo=timezone.utc)  # Monday
BOOKING_DATE = date(2030, 6, 4)  # Tuesday
CLOSED_DATE = date(2030, 6, 9)  # Sunday


class FrozenClock:
    """Clock whose time only moves when a test moves it."""

    def __init__(self, now: datetime = DEFAULT_NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def set(self, now: datetime) -> None:
        self.current = now

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def test_engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'courtbook_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False)


@pytest.fixture(scope="function")
def db(session_factory):
    """Fresh session per test; the database file is discarded afterwards."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


def add_club(
    db: Session,
    *,
    name: str = "Riverside Racquet Club",
    tier: str = "core",
    tz: str = "UTC",
    open_days=range(0, 6),
    open_time: time = time(8, 0),
    close_time: time = time(22, 0),
) -> Club:
    club = Club(name=name, subscription_tier_id=tier, timezone=tz)
    db.add(club)
    db.flush()
    for weekday in open_days:
        db.add(
            OperatingWindow(
                club_id=club.id, weekday=weekday, open_time=open_time, close_time=close_time
            )
        )
    db.commit()
    db.refresh(club)
    return club


def add_resource(
    db: Session,
    club: Club,
    *,
    name: str,
    category: ResourceCategory = ResourceCategory.COURT,
    token_rate: int = 1000,
    cash_rate: str = "7.00",
    is_active: bool = True,
) -> Resource:
    resource = Resource(
        club_id=club.id,
        category=category.value,
        name=name,
        hourly_token_rate=token_rate,
        hourly_cash_rate=Decimal(cash_rate),
        is_active=is_active,
    )
    db.add(resource)
    db.commit()
    db.refresh(resource)
    return resource


@pytest.fixture
def club(db: Session) -> Club:
    """Open Monday to Saturday 08:00-22:00, closed Sundays, on the core tier."""
    return add_club(db)


@pytest.fixture
def court(db: Session, club: Club) -> Resource:
    return add_resource(db, club, name="Court 1")


@pytest.fixture
def court_2(db: Session, club: Club) -> Resource:
    return add_resource(db, club, name="Court 2")


@pytest.fixture
def coach(db: Session, club: Club) -> Resource:
    return add_resource(
        db,
        club,
        name="Coach Rivera",
        category=ResourceCategory.COACH,
        token_rate=3000,
        cash_rate="21.00",
    )


@pytest.fixture
def token_ledger(db: Session, clock: FrozenClock) -> TokenPoolLedger:
    return TokenPoolLedger(db, clock=clock)


@pytest.fixture
def booking_ledger(db: Session, clock: FrozenClock) -> BookingLedger:
    return BookingLedger(db, clock=clock)


@pytest.fixture
def session_scheduler(db: Session, clock: FrozenClock) -> SessionScheduler:
    return SessionScheduler(db, clock=clock)


@pytest.fixture
def redemption_engine(db: Session, clock: FrozenClock) -> RedemptionPolicyEngine:
    return RedemptionPolicyEngine(db, clock=clock)


@pytest.fixture
def client(db: Session, clock: FrozenClock):
    """Create a test client bound to the test database and frozen clock."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    # Don't use context manager - create directly
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def booking_date() -> date:
    return BOOKING_DATE


@pytest.fixture
def closed_date() -> date:
    return CLOSED_DATE


@pytest.fixture
def make_club(db: Session):
    def _make(**kwargs) -> Club:
        return add_club(db, **kwargs)

    return _make


@pytest.fixture
def make_resource(db: Session):
    def _make(club: Club, **kwargs) -> Resource:
        return add_resource(db, club, **kwargs)

    return _make
