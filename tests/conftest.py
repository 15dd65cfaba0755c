"""Pytest fixtures for Stampman tests."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from stampman.adapters.settings_cafes import SettingsCafeBackend
from stampman.models import StampBalance
from stampman.service import StampEngine
from stampman.store import DjangoLedgerStore

SEOUL = ZoneInfo("Asia/Seoul")


class FakeClock:
    """Callable clock the services read instead of timezone.now()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return self.now


@pytest.fixture
def clock():
    """Monday 2026-03-02 10:00 in Seoul."""
    return FakeClock(datetime(2026, 3, 2, 10, 0, tzinfo=SEOUL))


@pytest.fixture
def cafes():
    """CAFE-1 needs 10 stamps per reward, CAFE-2 needs 3."""
    return SettingsCafeBackend({"CAFE-1": 10, "CAFE-2": 3})


@pytest.fixture
def store():
    return DjangoLedgerStore()


@pytest.fixture
def engine(db, store, cafes, clock):
    return StampEngine(store=store, cafes=cafes, clock=clock)


@pytest.fixture
def full_card(engine):
    """USER-1 holding exactly one reward (3/3) at CAFE-2."""
    for i in range(3):
        engine.accrual.earn("USER-1", "CAFE-2", source="order", order_id=f"ORD-{i}")
    return StampBalance.objects.get(customer_id="USER-1", cafe_id="CAFE-2")


@pytest.fixture
def issued(engine):
    """Token opened for CAFE-1 by STAFF-1 at the clock's current time."""
    return engine.tokens.issue("CAFE-1", issuer_id="STAFF-1")
