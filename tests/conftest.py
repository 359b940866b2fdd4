"""Shared fixtures: a fixed clock and in-memory collaborators."""

from datetime import date, datetime

import pytest

from lifesync.clock import FixedClock
from lifesync.events import Notifier
from lifesync.habits.models import Habit
from lifesync.identity import MemoryIdentityProvider
from lifesync.service import LifeSync
from lifesync.sync.cache import LocalCache
from lifesync.sync.memory import MemoryDocumentStore

TODAY = date(2024, 3, 15)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 15, 9, 30))


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def identity():
    return MemoryIdentityProvider()


@pytest.fixture
def cache(tmp_path):
    return LocalCache(str(tmp_path / "cache.db"))


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def service(identity, store, cache, clock, notifier):
    return LifeSync(identity, store, cache, clock=clock, notifier=notifier)


@pytest.fixture
def make_habit():
    """Build a habit active from Mar 1 to Mar 31 2024 unless overridden."""
    counter = iter(range(1, 1000))

    def build(**overrides) -> Habit:
        n = next(counter)
        fields = {
            "id": f"habit-{n}",
            "user_id": "user-1",
            "name": f"Habit {n}",
            "start_date": date(2024, 3, 1),
            "end_date": date(2024, 3, 31),
        }
        fields.update(overrides)
        return Habit(**fields)

    return build
