import os

# Keep request logs out of the working tree during tests
os.environ.setdefault("REQUEST_LOG_FILE", "")

from datetime import datetime, timedelta, timezone

import pytest

from location_signals.exceptions import PersistenceFailure, SignalUnavailable
from location_signals.models import BusinessRecord, SignalKind, TrafficSample
from location_signals.services import SignalCacheGateway, SignalCacheStore


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeTrafficProvider:
    def __init__(self, sample=None, error=None):
        self.sample = sample or TrafficSample(
            current_speed_kmh=12, free_flow_speed_kmh=110, confidence=0.85
        )
        self.error = error
        self.calls = []

    async def fetch_flow(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.error is not None:
            raise self.error
        return self.sample


class FakeBusinessProvider:
    def __init__(self, businesses=None, error=None):
        self.businesses = businesses if businesses is not None else []
        self.error = error
        self.calls = []

    async def fetch_businesses(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        if self.error is not None:
            raise self.error
        return list(self.businesses)


class BrokenWriteStore(SignalCacheStore):
    """Store whose reads work but whose writes always fail."""

    def upsert(self, location_key, kind, payload, computed_at):
        raise PersistenceFailure("disk full")


def business(code: str, name: str = "Negocio", label: str = "0 a 5 personas") -> BusinessRecord:
    return BusinessRecord(name=name, sector_code=code, employee_range_label=label)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(tmp_path):
    cache_store = SignalCacheStore(str(tmp_path / "signals"))
    cache_store.initialize()
    yield cache_store
    cache_store.close()


@pytest.fixture
def traffic_provider():
    return FakeTrafficProvider()


@pytest.fixture
def business_provider():
    return FakeBusinessProvider(
        businesses=[
            business("522110", "Banco Centro", "101 a 250 personas"),
            business("461110", "Abarrotes Lupita"),
            business("722511", "Tacos El Güero", "6 a 10 personas"),
        ]
    )


@pytest.fixture
def gateway(store, traffic_provider, business_provider, clock):
    return SignalCacheGateway(
        store=store,
        traffic_provider=traffic_provider,
        business_provider=business_provider,
        clock=clock,
    )


@pytest.fixture
def unavailable():
    return SignalUnavailable(SignalKind.TRAFFIC.value, "no road segment found")
