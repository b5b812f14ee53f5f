import pytest

from flighttracker.models import close_store, init_store
from flighttracker.records import Flight
from flighttracker.storage import FlightStore, RetentionPolicy, TrailStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_flight(flight_id: str = "T1", **overrides) -> Flight:
    values = dict(
        id=flight_id,
        callsign=f"TST{flight_id}",
        latitude=37.5,
        longitude=-122.5,
        altitude=35000,
        heading=90.0,
        speed=450,
        vertical_rate=0,
        on_ground=False,
        squawk="1200",
        timestamp=START_MS,
        source="test",
    )
    values.update(overrides)
    return Flight(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db(tmp_path):
    handle = init_store(str(tmp_path / "data" / "flights.db"))
    try:
        yield handle
    finally:
        close_store(handle)


@pytest.fixture
def trail_store(db, clock):
    return TrailStore(db, clock=clock)


@pytest.fixture
def flight_store(db, trail_store, clock):
    return FlightStore(db, trail_store=trail_store, clock=clock)


@pytest.fixture
def retention(db, clock):
    return RetentionPolicy(db, clock=clock)
