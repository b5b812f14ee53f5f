import threading

import pytest

from conftest import make_flight
from flighttracker.config import (
    AppConfig,
    DatabaseConfig,
    FaaConfig,
    IngestionConfig,
    OpenSkyConfig,
    RetentionConfig,
)
from flighttracker.errors import UnsupportedSourceError, UpstreamFetchError
from flighttracker.ingestion import (
    FaaClient,
    IngestionPipeline,
    MockFlightGenerator,
    OpenSkyClient,
    source_from_config,
)
from flighttracker.ingestion.normalizer import SourceTag

MAX_AGE_MS = 5 * 60 * 1000


def _state(icao24, lat=37.5, lon=-122.5):
    return [icao24, "UAL1", "US", 1700000000, 1700000000, lon, lat, 1000, False, 100, 90, 0, None, 1000, "1200", False, 0]


class FakeSource:
    """Scripted source; each fetch pops the next batch or raises it."""

    def __init__(self, batches, source_tag=SourceTag.OPENSKY):
        self.batches = list(batches)
        self.source_tag = source_tag
        self.calls = 0

    def fetch(self):
        self.calls += 1
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch


@pytest.fixture
def make_pipeline(flight_store, retention):
    def factory(source, **kwargs):
        kwargs.setdefault("max_flight_age_ms", MAX_AGE_MS)
        kwargs.setdefault("max_trail_points", 3)
        return IngestionPipeline(source, flight_store, retention, **kwargs)

    return factory


def test_tick_fetches_normalizes_and_stores(make_pipeline, flight_store):
    pipeline = make_pipeline(FakeSource([[_state("abc123"), _state("def456")]]))

    report = pipeline.tick()

    assert report.ok
    assert report.fetched == 2
    assert report.upserted == 2
    assert [f.id for f in flight_store.get_all(MAX_AGE_MS)] == ["abc123", "def456"]
    assert flight_store.get_by_id("abc123").altitude == 3281
    assert pipeline.stats["tick_count"] == 1


def test_malformed_records_are_skipped(make_pipeline, flight_store):
    batch = [_state("good"), _state("nolat", lat=None), None, ["x"], "garbage"]
    pipeline = make_pipeline(FakeSource([batch]))

    report = pipeline.tick()

    assert report.ok
    assert report.fetched == 5
    assert report.upserted == 1
    assert [f.id for f in flight_store.get_all(MAX_AGE_MS)] == ["good"]


def test_tick_applies_retention(make_pipeline, flight_store, trail_store, clock):
    batches = [[_state("abc123", lat=30.0 + i)] for i in range(5)]
    pipeline = make_pipeline(FakeSource(batches), max_trail_points=3)

    for _ in range(5):
        pipeline.tick()
        clock.advance(1000)

    assert len(trail_store.get_trail("abc123", 100)) == 3


def test_tick_prunes_flights_that_stop_reporting(make_pipeline, flight_store, clock):
    pipeline = make_pipeline(FakeSource([[_state("gone"), _state("stays")], [_state("stays")]]))

    pipeline.tick()
    clock.advance(MAX_AGE_MS + 1)
    report = pipeline.tick()

    assert report.pruned_flights == 1
    assert flight_store.get_by_id("gone") is None
    assert flight_store.get_by_id("stays") is not None


def test_failed_fetch_leaves_state_and_next_tick_recovers(make_pipeline, flight_store):
    source = FakeSource([
        [_state("abc123")],
        UpstreamFetchError("OpenSky API error: 429", status_code=429),
        [_state("abc123"), _state("def456")],
    ])
    pipeline = make_pipeline(source)

    pipeline.tick()
    before = flight_store.stats()
    failed = pipeline.tick()

    assert not failed.ok
    assert "429" in failed.error
    assert flight_store.stats() == before
    assert pipeline.stats["error_count"] == 1

    recovered = pipeline.tick()
    assert recovered.ok
    assert recovered.upserted == 2


def test_unknown_source_tag_fails_the_tick(make_pipeline, flight_store):
    pipeline = make_pipeline(FakeSource([[_state("abc123")]], source_tag="adsbx"))

    report = pipeline.tick()

    assert not report.ok
    assert "adsbx" in report.error
    assert flight_store.stats()["flight_count"] == 0


def test_empty_fetch_still_sweeps(make_pipeline, flight_store, clock):
    flight_store.upsert_one(make_flight("OLD"))
    clock.advance(MAX_AGE_MS + 1)
    pipeline = make_pipeline(FakeSource([[]]))

    report = pipeline.tick()

    assert report.ok
    assert report.upserted == 0
    assert report.pruned_flights == 1


def test_overlapping_tick_is_skipped(make_pipeline):
    source = FakeSource([[_state("abc123")]])
    pipeline = make_pipeline(source)

    pipeline._tick_lock.acquire()
    try:
        assert pipeline.tick() is None
    finally:
        pipeline._tick_lock.release()

    assert source.calls == 0
    assert pipeline.stats["skipped_count"] == 1
    assert pipeline.tick().ok


def test_update_callbacks_receive_upsert_count(make_pipeline):
    seen = []
    pipeline = make_pipeline(FakeSource([[_state("a"), _state("b")]]))
    pipeline.add_update_callback(seen.append)
    pipeline.add_update_callback(lambda count: 1 / 0)

    report = pipeline.tick()

    assert report.ok
    assert seen == [2]


def test_canonical_source_skips_normalization(make_pipeline, flight_store):
    records = [make_flight("M1", source="mock"), make_flight("M2", source="mock")]
    pipeline = make_pipeline(FakeSource([records], source_tag=None))

    report = pipeline.tick()

    assert report.upserted == 2
    assert flight_store.get_by_id("M1").source == "mock"


def test_mock_generator_drives_pipeline(make_pipeline, flight_store, clock):
    pipeline = make_pipeline(MockFlightGenerator(num_flights=8, seed=7, clock=clock))

    pipeline.tick()
    clock.advance(10_000)
    pipeline.tick()

    assert flight_store.stats() == {"flight_count": 8, "trail_point_count": 16}


def test_background_loop_starts_and_stops(make_pipeline):
    source = FakeSource([[_state("abc123")]] * 1000)
    pipeline = make_pipeline(source, interval=0.01)
    ticked = threading.Event()
    pipeline.add_update_callback(lambda count: ticked.set())

    pipeline.start_background()
    assert ticked.wait(5)
    pipeline.stop()

    assert not pipeline.running
    assert source.calls >= 1


def _settings(**ingestion):
    return AppConfig(
        opensky=OpenSkyConfig(username=None, password=None),
        faa=FaaConfig(endpoint=None, api_key=None),
        database=DatabaseConfig(path=":memory:"),
        ingestion=IngestionConfig(**ingestion),
        retention=RetentionConfig(),
    )


def test_source_from_config_selects_adapter():
    assert isinstance(
        source_from_config(_settings(data_source="opensky", use_mock_data=False)), OpenSkyClient
    )
    assert isinstance(source_from_config(_settings(data_source="faa", use_mock_data=False)), FaaClient)

    mock = source_from_config(_settings(data_source="opensky", use_mock_data=True, mock_flight_count=4))
    assert isinstance(mock, MockFlightGenerator)
    assert len(mock.tracks) == 4
    assert isinstance(source_from_config(_settings(data_source="mock", use_mock_data=False)), MockFlightGenerator)


def test_source_from_config_rejects_unknown_source():
    with pytest.raises(UnsupportedSourceError):
        source_from_config(_settings(data_source="adsbx", use_mock_data=False))

