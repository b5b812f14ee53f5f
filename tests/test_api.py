import pytest

from conftest import START_MS, make_flight
from flighttracker.app import create_app, shutdown_app
from flighttracker.config import (
    AppConfig,
    DatabaseConfig,
    FaaConfig,
    IngestionConfig,
    OpenSkyConfig,
    RetentionConfig,
)
from flighttracker.errors import StorageError
from flighttracker.ingestion import MockFlightGenerator


@pytest.fixture
def settings():
    return AppConfig(
        opensky=OpenSkyConfig(username=None, password=None),
        faa=FaaConfig(endpoint=None, api_key=None),
        database=DatabaseConfig(path=":memory:"),
        ingestion=IngestionConfig(data_source="opensky", fetch_interval_seconds=10),
        retention=RetentionConfig(max_flight_age_ms=5 * 60 * 1000, max_trail_points=5),
    )


@pytest.fixture
def app(settings, tmp_path):
    app = create_app(settings=settings, db_path=str(tmp_path / "api.db"), start_ingestion=False)
    app.config["TESTING"] = True
    yield app
    shutdown_app(app)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.config["FLIGHT_STORE"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_list_flights_empty(client):
    data = client.get("/api/flights").get_json()

    assert data["success"] is True
    assert data["count"] == 0
    assert data["flights"] == []
    assert data["timestamp"] > START_MS


def test_list_flights_uses_camel_case_fields(client, store):
    store.upsert_one(make_flight("T1", vertical_rate=-500, on_ground=False))

    data = client.get("/api/flights").get_json()

    assert data["count"] == 1
    flight = data["flights"][0]
    assert flight["id"] == "T1"
    assert flight["verticalRate"] == -500
    assert flight["onGround"] is False
    assert flight["updatedAt"] is not None


def test_list_flights_since(client, store):
    store.upsert_batch([
        make_flight("EARLY", timestamp=START_MS),
        make_flight("LATE", timestamp=START_MS + 10_000),
    ])

    data = client.get(f"/api/flights?since={START_MS + 5000}").get_json()

    assert [f["id"] for f in data["flights"]] == ["LATE"]


def test_invalid_since_falls_back_to_all_flights(client, store):
    store.upsert_one(make_flight("T1"))

    data = client.get("/api/flights?since=yesterday").get_json()

    assert data["count"] == 1


def test_get_single_flight(client, store):
    store.upsert_one(make_flight("T1"))

    response = client.get("/api/flights/T1")

    assert response.status_code == 200
    assert response.get_json()["flight"]["callsign"] == "TSTT1"


def test_get_missing_flight_is_404(client):
    response = client.get("/api/flights/NOPE")

    assert response.status_code == 404
    assert response.get_json() == {"success": False, "error": "Flight not found"}


def test_flight_trail_respects_limit_and_cap(client, store):
    for i in range(8):
        store.upsert_one(make_flight("T1", latitude=30.0 + i, timestamp=START_MS + i))

    capped = client.get("/api/flights/T1/trail").get_json()
    assert capped["flightId"] == "T1"
    assert capped["count"] == 5
    assert [p["latitude"] for p in capped["trail"]] == [33.0, 34.0, 35.0, 36.0, 37.0]

    limited = client.get("/api/flights/T1/trail?limit=2").get_json()
    assert [p["latitude"] for p in limited["trail"]] == [36.0, 37.0]

    oversized = client.get("/api/flights/T1/trail?limit=500").get_json()
    assert oversized["count"] == 5


def test_all_trails(client, store):
    store.upsert_batch([make_flight("A"), make_flight("B")])

    data = client.get("/api/trails").get_json()

    assert data["count"] == 2
    assert set(data["trails"]) == {"A", "B"}
    assert data["trails"]["A"][0] == {
        "latitude": 37.5,
        "longitude": -122.5,
        "altitude": 35000,
        "timestamp": START_MS,
    }


def test_stats(client, store):
    store.upsert_batch([make_flight("A"), make_flight("B")])

    data = client.get("/api/stats").get_json()

    assert data["stats"]["flightCount"] == 2
    assert data["stats"]["trailPointCount"] == 2
    assert data["stats"]["dataSource"] == "opensky"
    assert data["stats"]["maxTrailPoints"] == 5
    assert "ingestion" not in data


def test_client_config(client):
    data = client.get("/api/config").get_json()

    assert data["config"] == {
        "recommendedPollInterval": 10_000,
        "maxTrailPoints": 5,
        "dataSource": "opensky",
    }


def test_unknown_route_is_json_404(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_storage_failure_is_generic_500(client, store, monkeypatch):
    def broken(*args, **kwargs):
        raise StorageError("database is locked")

    monkeypatch.setattr(store, "get_all", broken)

    response = client.get("/api/flights")

    assert response.status_code == 500
    assert response.get_json() == {"success": False, "error": "Internal server error"}


def test_cors_headers_on_api(client):
    response = client.get("/api/flights", headers={"Origin": "http://localhost:5173"})

    assert response.headers.get("Access-Control-Allow-Origin") == "*"


def test_app_with_ingestion_exposes_pipeline_stats(settings, tmp_path):
    app = create_app(
        settings=settings,
        db_path=str(tmp_path / "live.db"),
        start_ingestion=True,
        source=MockFlightGenerator(num_flights=3, seed=5),
    )
    try:
        pipeline = app.config["INGESTION_PIPELINE"]
        pipeline.stop()
        pipeline.tick()

        data = app.test_client().get("/api/stats").get_json()
        assert data["ingestion"]["tick_count"] >= 1
        assert data["stats"]["flightCount"] == 3
    finally:
        shutdown_app(app)
