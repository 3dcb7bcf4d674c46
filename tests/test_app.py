from datetime import datetime, timedelta, timezone
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.reading_store import StoreUnavailable, build_default_store
from settings import get_settings

HEADERS = {"X-API-Key": "test-key"}


def _payload(**overrides) -> dict:
    payload = {
        "temperature_c": 21.0,
        "temperature_f": 69.8,
        "humidity_percent": 43.0,
        "pressure_hpa": 1012.0,
        "co2": 615,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def api_client(service_env) -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as client:
        yield client


def test_post_reading_returns_created(api_client: TestClient) -> None:
    response = api_client.post("/api/sensors", json=_payload(), headers=HEADERS)

    assert response.status_code == 201
    body = response.json()
    assert set(body.keys()) == {"id", "recorded_at"}
    assert body["id"] == 1


def test_post_reading_without_key_is_unauthorized(api_client: TestClient) -> None:
    response = api_client.post("/api/sensors", json=_payload())

    assert response.status_code == 401
    assert response.json() == {"error": "Missing X-API-Key header"}


def test_post_reading_with_wrong_key_is_forbidden(api_client: TestClient) -> None:
    response = api_client.post("/api/sensors", json=_payload(), headers={"X-API-Key": "nope"})

    assert response.status_code == 403
    assert response.json() == {"error": "Invalid API key"}
    assert build_default_store().count() == 0


def test_post_invalid_reading_returns_bad_request(api_client: TestClient) -> None:
    payload = _payload()
    del payload["co2"]

    response = api_client.post("/api/sensors", json=payload, headers=HEADERS)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields: co2"}
    assert api_client.get("/api/sensors").json() == []


def test_post_malformed_json_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/sensors",
        content=b"{not json",
        headers={**HEADERS, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()


def test_post_non_finite_json_number_returns_bad_request(api_client: TestClient) -> None:
    body = (
        b'{"temperature_c": NaN, "temperature_f": 69.8, "humidity_percent": 43.0, '
        b'"pressure_hpa": 1012.0, "co2": 615}'
    )
    response = api_client.post(
        "/api/sensors",
        content=body,
        headers={**HEADERS, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Fields must be numbers: temperature_c"}
    assert api_client.get("/api/sensors").json() == []


def test_post_non_finite_optional_metric_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/api/sensors",
        content=b'{"temperature_c": 21.0, "temperature_f": 69.8, "humidity_percent": 43.0, '
        b'"pressure_hpa": 1012.0, "co2": 615, "tvoc": Infinity}',
        headers={**HEADERS, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Fields must be numbers: tvoc"}


def test_store_unavailable_maps_to_service_unavailable(
    api_client: TestClient, monkeypatch
) -> None:
    def broken_insert(_reading):
        raise StoreUnavailable("disk full")

    monkeypatch.setattr(build_default_store(), "insert", broken_insert)

    response = api_client.post("/api/sensors", json=_payload(), headers=HEADERS)

    assert response.status_code == 503
    assert response.json() == {"error": "disk full"}


def test_unreachable_store_maps_to_service_unavailable(
    service_env, tmp_path, monkeypatch
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    monkeypatch.setenv("READINGS_STORE_PATH", str(blocker / "readings.json"))
    get_settings.cache_clear()
    build_default_store.cache_clear()

    with TestClient(create_app()) as client:
        listed = client.get("/api/sensors")
        posted = client.post("/api/sensors", json=_payload(), headers=HEADERS)

    assert listed.status_code == 503
    assert posted.status_code == 503
    assert "Cannot prepare reading store" in listed.json()["error"]


def test_latest_round_trip(api_client: TestClient) -> None:
    api_client.post("/api/sensors", json=_payload(co2=500), headers=HEADERS)
    created = api_client.post(
        "/api/sensors", json=_payload(co2=777, humidity_percent=50.5), headers=HEADERS
    ).json()

    response = api_client.get("/api/sensors/latest")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == created["id"]
    assert body["co2"] == 777
    assert body["humidity_percent"] == 50.5
    assert body["device_id"] == "pico-w-1"


def test_latest_without_readings_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/api/sensors/latest")

    assert response.status_code == 404
    assert response.json() == {"error": "No readings found"}


def test_list_readings_since_newest_first(api_client: TestClient) -> None:
    base = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    for offset in (-10, 1, 3, 2):
        recorded_at = (base + timedelta(seconds=offset)).isoformat()
        api_client.post("/api/sensors", json=_payload(recorded_at=recorded_at), headers=HEADERS)

    response = api_client.get(
        "/api/sensors", params={"since": base.isoformat(), "limit": "1000"}
    )

    assert response.status_code == 200
    times = [
        datetime.fromisoformat(row["recorded_at"].replace("Z", "+00:00"))
        for row in response.json()
    ]
    assert times == [base + timedelta(seconds=s) for s in (3, 2, 1)]


def test_list_readings_limit_is_lenient_and_clamped(api_client: TestClient) -> None:
    for _ in range(3):
        api_client.post("/api/sensors", json=_payload(), headers=HEADERS)

    assert len(api_client.get("/api/sensors", params={"limit": "2"}).json()) == 2
    assert len(api_client.get("/api/sensors", params={"limit": "abc"}).json()) == 3
    assert len(api_client.get("/api/sensors", params={"limit": "50000"}).json()) == 3


def test_list_readings_filters_device(api_client: TestClient) -> None:
    api_client.post("/api/sensors", json=_payload(device_id="garage"), headers=HEADERS)
    api_client.post("/api/sensors", json=_payload(), headers=HEADERS)

    rows = api_client.get("/api/sensors", params={"device_id": "garage"}).json()

    assert [row["device_id"] for row in rows] == ["garage"]


def test_invalid_since_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.get("/api/sensors", params={"since": "last tuesday"})

    assert response.status_code == 400
    assert response.json() == {"error": "since must be an ISO-8601 timestamp"}


def test_fixture_is_served_as_static_file(api_client: TestClient) -> None:
    response = api_client.get("/static/fixtures/readings.json")

    assert response.status_code == 200
    rows = response.json()
    assert rows
    assert rows[0]["recorded_at"] >= rows[-1]["recorded_at"]


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
