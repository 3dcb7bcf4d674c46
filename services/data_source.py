"""Live and fixture sources of readings for the dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

import httpx
from pydantic import ValidationError

from app.schemas import Reading
from models.records import Interval

logger = logging.getLogger(__name__)

READINGS_PATH = "/api/sensors"
LATEST_PATH = "/api/sensors/latest"
DEFAULT_FIXTURE_PATH = "/static/fixtures/readings.json"
FETCH_LIMIT = 1000


class FetchFailed(RuntimeError):
    """Transport failure or non-success status while fetching readings."""


class DataSource(Protocol):
    def fetch_range(self, interval: Interval) -> List[Reading]:
        ...

    def fetch_latest(self) -> Optional[Reading]:
        ...


@dataclass(frozen=True)
class DataSourceConfig:
    """Source selection, decided once when the dashboard session starts."""

    use_fixture: bool = False
    fixture_path: str = DEFAULT_FIXTURE_PATH
    device_id: Optional[str] = None


def _parse_readings(payload: Any) -> List[Reading]:
    if not isinstance(payload, list):
        raise FetchFailed("Expected a JSON array of readings.")
    try:
        return [Reading.model_validate(item) for item in payload]
    except ValidationError as exc:
        raise FetchFailed(f"Malformed reading in response: {exc.error_count()} error(s)") from exc


def _get_json(client: httpx.Client, path: str, **params: Any) -> Any:
    try:
        response = client.get(path, params=params or None)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as exc:
        raise FetchFailed(
            f"Request to {path} failed with status {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise FetchFailed(f"Request to {path} failed: {exc}") from exc
    except ValueError as exc:
        raise FetchFailed(f"Response from {path} is not valid JSON") from exc


class LiveDataSource:
    """Reads through the service API; ``until`` is applied client-side."""

    def __init__(self, client: httpx.Client, device_id: Optional[str] = None) -> None:
        self._client = client
        self._device_id = device_id

    def fetch_range(self, interval: Interval) -> List[Reading]:
        params: dict[str, Any] = {"limit": FETCH_LIMIT, "since": interval.since.isoformat()}
        if self._device_id:
            params["device_id"] = self._device_id
        readings = _parse_readings(_get_json(self._client, READINGS_PATH, **params))
        if interval.until is not None:
            readings = [reading for reading in readings if interval.contains(reading.recorded_at)]
        logger.debug(
            "Fetched live readings",
            extra={"row_count": len(readings), "since": interval.since, "until": interval.until},
        )
        return readings

    def fetch_latest(self) -> Optional[Reading]:
        params = {"device_id": self._device_id} if self._device_id else {}
        try:
            response = self._client.get(LATEST_PATH, params=params or None)
        except httpx.HTTPError as exc:
            raise FetchFailed(f"Request to {LATEST_PATH} failed: {exc}") from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if not response.is_success:
            raise FetchFailed(
                f"Request to {LATEST_PATH} failed with status {response.status_code}"
            )
        try:
            return Reading.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise FetchFailed(f"Malformed latest reading from {LATEST_PATH}") from exc


class FixtureDataSource:
    """Filters one static snapshot client-side; the endpoint has no query support."""

    def __init__(
        self,
        client: httpx.Client,
        path: str = DEFAULT_FIXTURE_PATH,
        device_id: Optional[str] = None,
    ) -> None:
        self._client = client
        self._path = path
        self._device_id = device_id
        self._snapshot: Optional[List[Reading]] = None

    def _load(self) -> List[Reading]:
        if self._snapshot is None:
            readings = _parse_readings(_get_json(self._client, self._path))
            if self._device_id:
                readings = [item for item in readings if item.device_id == self._device_id]
            # Newest first so element 0 is the latest reading.
            readings.sort(key=lambda reading: reading.recorded_at, reverse=True)
            self._snapshot = readings
            logger.info("Loaded fixture snapshot", extra={"row_count": len(readings)})
        return self._snapshot

    def fetch_range(self, interval: Interval) -> List[Reading]:
        return [reading for reading in self._load() if interval.contains(reading.recorded_at)]

    def fetch_latest(self) -> Optional[Reading]:
        snapshot = self._load()
        return snapshot[0] if snapshot else None


def build_data_source(config: DataSourceConfig, client: httpx.Client) -> DataSource:
    if config.use_fixture:
        return FixtureDataSource(client, path=config.fixture_path, device_id=config.device_id)
    return LiveDataSource(client, device_id=config.device_id)
