from __future__ import annotations

from typing import Iterator

import pytest

from datastore.reading_store import build_default_store
from services.ingestion import build_default_ingestion
from settings import get_settings

_CACHES = (get_settings, build_default_store, build_default_ingestion)


def _clear_caches() -> None:
    for cache in _CACHES:
        cache.cache_clear()


@pytest.fixture
def service_env(tmp_path, monkeypatch) -> Iterator[None]:
    """Point the service at a scratch store with a known API key."""
    monkeypatch.setenv("READINGS_STORE_PATH", str(tmp_path / "readings.json"))
    monkeypatch.setenv("SENSOR_API_KEY", "test-key")
    monkeypatch.delenv("SENSOR_SCHEMA_VERSION", raising=False)
    _clear_caches()
    yield
    _clear_caches()
