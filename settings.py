from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_PATH_ENV = "READINGS_STORE_PATH"
_API_KEY_ENV = "SENSOR_API_KEY"
_SCHEMA_VERSION_ENV = "SENSOR_SCHEMA_VERSION"
_DEVICE_ID_ENV = "DEFAULT_DEVICE_ID"
_LOG_LEVEL_ENV = "LOG_LEVEL"

SCHEMA_VERSIONS = ("current", "legacy")


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str]
    api_key: Optional[str]
    schema_version: str
    default_device_id: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_schema_version(default: str) -> str:
    value = os.getenv(_SCHEMA_VERSION_ENV)
    if value is None:
        return default
    candidate = value.strip().lower()
    return candidate if candidate in SCHEMA_VERSIONS else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        api_key=_read_optional_env(_API_KEY_ENV, None),
        schema_version=_read_schema_version("current"),
        default_device_id=_read_str_env(_DEVICE_ID_ENV, "pico-w-1"),
        log_level=_read_log_level("INFO"),
    )
