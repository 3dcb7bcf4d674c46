from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Optional

from dateutil import tz

from services.data_source import DEFAULT_FIXTURE_PATH

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_OUTPUT_DIR = "./charts"
DEFAULT_REFRESH_INTERVAL = 60.0
DEFAULT_TIMEOUT = 30.0

_BASE_URL_ENV = "API_BASE_URL"
_API_KEY_ENV = "SENSOR_API_KEY"
_USE_FIXTURE_ENV = "DASHBOARD_USE_FIXTURE"
_FIXTURE_PATH_ENV = "DASHBOARD_FIXTURE_PATH"
_OUTPUT_DIR_ENV = "DASHBOARD_OUTPUT_DIR"
_REFRESH_INTERVAL_ENV = "DASHBOARD_REFRESH_INTERVAL"
_SCHEMA_VERSION_ENV = "SENSOR_SCHEMA_VERSION"
_TIMEZONE_ENV = "DASHBOARD_TIMEZONE"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    use_fixture: bool = False
    fixture_path: str = DEFAULT_FIXTURE_PATH
    output_dir: str = DEFAULT_OUTPUT_DIR
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    schema_version: str = "current"
    timeout: float = DEFAULT_TIMEOUT
    display_tz: Optional[tzinfo] = None


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timezone(value: Optional[str]) -> Optional[tzinfo]:
    """Resolve an IANA zone name; ``None`` means the host's local zone."""
    if value is None or not value.strip():
        return None
    name = value.strip()
    if name.upper() in {"UTC", "Z"}:
        return timezone.utc
    return tz.gettz(name)


def _read_flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def load_config(
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    use_fixture: Optional[bool] = None,
    output_dir: Optional[str] = None,
    refresh_interval: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if use_fixture is None:
        use_fixture = _read_flag(os.getenv(_USE_FIXTURE_ENV))
    if refresh_interval is None:
        refresh_interval = _read_float(
            os.getenv(_REFRESH_INTERVAL_ENV), DEFAULT_REFRESH_INTERVAL
        )
    schema_version = (os.getenv(_SCHEMA_VERSION_ENV) or "current").strip().lower()
    return CLIConfig(
        base_url=url.rstrip("/"),
        api_key=api_key or os.getenv(_API_KEY_ENV) or None,
        use_fixture=use_fixture,
        fixture_path=os.getenv(_FIXTURE_PATH_ENV) or DEFAULT_FIXTURE_PATH,
        output_dir=output_dir or os.getenv(_OUTPUT_DIR_ENV) or DEFAULT_OUTPUT_DIR,
        refresh_interval=refresh_interval,
        schema_version=schema_version if schema_version in ("current", "legacy") else "current",
        display_tz=_read_timezone(os.getenv(_TIMEZONE_ENV)),
    )
