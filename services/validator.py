"""Field-contract checks for inbound sensor payloads."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

_COMMON_FIELDS = ("temperature_c", "temperature_f", "humidity_percent", "pressure_hpa")

REQUIRED_FIELDS: dict[str, Tuple[str, ...]] = {
    "current": _COMMON_FIELDS + ("co2",),
    "legacy": _COMMON_FIELDS + ("eco2", "tvoc", "aqi"),
}

AQI_RANGE = (1, 5)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def passed(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str) -> "ValidationResult":
        return cls(ok=False, reason=reason)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _is_valid_aqi(value: Any) -> bool:
    if not _is_number(value):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    low, high = AQI_RANGE
    return low <= value <= high


def validate(payload: Any, schema_version: str = "current") -> ValidationResult:
    """Check ``payload`` against the required-field contract of ``schema_version``.

    Checks run in order: presence of every required field (a ``None`` or ``0``
    value counts as present), numeric type of the required fields, then the
    1-5 range of ``aqi`` whenever the payload carries one. The current schema
    reports every non-numeric field in one message; the legacy schema stops
    at the first one. Never raises.
    """
    if not isinstance(payload, Mapping):
        return ValidationResult.failed("Payload must be a JSON object")

    required = REQUIRED_FIELDS.get(schema_version, REQUIRED_FIELDS["current"])

    missing = [name for name in required if name not in payload]
    if missing:
        return ValidationResult.failed(f"Missing required fields: {', '.join(missing)}")

    if schema_version == "legacy":
        for name in required:
            if not _is_number(payload[name]):
                return ValidationResult.failed(f"{name} must be a number")
    else:
        not_numeric = [name for name in required if not _is_number(payload[name])]
        if not_numeric:
            return ValidationResult.failed(
                f"Fields must be numbers: {', '.join(not_numeric)}"
            )

    if payload.get("aqi") is not None and not _is_valid_aqi(payload["aqi"]):
        low, high = AQI_RANGE
        return ValidationResult.failed(f"aqi must be an integer between {low} and {high}")

    return ValidationResult.passed()
