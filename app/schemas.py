"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Reading(BaseModel):
    """One stored sensor sample as returned by the API and the fixture file."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="Identifier assigned by the store.")
    recorded_at: datetime
    device_id: str
    temperature_c: Optional[float] = None
    temperature_f: Optional[float] = None
    humidity_percent: Optional[float] = None
    pressure_hpa: Optional[float] = None
    co2: Optional[float] = None
    eco2: Optional[float] = None
    tvoc: Optional[float] = None
    aqi: Optional[int] = Field(default=None, ge=1, le=5)

    @field_validator("recorded_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class NewReading(BaseModel):
    """Validated inbound payload ready to be inserted."""

    model_config = ConfigDict(allow_inf_nan=False)

    recorded_at: Optional[datetime] = None
    device_id: str
    temperature_c: Optional[float] = None
    temperature_f: Optional[float] = None
    humidity_percent: Optional[float] = None
    pressure_hpa: Optional[float] = None
    co2: Optional[float] = None
    eco2: Optional[float] = None
    tvoc: Optional[float] = None
    aqi: Optional[int] = None


class InsertedReading(BaseModel):
    """Response payload after a reading has been stored."""

    id: int
    recorded_at: datetime


class ErrorResponse(BaseModel):
    """Body of every non-success response."""

    error: str
