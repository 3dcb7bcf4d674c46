"""Ingestion orchestration: validate inbound payloads and persist them."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from app.schemas import InsertedReading, NewReading, Reading
from datastore.reading_store import ReadingStore, build_default_store
from services.validator import validate
from settings import get_settings

logger = logging.getLogger(__name__)


class ValidationFailed(ValueError):
    """Inbound payload violated the reading field contract."""


class IngestionService:
    """Coordinates validation, normalization and storage of readings."""

    def __init__(
        self,
        store: ReadingStore,
        schema_version: str = "current",
        default_device_id: str = "pico-w-1",
    ) -> None:
        self.store = store
        self.schema_version = schema_version
        self.default_device_id = default_device_id

    def ingest(self, payload: Any) -> InsertedReading:
        """Validate ``payload`` and insert it; nothing is written on failure."""
        result = validate(payload, self.schema_version)
        if not result.ok:
            logger.warning("Rejected sensor payload", extra={"reason": result.reason})
            raise ValidationFailed(result.reason)

        reading = self._normalize(payload)
        inserted = self.store.insert(reading)
        logger.info(
            "Accepted sensor reading",
            extra={"reading_id": inserted.id, "device_id": reading.device_id},
        )
        return inserted

    def latest(self, device_id: Optional[str] = None) -> Optional[Reading]:
        return self.store.query_latest(device_id=device_id)

    def readings(
        self,
        since: Optional[datetime] = None,
        device_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Reading]:
        return self.store.query_range(since=since, device_id=device_id, limit=limit)

    def _normalize(self, payload: Mapping[str, Any]) -> NewReading:
        device_id = payload.get("device_id")
        if not isinstance(device_id, str) or not device_id.strip():
            device_id = self.default_device_id

        recorded_at = payload.get("recorded_at")
        if recorded_at is not None:
            try:
                recorded_at = parse_timestamp(str(recorded_at))
            except ValueError as exc:
                raise ValidationFailed("recorded_at must be an ISO-8601 timestamp") from exc

        fields = {name: payload.get(name) for name in NewReading.model_fields}
        fields.update(device_id=device_id.strip(), recorded_at=recorded_at)
        try:
            return NewReading(**fields)
        except PydanticValidationError as exc:
            invalid = sorted({str(error["loc"][0]) for error in exc.errors()})
            raise ValidationFailed(f"Fields must be numbers: {', '.join(invalid)}") from exc


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 instant, treating naive values as UTC."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


@lru_cache
def build_default_ingestion() -> IngestionService:
    """Factory that wires the ingestion service with the configured store."""
    settings = get_settings()
    return IngestionService(
        store=build_default_store(),
        schema_version=settings.schema_version,
        default_device_id=settings.default_device_id,
    )
