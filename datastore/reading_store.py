from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import List, Optional

from app.schemas import InsertedReading, NewReading, Reading
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000


class StoreUnavailable(RuntimeError):
    """Raised when the backing file cannot be read or written."""


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None or limit < 1:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


class ReadingStore:
    """Append-only, time-ordered record of sensor readings."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._readings: List[Reading] = []
        self._next_id = 1
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            try:
                persistence_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StoreUnavailable(
                    f"Cannot prepare reading store at {persistence_path}: {exc}"
                ) from exc
            self._load_from_disk()

    def insert(self, reading: NewReading) -> InsertedReading:
        """Store ``reading``, assigning ``id`` and ``recorded_at`` when absent."""
        recorded_at = reading.recorded_at or datetime.now(timezone.utc)
        if recorded_at.tzinfo is None:
            recorded_at = recorded_at.replace(tzinfo=timezone.utc)

        with self._lock:
            stored = Reading(
                **reading.model_dump(exclude={"recorded_at"}),
                id=self._next_id,
                recorded_at=recorded_at.astimezone(timezone.utc),
            )
            self._readings.append(stored)
            try:
                self._persist()
            except StoreUnavailable:
                self._readings.pop()
                raise
            self._next_id += 1

        logger.debug(
            "Stored reading",
            extra={"reading_id": stored.id, "device_id": stored.device_id},
        )
        return InsertedReading(id=stored.id, recorded_at=stored.recorded_at)

    def query_range(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        device_id: Optional[str] = None,
        limit: Optional[int] = DEFAULT_LIMIT,
    ) -> list[Reading]:
        """Newest-first readings with ``since <= recorded_at < until``."""
        with self._lock:
            candidates = [
                reading
                for reading in self._readings
                if (since is None or reading.recorded_at >= since)
                and (until is None or reading.recorded_at < until)
                and (device_id is None or reading.device_id == device_id)
            ]
        candidates.sort(key=lambda reading: (reading.recorded_at, reading.id), reverse=True)
        return [reading.model_copy(deep=True) for reading in candidates[: clamp_limit(limit)]]

    def query_latest(self, device_id: Optional[str] = None) -> Optional[Reading]:
        newest = self.query_range(device_id=device_id, limit=1)
        return newest[0] if newest else None

    def count(self) -> int:
        with self._lock:
            return len(self._readings)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [reading.model_dump(mode="json") for reading in self._readings]
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2))
        except OSError as exc:
            raise StoreUnavailable(
                f"Cannot write reading store at {self.persistence_path}: {exc}"
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except OSError as exc:
            raise StoreUnavailable(
                f"Cannot read reading store at {self.persistence_path}: {exc}"
            ) from exc
        except json.JSONDecodeError:
            logger.warning(
                "Ignoring unreadable reading store file %s", self.persistence_path
            )
            data = []

        self._readings = [Reading.model_validate(item) for item in data]
        if self._readings:
            self._next_id = max(reading.id for reading in self._readings) + 1
        logger.info("Loaded stored readings", extra={"row_count": len(self._readings)})


@lru_cache
def build_default_store(path: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(persistence_path=persistence)
