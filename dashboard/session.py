"""Dashboard session state and the render cycle that drives the charts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Optional, Sequence, Tuple

from app.schemas import Reading
from dashboard.charts import ChartLifecycleManager
from models.records import Interval, MetricSpec
from services.data_source import DataSource, FetchFailed
from services.projection import project_all
from services.time_range import TimeFrameSelection, resolve

logger = logging.getLogger(__name__)

NO_LATEST_MESSAGE = "No readings available."
LATEST_ERROR_MESSAGE = "Error loading latest reading."


@dataclass(frozen=True)
class CycleOutcome:
    generation: int
    applied: bool
    interval: Optional[Interval] = None
    row_count: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class LatestPanel:
    reading: Optional[Reading] = None
    message: Optional[str] = None


@dataclass
class DashboardSession:
    """Everything the dashboard mutates between events.

    ``source`` is chosen once when the session is built. Each render cycle is
    stamped with a generation number; a completion older than the last
    applied one is dropped so a slow earlier fetch cannot overwrite newer
    charts.
    """

    source: DataSource
    charts: ChartLifecycleManager
    specs: Sequence[MetricSpec]
    selection: TimeFrameSelection = field(default_factory=TimeFrameSelection)
    tz: Optional[tzinfo] = None
    generation: int = 0
    applied_generation: int = 0

    def select(
        self, selection: TimeFrameSelection, now: Optional[datetime] = None
    ) -> CycleOutcome:
        self.selection = selection
        return self.refresh(now=now)

    def refresh(self, now: Optional[datetime] = None) -> CycleOutcome:
        generation, interval = self.begin_cycle(now=now)
        try:
            readings = self.source.fetch_range(interval)
        except FetchFailed as exc:
            return self.complete_cycle(generation, interval, error=str(exc))
        return self.complete_cycle(generation, interval, readings=readings)

    def begin_cycle(self, now: Optional[datetime] = None) -> Tuple[int, Interval]:
        self.generation += 1
        return self.generation, resolve(self.selection, now=now, tz=self.tz)

    def complete_cycle(
        self,
        generation: int,
        interval: Interval,
        readings: Optional[Sequence[Reading]] = None,
        error: Optional[str] = None,
    ) -> CycleOutcome:
        if generation <= self.applied_generation:
            logger.info("Discarding stale render cycle", extra={"generation": generation})
            return CycleOutcome(generation=generation, applied=False, interval=interval)
        self.applied_generation = generation

        if error is not None:
            logger.error(
                "Fetching readings failed",
                extra={"generation": generation, "reason": error},
            )
            self.charts.fail_cycle(error, self.specs)
            return CycleOutcome(generation, applied=True, interval=interval, error=error)

        rows = list(readings or [])
        self.charts.render_cycle(project_all(rows, self.specs))
        logger.info(
            "Rendered dashboard",
            extra={
                "generation": generation,
                "row_count": len(rows),
                "since": interval.since.isoformat(),
                "until": interval.until.isoformat() if interval.until else None,
            },
        )
        return CycleOutcome(generation, applied=True, interval=interval, row_count=len(rows))

    def resize(self, width: float, height: float) -> None:
        self.charts.resize(width, height)

    def latest(self) -> LatestPanel:
        try:
            reading = self.source.fetch_latest()
        except FetchFailed as exc:
            logger.error("Fetching latest reading failed", extra={"reason": str(exc)})
            return LatestPanel(message=LATEST_ERROR_MESSAGE)
        if reading is None:
            return LatestPanel(message=NO_LATEST_MESSAGE)
        return LatestPanel(reading=reading)

    def close(self, keep_output: bool = False) -> None:
        self.charts.close(keep_output=keep_output)
