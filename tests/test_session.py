from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from app.schemas import Reading
from dashboard.charts import ChartLifecycleManager, SlotState
from dashboard.session import (
    LATEST_ERROR_MESSAGE,
    NO_LATEST_MESSAGE,
    DashboardSession,
)
from models.records import Interval, Metric, MetricSpec, Series, metrics_for_schema
from services.data_source import FetchFailed
from services.time_range import TimeFrame, TimeFrameSelection

UTC = timezone.utc
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class StubSource:
    def __init__(self, readings: Optional[List[Reading]] = None) -> None:
        self.readings = readings or []
        self.intervals: List[Interval] = []
        self.error: Optional[str] = None
        self.latest: Optional[Reading] = None

    def fetch_range(self, interval: Interval) -> List[Reading]:
        self.intervals.append(interval)
        if self.error:
            raise FetchFailed(self.error)
        return [reading for reading in self.readings if interval.contains(reading.recorded_at)]

    def fetch_latest(self) -> Optional[Reading]:
        if self.error:
            raise FetchFailed(self.error)
        return self.latest


class CountingSurface:
    def __init__(self) -> None:
        self.updates: List[Series] = []
        self.release_count = 0
        self.kept_output: Optional[bool] = None

    def update(self, series: Series) -> None:
        self.updates.append(series)

    def resize(self, width: float, height: float) -> None:
        pass

    def release(self, keep_output: bool = False) -> None:
        self.release_count += 1
        self.kept_output = keep_output


def _reading(reading_id: int, minutes_ago: int, **metrics) -> Reading:
    fields = {
        "temperature_f": 70.0,
        "humidity_percent": 40.0,
        "pressure_hpa": 1010.0,
        "co2": 500.0,
    }
    fields.update(metrics)
    return Reading(
        id=reading_id,
        recorded_at=NOW - timedelta(minutes=minutes_ago),
        device_id="pico-w-1",
        **fields,
    )


def _session(source: StubSource) -> Tuple[DashboardSession, List[CountingSurface]]:
    created: List[CountingSurface] = []

    def factory(spec: MetricSpec, size: Tuple[float, float]) -> CountingSurface:
        surface = CountingSurface()
        created.append(surface)
        return surface

    specs = metrics_for_schema("current")
    session = DashboardSession(
        source=source,
        charts=ChartLifecycleManager(factory, specs=specs),
        specs=specs,
        tz=UTC,
    )
    return session, created


def test_refresh_renders_every_metric_once() -> None:
    source = StubSource([_reading(1, 10), _reading(2, 5)])
    session, created = _session(source)

    outcome = session.refresh(now=NOW)

    assert outcome.applied is True
    assert outcome.row_count == 2
    assert source.intervals == [Interval(since=NOW - timedelta(hours=24))]
    assert len(created) == 4
    assert all(slot.state is SlotState.rendering for slot in session.charts.slots.values())


def test_repeated_refresh_reuses_instances() -> None:
    session, created = _session(StubSource([_reading(1, 10)]))

    session.refresh(now=NOW)
    session.refresh(now=NOW)

    assert len(created) == 4
    assert all(len(surface.updates) == 2 for surface in created)


def test_select_replaces_selection_and_refreshes() -> None:
    source = StubSource([_reading(1, 90), _reading(2, 30, co2=None)])
    session, created = _session(source)
    session.refresh(now=NOW)

    outcome = session.select(TimeFrameSelection(TimeFrame.last_hour), now=NOW)

    assert session.selection.frame is TimeFrame.last_hour
    assert outcome.row_count == 1
    co2_slot = session.charts.slots[Metric.co2]
    assert co2_slot.state is SlotState.absent
    assert created[0].release_count == 1
    assert session.charts.slots[Metric.humidity_percent].state is SlotState.rendering


def test_empty_cycle_releases_each_instance_exactly_once() -> None:
    source = StubSource([_reading(1, 10)])
    session, created = _session(source)
    session.refresh(now=NOW)

    source.readings = []
    session.refresh(now=NOW)
    session.refresh(now=NOW)

    assert [surface.release_count for surface in created] == [1, 1, 1, 1]
    assert all(slot.state is SlotState.absent for slot in session.charts.slots.values())


def test_specific_day_selection_bounds_the_fetch() -> None:
    source = StubSource()
    session, _ = _session(source)

    session.select(TimeFrameSelection(TimeFrame.specific_day, date(2024, 5, 30)), now=NOW)

    interval = source.intervals[-1]
    assert interval.since == datetime(2024, 5, 30, tzinfo=UTC)
    assert interval.until == datetime(2024, 5, 30, 23, 59, 59, tzinfo=UTC)


def test_fetch_failure_marks_slots_as_errors(caplog) -> None:
    source = StubSource([_reading(1, 10)])
    session, created = _session(source)
    session.refresh(now=NOW)

    source.error = "Request to /api/sensors failed with status 500"
    with caplog.at_level(logging.ERROR):
        outcome = session.refresh(now=NOW)

    assert outcome.error == source.error
    for slot in session.charts.slots.values():
        assert slot.state is SlotState.error
        assert slot.placeholder == f"Error: {source.error}"
    assert [surface.release_count for surface in created] == [1, 1, 1, 1]
    assert any(record.name == "dashboard.session" for record in caplog.records)


def test_stale_completion_is_discarded() -> None:
    source = StubSource()
    session, created = _session(source)

    slow_generation, slow_interval = session.begin_cycle(now=NOW)
    fast_generation, fast_interval = session.begin_cycle(now=NOW)

    fast = session.complete_cycle(fast_generation, fast_interval, readings=[_reading(2, 1)])
    slow = session.complete_cycle(slow_generation, slow_interval, readings=[])

    assert fast.applied is True
    assert slow.applied is False
    assert session.applied_generation == fast_generation
    assert all(slot.state is SlotState.rendering for slot in session.charts.slots.values())
    assert all(surface.release_count == 0 for surface in created)


def test_resize_is_forwarded_to_charts() -> None:
    session, _ = _session(StubSource([_reading(1, 10)]))
    session.refresh(now=NOW)

    session.resize(1200.0, 600.0)

    assert session.charts.size == (1200.0, 600.0)


@pytest.mark.parametrize(
    ("latest", "error", "expected_message"),
    [
        (None, None, NO_LATEST_MESSAGE),
        (None, "offline", LATEST_ERROR_MESSAGE),
    ],
)
def test_latest_panel_messages(latest, error, expected_message) -> None:
    source = StubSource()
    source.latest = latest
    source.error = error
    session, _ = _session(source)

    panel = session.latest()

    assert panel.reading is None
    assert panel.message == expected_message


def test_latest_panel_returns_reading() -> None:
    source = StubSource()
    source.latest = _reading(9, 0)
    session, _ = _session(source)

    panel = session.latest()

    assert panel.reading == source.latest
    assert panel.message is None
