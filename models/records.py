"""Domain models shared across services and the dashboard."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class Metric(str, Enum):
    """Closed set of metrics a reading can carry."""

    co2 = "co2"
    eco2 = "eco2"
    tvoc = "tvoc"
    aqi = "aqi"
    temperature_f = "temperature_f"
    temperature_c = "temperature_c"
    humidity_percent = "humidity_percent"
    pressure_hpa = "pressure_hpa"


@dataclass(frozen=True, slots=True)
class MetricSpec:
    """Display attributes and axis policy for one metric."""

    metric: Metric
    label: str
    color: str
    unit: str
    axis_minimum: Optional[float] = None

    @property
    def key(self) -> str:
        return self.metric.value


CO2_BASELINE_PPM = 400.0

METRIC_SPECS: dict[Metric, MetricSpec] = {
    spec.metric: spec
    for spec in (
        MetricSpec(Metric.co2, "CO2", "#2ca02c", "ppm", axis_minimum=CO2_BASELINE_PPM),
        MetricSpec(Metric.eco2, "eCO2", "#2ca02c", "ppm", axis_minimum=CO2_BASELINE_PPM),
        MetricSpec(Metric.tvoc, "TVOC", "#9467bd", "ppb"),
        MetricSpec(Metric.aqi, "Air Quality Index", "#d62728", ""),
        MetricSpec(Metric.temperature_f, "Temperature", "#ff7f0e", "°F"),
        MetricSpec(Metric.temperature_c, "Temperature", "#ff7f0e", "°C"),
        MetricSpec(Metric.humidity_percent, "Humidity", "#1f77b4", "%"),
        MetricSpec(Metric.pressure_hpa, "Pressure", "#8c564b", "hPa"),
    )
}

_DASHBOARD_METRICS: dict[str, Tuple[Metric, ...]] = {
    "current": (
        Metric.co2,
        Metric.temperature_f,
        Metric.humidity_percent,
        Metric.pressure_hpa,
    ),
    "legacy": (
        Metric.aqi,
        Metric.eco2,
        Metric.tvoc,
        Metric.temperature_f,
        Metric.humidity_percent,
        Metric.pressure_hpa,
    ),
}


def metrics_for_schema(schema_version: str) -> Tuple[MetricSpec, ...]:
    """Charted metrics, in panel order, for a sensor schema version."""
    metrics = _DASHBOARD_METRICS.get(schema_version, _DASHBOARD_METRICS["current"])
    return tuple(METRIC_SPECS[metric] for metric in metrics)


@dataclass(frozen=True, slots=True)
class Interval:
    """Absolute time window; ``until=None`` leaves the upper side open."""

    since: datetime
    until: Optional[datetime] = None
    until_inclusive: bool = False

    def contains(self, moment: datetime) -> bool:
        if moment < self.since:
            return False
        if self.until is None:
            return True
        if self.until_inclusive:
            return moment <= self.until
        return moment < self.until


@dataclass(frozen=True, slots=True)
class Series:
    """Time-ordered ``(time, value)`` points for one metric."""

    spec: MetricSpec
    points: Tuple[Tuple[datetime, float], ...] = ()

    @property
    def metric(self) -> Metric:
        return self.spec.metric

    @property
    def axis_minimum(self) -> Optional[float]:
        return self.spec.axis_minimum

    @property
    def times(self) -> list[datetime]:
        return [time for time, _ in self.points]

    @property
    def values(self) -> list[float]:
        return [value for _, value in self.points]

    def __len__(self) -> int:
        return len(self.points)

    def __bool__(self) -> bool:
        return bool(self.points)
