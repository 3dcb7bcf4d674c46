"""Project raw readings into per-metric chart series."""

from __future__ import annotations

from typing import Iterable, Mapping, Union

from app.schemas import Reading
from models.records import METRIC_SPECS, Metric, MetricSpec, Series


def project(readings: Iterable[Reading], metric: Union[Metric, MetricSpec, str]) -> Series:
    """Build the ascending, null-free series of ``metric`` across ``readings``."""
    spec = _spec_for(metric)
    points = []
    for reading in readings:
        value = getattr(reading, spec.key, None)
        if value is None:
            continue
        points.append((reading.recorded_at, float(value)))
    points.sort(key=lambda point: point[0])
    return Series(spec=spec, points=tuple(points))


def project_all(
    readings: Iterable[Reading], specs: Iterable[MetricSpec]
) -> Mapping[Metric, Series]:
    materialized = list(readings)
    return {spec.metric: project(materialized, spec) for spec in specs}


def _spec_for(metric: Union[Metric, MetricSpec, str]) -> MetricSpec:
    if isinstance(metric, MetricSpec):
        return metric
    return METRIC_SPECS[Metric(metric)]
