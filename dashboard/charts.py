"""Per-metric chart slots and the lifecycle of their rendering surfaces."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Mapping, Optional, Protocol, Tuple

from models.records import Metric, MetricSpec, Series

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data available for selected range."
DEFAULT_SIZE = (800.0, 400.0)


class SlotState(str, Enum):
    absent = "absent"
    rendering = "rendering"
    error = "error"


class ChartSurface(Protocol):
    """A drawable chart bound to one slot's container."""

    def update(self, series: Series) -> None:
        ...

    def resize(self, width: float, height: float) -> None:
        ...

    def release(self, keep_output: bool = False) -> None:
        ...


SurfaceFactory = Callable[[MetricSpec, Tuple[float, float]], ChartSurface]


@dataclass
class ChartSlot:
    spec: MetricSpec
    state: SlotState = SlotState.absent
    surface: Optional[ChartSurface] = None
    placeholder: Optional[str] = None


class ChartLifecycleManager:
    """Owns the metric -> surface mapping.

    A surface is created on the first non-empty render of a slot, updated in
    place on later renders and released as soon as a render comes back empty
    or the cycle fails. Slots without a surface show a placeholder message.
    """

    def __init__(
        self,
        surface_factory: SurfaceFactory,
        specs: Iterable[MetricSpec] = (),
        size: Tuple[float, float] = DEFAULT_SIZE,
    ) -> None:
        self._surface_factory = surface_factory
        self._slots: Dict[Metric, ChartSlot] = {}
        self.size = size
        for spec in specs:
            self.slot(spec)

    @property
    def slots(self) -> Mapping[Metric, ChartSlot]:
        return dict(self._slots)

    def slot(self, spec: MetricSpec) -> ChartSlot:
        slot = self._slots.get(spec.metric)
        if slot is None:
            slot = ChartSlot(spec=spec)
            self._slots[spec.metric] = slot
        return slot

    def render(self, series: Series) -> ChartSlot:
        slot = self.slot(series.spec)
        if not series:
            self._release(slot)
            slot.state = SlotState.absent
            slot.placeholder = NO_DATA_MESSAGE
            return slot

        if slot.surface is None:
            slot.surface = self._surface_factory(slot.spec, self.size)
            logger.debug("Created chart surface", extra={"metric": slot.spec.key})
        slot.surface.update(series)
        slot.state = SlotState.rendering
        slot.placeholder = None
        return slot

    def fail(self, spec: MetricSpec, message: str) -> ChartSlot:
        slot = self.slot(spec)
        self._release(slot)
        slot.state = SlotState.error
        slot.placeholder = f"Error: {message}"
        return slot

    def render_cycle(self, series_by_metric: Mapping[Metric, Series]) -> None:
        """Refresh every slot; a surface failure only affects its own slot."""
        for series in series_by_metric.values():
            try:
                self.render(series)
            except Exception as exc:
                logger.exception(
                    "Chart render failed", extra={"metric": series.spec.key}
                )
                self.fail(series.spec, str(exc))

    def fail_cycle(self, message: str, specs: Optional[Iterable[MetricSpec]] = None) -> None:
        targets = list(specs) if specs is not None else [slot.spec for slot in self._slots.values()]
        for spec in targets:
            self.fail(spec, message)

    def resize(self, width: float, height: float) -> None:
        self.size = (width, height)
        for slot in self._slots.values():
            if slot.state is SlotState.rendering and slot.surface is not None:
                slot.surface.resize(width, height)

    def close(self, keep_output: bool = False) -> None:
        """Release every surface; ``keep_output`` leaves already drawn images in place."""
        for slot in self._slots.values():
            self._release(slot, keep_output=keep_output)
            slot.state = SlotState.absent

    def _release(self, slot: ChartSlot, keep_output: bool = False) -> None:
        surface, slot.surface = slot.surface, None
        if surface is None:
            return
        try:
            surface.release(keep_output=keep_output)
        except Exception:
            logger.exception("Releasing chart surface failed", extra={"metric": slot.spec.key})
        logger.debug("Released chart surface", extra={"metric": slot.spec.key})
