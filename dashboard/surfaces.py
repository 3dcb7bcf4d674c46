"""Matplotlib-backed chart surfaces written to image files."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

import matplotlib.dates as mdates
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from models.records import MetricSpec, Series

if TYPE_CHECKING:
    from datetime import tzinfo


IMAGE_FORMAT = "png"


class FigureSurface:
    """One metric chart kept alive across renders and saved after every change."""

    def __init__(
        self,
        spec: MetricSpec,
        size: Tuple[float, float],
        path: Path,
        dpi: int = 100,
        display_tz: Optional["tzinfo"] = None,
    ) -> None:
        self.spec = spec
        self.path = path
        self.dpi = dpi
        self.released = False
        width, height = size
        self.figure = Figure(figsize=(width / dpi, height / dpi), dpi=dpi)
        FigureCanvasAgg(self.figure)
        self.axes = self.figure.add_subplot()
        self.axes.xaxis_date(display_tz)
        self.axes.xaxis.set_major_locator(mdates.AutoDateLocator(tz=display_tz))
        (self.line,) = self.axes.plot(
            [], [], color=spec.color, linewidth=2, marker="o", markersize=3
        )
        title = f"{spec.label} ({spec.unit})" if spec.unit else spec.label
        self.axes.set_title(title)
        self.axes.set_xlabel("Time")
        self.axes.set_ylabel(title)
        self.axes.grid(True, alpha=0.3)
        self.axes.xaxis.set_major_formatter(mdates.DateFormatter("%m/%d %H:%M", tz=display_tz))

    def update(self, series: Series) -> None:
        self._ensure_alive()
        self.line.set_data(series.times, series.values)
        self.axes.relim()
        # A pinned bottom from the previous render disables y autoscaling.
        self.axes.set_autoscaley_on(True)
        self.axes.autoscale_view()
        if series.axis_minimum is not None:
            # Baseline stays put unless the data dips below it.
            self.axes.set_ylim(bottom=min(series.axis_minimum, min(series.values)))
        self._draw()

    def resize(self, width: float, height: float) -> None:
        self._ensure_alive()
        self.figure.set_size_inches(width / self.dpi, height / self.dpi)
        self._draw()

    def release(self, keep_output: bool = False) -> None:
        if self.released:
            return
        self.figure.clear()
        self.released = True
        if not keep_output:
            self.path.unlink(missing_ok=True)

    def _draw(self) -> None:
        self.figure.autofmt_xdate(rotation=45)
        self.figure.tight_layout()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.figure.savefig(self.path)

    def _ensure_alive(self) -> None:
        if self.released:
            raise RuntimeError(f"Chart surface for {self.spec.key} was already released.")


def figure_surface_factory(
    output_dir: Path,
    image_format: str = IMAGE_FORMAT,
    display_tz: Optional["tzinfo"] = None,
):
    """Surface factory that binds each metric slot to ``<output_dir>/<metric>.<format>``."""

    def build(spec: MetricSpec, size: Tuple[float, float]) -> FigureSurface:
        path = output_dir / f"{spec.key}.{image_format}"
        return FigureSurface(spec, size, path=path, display_tz=display_tz)

    return build
