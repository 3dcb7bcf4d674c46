from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Sequence

import typer

from dashboard.charts import ChartSlot, SlotState
from dashboard.session import CycleOutcome, LatestPanel
from dashboard.surfaces import IMAGE_FORMAT
from models.records import Metric

_READING_FIELDS = (
    "temperature_c",
    "temperature_f",
    "humidity_percent",
    "pressure_hpa",
    "co2",
    "eco2",
    "tvoc",
    "aqi",
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(payload: Mapping[str, Any]) -> None:
    echo_heading("Current Readings")
    pairs = [
        ("recorded_at", payload.get("recorded_at")),
        ("device_id", payload.get("device_id")),
    ]
    pairs.extend(
        (name, payload.get(name)) for name in _READING_FIELDS if payload.get(name) is not None
    )
    echo_key_values(pairs)


def render_readings(rows: Sequence[Mapping[str, Any]]) -> None:
    echo_heading(f"Readings ({len(rows)})")
    if not rows:
        typer.echo("No readings found.")
        return
    for row in rows:
        metrics = " ".join(
            f"{name}={row.get(name)}" for name in _READING_FIELDS if row.get(name) is not None
        )
        typer.echo(
            f"  - #{row.get('id')} {row.get('recorded_at')} {row.get('device_id')} {metrics}"
        )


def render_latest_panel(panel: LatestPanel) -> None:
    if panel.reading is None:
        echo_heading("Current Readings")
        typer.echo(panel.message or "No readings available.")
        return
    render_reading(panel.reading.model_dump(mode="json"))


def render_cycle(
    outcome: CycleOutcome, slots: Mapping[Metric, ChartSlot], output_dir: Path
) -> None:
    echo_heading("Charts")
    if outcome.interval is not None:
        until = outcome.interval.until.isoformat() if outcome.interval.until else "now"
        typer.echo(f"window: {outcome.interval.since.isoformat()} -> {until}")
    typer.echo(f"readings: {outcome.row_count}")
    for slot in slots.values():
        label = slot.spec.label
        if slot.state is SlotState.rendering:
            path = output_dir / f"{slot.spec.key}.{IMAGE_FORMAT}"
            typer.echo(f"  - {label}: {path}")
        elif slot.state is SlotState.error:
            typer.secho(f"  - {label}: {slot.placeholder}", fg=typer.colors.RED)
        else:
            typer.echo(f"  - {label}: {slot.placeholder}")


def render_created(payload: Dict[str, Any]) -> None:
    typer.secho(
        f"Reading stored. id={payload.get('id')} recorded_at={payload.get('recorded_at')}",
        fg=typer.colors.GREEN,
    )
