from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_created,
    render_cycle,
    render_latest_panel,
    render_reading,
    render_readings,
)
from dashboard.charts import ChartLifecycleManager
from dashboard.session import DashboardSession
from dashboard.surfaces import figure_surface_factory
from logging_config import configure_logging
from models.records import metrics_for_schema
from services.data_source import DataSourceConfig, build_data_source
from services.time_range import TimeFrame, TimeFrameSelection


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for posting sensor readings and rendering the dashboard.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def build_session(
    config: CLIConfig,
    client: ApiClient,
    output_dir: Path,
    size: tuple[float, float],
    selection: TimeFrameSelection,
    device_id: Optional[str] = None,
) -> DashboardSession:
    specs = metrics_for_schema(config.schema_version)
    source = build_data_source(
        DataSourceConfig(
            use_fixture=config.use_fixture,
            fixture_path=config.fixture_path,
            device_id=device_id,
        ),
        client.http,
    )
    surfaces = figure_surface_factory(output_dir, display_tz=config.display_tz)
    charts = ChartLifecycleManager(surfaces, specs=specs, size=size)
    return DashboardSession(
        source=source,
        charts=charts,
        specs=specs,
        selection=selection,
        tz=config.display_tz,
    )


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Sensor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        help="Key sent as X-API-Key when posting readings (defaults to SENSOR_API_KEY env).",
    ),
    fixture: Optional[bool] = typer.Option(
        None,
        "--fixture/--live",
        help="Read the static fixture instead of the live API (default: DASHBOARD_USE_FIXTURE).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    config = load_config(base_url=base_url, api_key=api_key, use_fixture=fixture)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="JSON file with one reading."
    ),
) -> None:
    """Post one reading payload to the service."""
    state = _get_state(ctx)
    typer.echo(f"Posting {file} to {state.config.base_url} ...")
    render_created(state.client.post_reading(file))


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    since: Optional[str] = typer.Option(None, "--since", help="ISO-8601 lower bound."),
    device_id: Optional[str] = typer.Option(None, "--device-id"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, max=1000),
) -> None:
    """List stored readings, newest first."""
    state = _get_state(ctx)
    render_readings(state.client.list_readings(since=since, device_id=device_id, limit=limit))


@app.command("latest")
def latest_command(
    ctx: typer.Context,
    device_id: Optional[str] = typer.Option(None, "--device-id"),
) -> None:
    """Show the most recent reading."""
    state = _get_state(ctx)
    payload = state.client.get_latest(device_id=device_id)
    if payload is None:
        typer.secho("No readings found", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    render_reading(payload)


@app.command("dashboard")
def dashboard_command(
    ctx: typer.Context,
    time_frame: str = typer.Option(
        TimeFrame.last_24_hours.value,
        "--time-frame",
        "-t",
        help="last-hour, last-24-hours or specific-day.",
    ),
    day: Optional[datetime] = typer.Option(
        None, "--date", formats=["%Y-%m-%d"], help="Day to chart with specific-day."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", file_okay=False, help="Where chart images are written."
    ),
    device_id: Optional[str] = typer.Option(
        None, "--device-id", help="Only chart readings from this device."
    ),
    width: float = typer.Option(800.0, "--width", min=100.0),
    height: float = typer.Option(400.0, "--height", min=100.0),
    watch: bool = typer.Option(
        False, "--watch/--no-watch", help="Keep refreshing until interrupted."
    ),
    interval: Optional[float] = typer.Option(
        None, "--interval", help="Seconds between refreshes while watching."
    ),
) -> None:
    """Render one chart per metric for the selected time frame."""
    state = _get_state(ctx)
    directory = output_dir or Path(state.config.output_dir)
    selection = TimeFrameSelection.parse(time_frame, day.date() if day else None)
    session = build_session(
        state.config,
        state.client,
        directory,
        (width, height),
        selection,
        device_id=device_id or None,
    )
    refresh_every = interval if interval is not None else state.config.refresh_interval

    source_name = "fixture" if state.config.use_fixture else "live"
    typer.echo(f"Rendering {selection.frame.value} from {source_name} data into {directory} ...")
    try:
        while True:
            outcome = session.refresh()
            render_cycle(outcome, session.charts.slots, directory)
            typer.echo()
            render_latest_panel(session.latest())
            if not watch:
                return
            time.sleep(refresh_every)
            typer.echo()
    except KeyboardInterrupt:
        typer.echo("Stopped.")
    finally:
        session.close(keep_output=True)
