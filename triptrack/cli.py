from __future__ import annotations

import asyncio
import importlib.metadata as md
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from .apps.display import format_row, format_summary, history_table
from .config import TripConfig, load_config, resolve_config_path
from .core.events import Event, EventBus, EventType
from .core.tracker import TripTracker, replay_fixes
from .infrastructure.gps.gpsd_client import AsyncGPSClient, GPSConfig, MockGPSClient
from .infrastructure.gps.replay import load_fixes

# Typer application: tests import this
app = typer.Typer(no_args_is_help=True, add_completion=False, help="Triptrack CLI")
console = Console()


def _setup_logging(cfg: TripConfig) -> None:
    logging.basicConfig(
        level=cfg.logging.level_no,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=cfg.logging.rich_tracebacks)],
        force=True,
    )


def _load(config: Path | None) -> TripConfig:
    """Resolved config, or defaults when no file exists anywhere."""
    resolved = resolve_config_path(config)
    if not resolved.exists():
        console.print(f"No config at {resolved}, using defaults")
        return TripConfig()
    console.print(f"Using config: {resolved}")
    try:
        return load_config(resolved)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        raise typer.Exit(code=1) from exc


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Entry point for `triptrack` command."""
    if ctx.invoked_subcommand is None:
        console.print("Triptrack CLI - use `triptrack --help` to see commands.")
        raise typer.Exit(code=0)


@app.command()
def version() -> None:
    """Print version information."""
    try:
        console.print(f"triptrack {md.version('triptrack')}")
    except md.PackageNotFoundError:
        console.print("triptrack dev")
    raise typer.Exit(code=0)


@app.command(name="config-validate")
def config_validate(path: Path = typer.Argument(Path("configs/triptrack.yml"))) -> None:
    """Validate and show resolved configuration."""
    resolved = resolve_config_path(path)
    console.print(f"Using config: {resolved}")
    try:
        cfg = load_config(resolved)
    except (OSError, ValueError) as exc:
        console.print(f"Config validation failed: {exc}")
        raise typer.Exit(code=1) from exc
    console.print("Config OK. Key thresholds:")
    console.print(f"- min fix interval: {cfg.tracking.min_fix_interval_s}s")
    console.print(f"- warm-up fixes: {cfg.tracking.warmup_fixes}")
    console.print(f"- max plausible speed: {cfg.tracking.max_plausible_speed_kmh} km/h")
    console.print(f"- watchdog: every {cfg.watchdog.period_s}s, timeout {cfg.watchdog.timeout_s}s")


@app.command()
def config_which(path: Path = typer.Option(Path("configs/triptrack.yml"), "--config", "-c")) -> None:
    """Print resolved config path by priority rules."""
    console.print(str(resolve_config_path(path)))


@app.command()
def replay(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
    table: bool = typer.Option(True, "--table/--rows", help="Rich table or text rows"),
) -> None:
    """Run a recorded CSV of fixes through the tracker and print the history."""
    cfg = _load(config)
    _setup_logging(cfg)
    try:
        fixes = load_fixes(csv_path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Cannot read {csv_path}:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    tracker = TripTracker(cfg)
    summary = asyncio.run(replay_fixes(tracker, fixes))
    records = tracker.history
    averages = [tracker.row_average_kmh(i) for i in range(len(records))]

    if table:
        console.print(history_table(records, averages, cfg.watchdog.virtual_accuracy_m))
    else:
        for i, (record, average) in enumerate(zip(records, averages)):
            console.print(format_row(i, record, average, cfg.watchdog.virtual_accuracy_m))
    console.print(format_summary(summary))


@app.command()
def track(
    config: Path | None = typer.Option(None, "--config", "-c"),
    mock: bool = typer.Option(False, "--mock", help="Use the simulated GPS source"),
    minutes: float | None = typer.Option(None, "--minutes", help="Stop after this many minutes"),
) -> None:
    """Track a live trip from gpsd and print each new row."""
    cfg = _load(config)
    _setup_logging(cfg)
    try:
        asyncio.run(_track(cfg, mock or cfg.gps.mock_mode, minutes))
    except KeyboardInterrupt:
        console.print("Interrupted")


async def _track(cfg: TripConfig, mock: bool, minutes: float | None) -> None:
    if mock:
        source = MockGPSClient(
            start_lat=cfg.gps.mock_lat,
            start_lon=cfg.gps.mock_lon,
            speed_mps=cfg.gps.mock_speed_mps,
        )
    else:
        source = AsyncGPSClient(
            GPSConfig(
                host=cfg.gps.host,
                port=cfg.gps.port,
                timeout=cfg.gps.timeout,
                reconnect_delay=cfg.gps.reconnect_delay,
            )
        )

    bus = EventBus()
    tracker = TripTracker(cfg, event_bus=bus)

    printed = {"rows": 0}

    @bus.on(EventType.RECORD_APPENDED)
    async def _print_row(event: Event) -> None:
        index = printed["rows"]
        printed["rows"] += 1
        console.print(
            format_row(index, event.data, tracker.row_average_kmh(index), cfg.watchdog.virtual_accuracy_m)
        )

    @bus.on(EventType.STATUS_CHANGED)
    async def _print_status(event: Event) -> None:
        console.print(f"[cyan]{event.data}[/cyan]")

    await bus.start()
    await tracker.start(source=source)
    try:
        if minutes is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(minutes * 60)
    finally:
        summary = await tracker.stop()
        await bus.stop()
        console.print(format_summary(summary))


def launch() -> None:
    """Entry point when executed as a module/script."""
    cli()


# Click command export (entrypoint)
cli = typer.main.get_command(app)

__all__ = ["app", "cli"]

if __name__ == "__main__":
    launch()
