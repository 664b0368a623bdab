"""Text rendering of trip history rows and the live summary."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from rich.table import Table

from ..domain.models import Record, TripSummary


def format_datetime(value: datetime) -> str:
    """dd/mm/yyyy HH:MM:SS"""
    return value.strftime("%d/%m/%Y %H:%M:%S")


def format_duration(value: timedelta) -> str:
    """HH:MM:SS; hours keep counting past 24."""
    total = max(0, int(value.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def _fmt(value: float | None, digits: int) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


def format_row(
    index: int,
    record: Record,
    average_kmh: float | None,
    virtual_accuracy_m: float = 9999.0,
) -> str:
    """Three-line text for history row `index` (0-based)."""
    accuracy = record.display_accuracy_m(virtual_accuracy_m)
    lines = [
        f"{index + 1}. Lat: {record.latitude:.6f} | Lon: {record.longitude:.6f}",
        f"   Time: {format_datetime(record.timestamp)} | "
        f"Elapsed: {format_duration(record.elapsed)} | "
        f"Speed: {record.speed_kmh or 0.0:.2f} km/h",
        f"   Dist: {record.display_distance_km:.3f} km | Avg: {_fmt(average_kmh, 2)} km/h"
        + (f" | Acc: {accuracy:.1f}m" if accuracy is not None else ""),
    ]
    if record.is_virtual:
        lines[0] += " | DR"
    elif record.gps_jump:
        lines[0] += " | JUMP"
    return "\n".join(lines)


def format_summary(summary: TripSummary) -> str:
    return (
        f"{summary.status} | Speed: {summary.speed_kmh:.2f} km/h | "
        f"Avg: {_fmt(summary.average_speed_kmh, 2)} km/h | "
        f"Dist: {summary.distance_km:.3f} km | "
        f"Elapsed: {format_duration(summary.elapsed)} | "
        f"Records: {summary.record_count}"
    )


def history_table(
    records: Sequence[Record],
    averages: Sequence[float | None],
    virtual_accuracy_m: float = 9999.0,
    title: str = "Trip history",
) -> Table:
    """Rich table with one row per record."""
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Time")
    table.add_column("Elapsed")
    table.add_column("Lat", justify="right")
    table.add_column("Lon", justify="right")
    table.add_column("Speed km/h", justify="right")
    table.add_column("Dist km", justify="right")
    table.add_column("Avg km/h", justify="right")
    table.add_column("Acc m", justify="right")
    table.add_column("Flag")

    for i, (record, average) in enumerate(zip(records, averages)):
        if record.is_virtual:
            flag = "[yellow]DR[/yellow]"
        elif record.gps_jump:
            flag = "[red]JUMP[/red]"
        elif not record.signal_good:
            flag = "[yellow]WEAK[/yellow]"
        else:
            flag = ""
        table.add_row(
            str(i + 1),
            format_datetime(record.timestamp),
            format_duration(record.elapsed),
            f"{record.latitude:.6f}",
            f"{record.longitude:.6f}",
            f"{record.speed_kmh or 0.0:.2f}",
            f"{record.display_distance_km:.3f}",
            _fmt(average, 2),
            _fmt(record.display_accuracy_m(virtual_accuracy_m), 1),
            flag,
        )
    return table
