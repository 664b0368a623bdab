"""Recorded fixes as a sample source (CSV)."""

from __future__ import annotations

import csv
import logging
from datetime import UTC, datetime
from pathlib import Path

from ...domain.models import RawFix

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("timestamp", "latitude", "longitude")


def _optional_float(value: str | None) -> float | None:
    if value is None or value.strip() == "":
        return None
    number = float(value)
    # Some loggers write -1 for "unknown"
    return None if number < 0 else number


def parse_timestamp(value: str) -> datetime:
    """ISO-8601 or Unix epoch seconds; naive values are taken as UTC."""
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        try:
            ts = datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"epoch timestamp out of range: {value}") from e
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def load_fixes(path: Path) -> list[RawFix]:
    """
    Read fixes from a CSV file.

    Columns: timestamp, latitude, longitude and optionally accuracy,
    speed, altitude. Rows that fail to parse are skipped with a warning.

    Returns:
        Fixes sorted by timestamp
    """
    fixes: list[RawFix] = []
    with Path(path).expanduser().open("r", encoding="utf-8", newline="") as fp:
        reader = csv.DictReader(fp)
        missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"missing CSV columns: {', '.join(missing)}")

        for line_no, row in enumerate(reader, start=2):
            try:
                fixes.append(
                    RawFix(
                        latitude=float(row["latitude"]),
                        longitude=float(row["longitude"]),
                        accuracy_m=_optional_float(row.get("accuracy")),
                        speed_mps=_optional_float(row.get("speed")),
                        altitude=float(row["altitude"]) if row.get("altitude") else None,
                        timestamp=parse_timestamp(row["timestamp"]),
                    )
                )
            except (TypeError, ValueError) as e:
                logger.warning("Skipping CSV line %d: %s", line_no, e)

    fixes.sort(key=lambda f: f.timestamp)
    logger.info("Loaded %d fixes from %s", len(fixes), path)
    return fixes
