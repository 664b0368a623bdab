from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


class TrackingConfig(BaseModel):
    """Thresholds of the fix-processing pipeline."""

    min_fix_interval_s: float = Field(2.8, gt=0)
    warmup_fixes: int = Field(10, ge=2, le=1000)
    warmup_settling_fixes: int = Field(3, ge=1)
    warmup_accuracy_m: float = Field(500.0, gt=0)
    slow_accuracy_m: float = Field(100.0, gt=0)
    moving_accuracy_m: float = Field(50.0, gt=0)
    moving_speed_mps: float = Field(2.0, ge=0)
    max_plausible_speed_kmh: float = Field(250.0, gt=0)
    recovery_good_fixes: int = Field(3, ge=1, le=100)

    @field_validator("warmup_settling_fixes")
    @classmethod
    def _settling_within_warmup(cls, value: int, info) -> int:
        warmup = info.data.get("warmup_fixes", 10)
        if value >= warmup:
            raise ValueError("warmup_settling_fixes must be < warmup_fixes")
        return value


class WatchdogConfig(BaseModel):
    period_s: float = Field(2.0, gt=0, le=60)
    timeout_s: float = Field(5.0, gt=0, le=600)
    virtual_accuracy_m: float = Field(9999.0, gt=0)  # shown for virtual rows


class GPSConfig(BaseModel):
    """GPS daemon configuration."""

    host: str = Field("localhost")
    port: int = Field(2947, ge=1, le=65535)
    timeout: float = Field(10.0, ge=1.0)
    reconnect_delay: float = Field(5.0, ge=1.0)
    mock_mode: bool = Field(False)  # Use mock GPS for testing
    mock_lat: float = Field(41.0082, ge=-90, le=90)
    mock_lon: float = Field(28.9784, ge=-180, le=180)
    mock_speed_mps: float = Field(13.9, ge=0)  # ~50 km/h


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    rich_tracebacks: bool = Field(True)

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid log level: {value}")
        return level

    @property
    def level_no(self) -> int:
        return logging.getLevelName(self.level)


class TripConfig(BaseModel):
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    watchdog: WatchdogConfig = Field(default_factory=WatchdogConfig)
    gps: GPSConfig = Field(default_factory=GPSConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _throttle_below_timeout(self) -> TripConfig:
        # Real fixes must pre-empt dead reckoning under normal signal
        if self.tracking.min_fix_interval_s >= self.watchdog.timeout_s:
            raise ValueError("tracking.min_fix_interval_s must be < watchdog.timeout_s")
        return self


def load_config(path: Path) -> TripConfig:
    with Path(path).expanduser().open("r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"config root must be a mapping: {path}")
    try:
        return TripConfig.model_validate(raw)
    except ValidationError as exc:  # pragma: no cover - formatting
        raise ValueError(str(exc)) from exc


def resolve_config_path(cli_path: Path | None) -> Path:
    """Resolve config path by priority: CLI, env, /etc/triptrack, repo configs."""
    candidates: list[Path] = []
    if cli_path:
        p = Path(cli_path).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    env = os.environ.get("TRIPTRACK_CONFIG")
    if env:
        p = Path(env).expanduser()
        if p.exists():
            return p.resolve()
        candidates.append(p)
    for p in [Path("/etc/triptrack/triptrack.yml"), Path("configs/triptrack.yml")]:
        if p.exists():
            return p.resolve()
        candidates.append(p)
    # Fallback to first candidate even if not exists to surface errors consistently
    return candidates[0] if candidates else Path("configs/triptrack.yml").resolve()
