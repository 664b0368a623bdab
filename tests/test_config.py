from pathlib import Path

import pytest

from triptrack.config import TripConfig, load_config, resolve_config_path


def test_default_model_has_expected_thresholds():
    cfg = TripConfig()
    assert cfg.tracking.min_fix_interval_s == 2.8
    assert cfg.tracking.warmup_fixes == 10
    assert cfg.tracking.max_plausible_speed_kmh == 250.0
    assert cfg.tracking.recovery_good_fixes == 3
    assert cfg.watchdog.period_s == 2.0
    assert cfg.watchdog.timeout_s == 5.0
    assert cfg.watchdog.virtual_accuracy_m == 9999.0


def test_yaml_loads_and_validates(tmp_path: Path):
    yml = tmp_path / "triptrack.yml"
    yml.write_text(
        """
tracking:
  warmup_fixes: 6
  moving_accuracy_m: 40
watchdog:
  timeout_s: 8
logging:
  level: debug
        """.strip(),
        encoding="utf-8",
    )
    cfg = load_config(yml)
    assert cfg.tracking.warmup_fixes == 6
    assert cfg.tracking.moving_accuracy_m == 40
    assert cfg.watchdog.timeout_s == 8
    assert cfg.logging.level == "DEBUG"


def test_shipped_example_config_is_valid():
    cfg = load_config(Path(__file__).resolve().parents[1] / "configs" / "triptrack.yml")
    assert cfg == TripConfig()


def test_empty_file_gives_defaults(tmp_path: Path):
    yml = tmp_path / "triptrack.yml"
    yml.write_text("", encoding="utf-8")
    assert load_config(yml) == TripConfig()


def test_throttle_must_be_below_timeout(tmp_path: Path):
    yml = tmp_path / "triptrack.yml"
    yml.write_text(
        """
tracking:
  min_fix_interval_s: 6
watchdog:
  timeout_s: 5
        """.strip(),
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        load_config(yml)


def test_settling_must_be_below_warmup(tmp_path: Path):
    yml = tmp_path / "triptrack.yml"
    yml.write_text(
        """
tracking:
  warmup_fixes: 3
  warmup_settling_fixes: 3
        """.strip(),
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        load_config(yml)


def test_invalid_log_level_raises(tmp_path: Path):
    yml = tmp_path / "triptrack.yml"
    yml.write_text("logging:\n  level: LOUD\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(yml)


def test_non_mapping_root_raises(tmp_path: Path):
    yml = tmp_path / "triptrack.yml"
    yml.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(yml)


def test_resolve_prefers_cli(tmp_path, monkeypatch):
    cfg = tmp_path / "a.yml"
    cfg.write_text("{}", encoding="utf-8")
    monkeypatch.setenv("TRIPTRACK_CONFIG", str(tmp_path / "b.yml"))
    p = resolve_config_path(cfg)
    assert p == cfg.resolve()


def test_resolve_env_when_no_cli(tmp_path, monkeypatch):
    cfg = tmp_path / "b.yml"
    cfg.write_text("{}", encoding="utf-8")
    monkeypatch.setenv("TRIPTRACK_CONFIG", str(cfg))
    p = resolve_config_path(None)
    assert p == cfg.resolve()


def test_resolve_falls_back_to_first_candidate(tmp_path, monkeypatch):
    monkeypatch.delenv("TRIPTRACK_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    missing = tmp_path / "missing.yml"
    assert resolve_config_path(missing) == missing
