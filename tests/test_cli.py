from click.testing import CliRunner

from triptrack.cli import cli

from tests.conftest import BASE_LAT, BASE_LON, KM_PER_DEG_LAT

EPOCH = 1714550400  # 2024-05-01 08:00:00 UTC


def _write_drive(path, gap_after: int = 12, gap_s: int = 21) -> None:
    """60 km/h every 3 s, with one long pause in reception."""
    lines = ["timestamp,latitude,longitude,accuracy,speed,altitude"]
    for i in range(gap_after + 3):
        seconds = i * 3 + (gap_s - 3 if i > gap_after else 0)
        km = seconds / 60.0
        lat = BASE_LAT + km / KM_PER_DEG_LAT
        lines.append(f"{EPOCH + seconds},{lat:.8f},{BASE_LON},5,16.7,40")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def test_version_command():
    runner = CliRunner()
    result = runner.invoke(cli, ["version"], prog_name="triptrack")
    assert result.exit_code == 0
    assert "triptrack" in result.stdout


def test_config_validate_ok(tmp_path):
    yml = tmp_path / "triptrack.yml"
    yml.write_text("tracking:\n  warmup_fixes: 8\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["config-validate", str(yml)], prog_name="triptrack")
    assert result.exit_code == 0
    assert "Config OK" in result.stdout
    assert "warm-up fixes: 8" in result.stdout


def test_config_validate_rejects_bad_file(tmp_path):
    yml = tmp_path / "triptrack.yml"
    yml.write_text("watchdog:\n  timeout_s: 1\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["config-validate", str(yml)], prog_name="triptrack")
    assert result.exit_code == 1
    assert "validation failed" in result.stdout


def test_config_which_prefers_cli_path(tmp_path):
    yml = tmp_path / "custom.yml"
    yml.write_text("{}", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["config-which", "--config", str(yml)], prog_name="triptrack")
    assert result.exit_code == 0
    assert "custom.yml" in result.stdout


def test_replay_prints_rows_and_summary(tmp_path):
    csv_path = tmp_path / "drive.csv"
    _write_drive(csv_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["replay", str(csv_path), "--rows"], prog_name="triptrack")
    assert result.exit_code == 0, result.stdout
    assert "1. Lat: 41.000000 | Lon: 29.000000" in result.stdout
    assert "| DR" in result.stdout
    assert "Acc: 9999.0m" in result.stdout
    assert "Tracking stopped" in result.stdout


def test_replay_table(tmp_path):
    csv_path = tmp_path / "drive.csv"
    _write_drive(csv_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["replay", str(csv_path)], prog_name="triptrack")
    assert result.exit_code == 0, result.stdout
    assert "Trip history" in result.stdout


def test_replay_missing_columns(tmp_path):
    csv_path = tmp_path / "bad.csv"
    csv_path.write_text("time,lat,lon\n1,2,3\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["replay", str(csv_path)], prog_name="triptrack")
    assert result.exit_code == 1
    assert "missing CSV columns" in result.stdout
