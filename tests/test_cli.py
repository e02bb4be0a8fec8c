import pytest
from typer.testing import CliRunner

from playlist_stream_monitor.cli import app
from playlist_stream_monitor.config.database import SQLiteContentStore
from playlist_stream_monitor.config.settings import Settings
from playlist_stream_monitor.config.storage import MonitorStore
from playlist_stream_monitor.models import DayRecord, PlaylistSnapshot, Track

URL = "https://app.artist.tools/playlist/abc123"

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    Settings.from_dict({
        "storage": {"path": str(tmp_path / "cli.db")},
        "logging": {"level": "WARNING"},
    }).save(path)
    return path


def invoke(config_path, *args):
    return runner.invoke(app, [*args, "--config", str(config_path)])


def test_add_list_remove(config_path):
    result = invoke(config_path, "add-playlist", URL, "--user", "42")
    assert result.exit_code == 0, result.output
    assert "Playlists in list: 1" in result.output

    result = invoke(config_path, "list-playlists", "--user", "42")
    assert result.exit_code == 0
    assert "abc123" in result.output

    result = invoke(config_path, "remove-playlist", URL, "--user", "42")
    assert result.exit_code == 0
    assert "Playlists remaining: 0" in result.output


def test_add_invalid_url_fails(config_path):
    result = invoke(config_path, "add-playlist", "https://example.com/x", "--user", "42")

    assert result.exit_code == 1
    assert "Invalid URL" in result.output


def test_list_empty(config_path):
    result = invoke(config_path, "list-playlists", "--user", "42")

    assert result.exit_code == 0
    assert "No playlists being monitored" in result.output


def test_show_report_from_stored_records(config_path, tmp_path, logger):
    store = MonitorStore(SQLiteContentStore(tmp_path / "cli.db"), logger)
    store.save_day_record("42", DayRecord(
        date="2024-05-01",
        playlists=[PlaylistSnapshot(url=URL, tracks=(Track("X", "Y", "900", 1),))],
    ))
    store.save_day_record("42", DayRecord(
        date="2024-05-02",
        playlists=[PlaylistSnapshot(url=URL, tracks=(Track("X", "Y", "1,000", 1),), total_tracks=1, total_streams_raw="1.0K")],
    ))

    result = invoke(config_path, "show-report", "--user", "42", "--date", "2024-05-02")

    assert result.exit_code == 0, result.output
    assert "X by Y: 1,000 streams (+100)" in result.output
    assert "Resumen General" in result.output


def test_show_report_missing_day(config_path):
    result = invoke(config_path, "show-report", "--user", "42", "--date", "2024-05-02")

    assert result.exit_code == 1
    assert "No record stored" in result.output


def test_init_config(tmp_path):
    output = tmp_path / "new" / "config.yaml"

    result = runner.invoke(app, ["init-config", "--output", str(output)])

    assert result.exit_code == 0
    assert Settings.from_file(output).scheduler.run_time == "09:00"


def test_schedule_commands(config_path):
    result = invoke(config_path, "show-schedule", "--user", "42")
    assert result.exit_code == 0, result.output
    assert "Schedule for 42: 09:00 (enabled)" in result.output

    result = invoke(config_path, "set-schedule", "18:45", "--user", "42")
    assert result.exit_code == 0, result.output
    assert "Schedule for 42: 18:45 (enabled)" in result.output

    result = invoke(config_path, "disable-schedule", "--user", "42")
    assert result.exit_code == 0, result.output
    assert "Schedule for 42: 18:45 (disabled)" in result.output

    result = invoke(config_path, "show-schedule", "--user", "42")
    assert "Schedule for 42: 18:45 (disabled)" in result.output


def test_set_schedule_rejects_bad_time(config_path):
    result = invoke(config_path, "set-schedule", "25:00", "--user", "42")

    assert result.exit_code == 1
    assert "Invalid time" in result.output
