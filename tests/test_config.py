# tests/test_config.py
from __future__ import annotations

import logging
import sys
from datetime import timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from zenboard.app_context import AppContext
from zenboard.tools import migrate
from zenboard.utils.config import SchedulingConfig, load_settings, save_settings
from zenboard.utils.logging_setup import get_logger, setup_logging, teardown_logging
from zenboard.utils.timeutil import resolve_tz


def test_defaults_when_file_missing(tmp_path):
    s = load_settings(tmp_path / "nope.json")
    assert s["scheduling"]["snap_minutes"] == 15
    assert s["calendar_feed"]["enabled"] is False


def test_partial_file_is_merged_over_defaults(tmp_path):
    path = tmp_path / "settings.json"
    save_settings({"scheduling": {"default_hour": 8}}, path)
    s = load_settings(path)
    assert s["scheduling"]["default_hour"] == 8
    assert s["scheduling"]["snap_minutes"] == 15
    cfg = SchedulingConfig.from_settings(s)
    assert (cfg.default_hour, cfg.snap_minutes, cfg.ticker_interval_ms) == (8, 15, 500)


def test_broken_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_settings(path)["scheduling"]["quick_schedule_weekday"] == 6


@pytest.mark.parametrize("kwargs", [{"snap_minutes": 0}, {"default_hour": 24}, {"quick_schedule_weekday": 7}])
def test_config_range_checks(kwargs):
    with pytest.raises(ValueError):
        SchedulingConfig(**kwargs)


def test_app_context_wires_services(tmp_path):
    ctx = AppContext.create(tmp_path / "app.db", settings={"calendar_feed": {"enabled": False}})
    try:
        p = ctx.scheduling.create_project("Inbox")
        assert [x.id for x in ctx.scheduling.read_all()] == [p.id]
        assert ctx.feed.list_busy_intervals() == []
        assert ctx.config.snap_minutes == 15
    finally:
        ctx.close()


def test_migrate_cli_up_status_verify(tmp_path, capsys):
    db_path = tmp_path / "cli.db"
    assert migrate.main(["up", "--db", str(db_path)]) == 0
    assert migrate.main(["status", "--db", str(db_path)]) == 0
    out = capsys.readouterr().out
    assert "Pending count: 0" in out
    assert migrate.main(["verify", "--db", str(db_path)]) == 0
    assert migrate.main(["up", "--db", str(db_path)]) == 0
    assert "already up to date" in capsys.readouterr().out


def test_migrate_cli_adopts_app_database(tmp_path):
    db_path = tmp_path / "app.db"
    AppContext.create(db_path, settings={}).close()
    assert migrate.main(["up", "--db", str(db_path), "--strict"]) == 0
    assert migrate.main(["verify", "--db", str(db_path)]) == 0


def test_setup_logging_writes_rotating_file(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path))
    monkeypatch.setenv("ZENBOARD_LOG_LEVEL", "DEBUG")
    root = logging.getLogger()
    level, hook = root.level, sys.excepthook
    try:
        logfile = setup_logging("zenboard-test")
        count = len(root.handlers)
        assert setup_logging("zenboard-test") == logfile
        assert len(root.handlers) == count

        get_logger("tests").info("hello")
        for h in root.handlers:
            h.flush()
        assert logfile == tmp_path / "zenboard-test" / "logs" / "zenboard-test.log"
        assert "| INFO | zenboard.tests | hello" in logfile.read_text(encoding="utf-8")
    finally:
        teardown_logging()
        logging.captureWarnings(False)
        root.setLevel(level)
        sys.excepthook = hook


def test_timezone_setting_is_resolved():
    cfg = SchedulingConfig.from_settings({"scheduling": {"timezone": "Europe/Berlin"}})
    assert cfg.zone() == ZoneInfo("Europe/Berlin")
    assert SchedulingConfig(timezone="UTC").zone() == timezone.utc
    assert SchedulingConfig(timezone="+05:30").zone().utcoffset(None) == timedelta(hours=5, minutes=30)
    with pytest.raises(ValueError):
        SchedulingConfig(timezone="Mars/Olympus_Mons")


def test_local_zone_follows_tz_environment(monkeypatch):
    monkeypatch.setenv("TZ", "America/New_York")
    assert resolve_tz("local") == ZoneInfo("America/New_York")
