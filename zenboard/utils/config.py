# Rev 0.3.0
from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Optional

from .paths import config_dir
from .timeutil import resolve_tz

log = logging.getLogger(__name__)

SETTINGS_NAME = "settings.json"

_DEFAULTS: Dict[str, Any] = {
    "scheduling": {
        "snap_minutes": 15,
        "default_hour": 9,
        "quick_schedule_weekday": 6,   # Sunday (Monday == 0)
        "quick_schedule_hour": 6,
        "timezone": "local",      # IANA name, "UTC", "+HH:MM" or "local"
    },
    "tracking": {
        "ticker_interval_ms": 500,
    },
    "calendar_feed": {
        "enabled": False,
        "poll_interval_s": 60,
    },
}


def settings_file() -> Path:
    return config_dir() / SETTINGS_NAME


def _deep_merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in over.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    path = path or settings_file()
    if path.exists():
        try:
            return _deep_merge(_DEFAULTS, json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            log.warning("Ignoring unreadable settings %s: %s", path, exc)
            return copy.deepcopy(_DEFAULTS)
    return copy.deepcopy(_DEFAULTS)


def save_settings(data: Dict[str, Any], path: Optional[Path] = None) -> None:
    path = path or settings_file()
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


@dataclass(frozen=True)
class SchedulingConfig:
    """Calendar and tracking knobs consumed by the resolvers."""
    snap_minutes: int = 15
    default_hour: int = 9
    quick_schedule_weekday: int = 6
    quick_schedule_hour: int = 6
    ticker_interval_ms: int = 500
    feed_enabled: bool = False
    feed_poll_interval_s: int = 60
    timezone: str = "local"

    def __post_init__(self):
        if not 1 <= self.snap_minutes <= 60:
            raise ValueError(f"snap_minutes must be within 1..60, got {self.snap_minutes}")
        if not 0 <= self.default_hour <= 23 or not 0 <= self.quick_schedule_hour <= 23:
            raise ValueError("hours must be within 0..23")
        if not 0 <= self.quick_schedule_weekday <= 6:
            raise ValueError("quick_schedule_weekday must be within 0..6")
        resolve_tz(self.timezone)

    def zone(self) -> tzinfo:
        """Wall-clock zone for the default and quick-schedule hours; DST-aware for IANA names."""
        return resolve_tz(self.timezone)

    @classmethod
    def from_settings(cls, settings: Optional[Dict[str, Any]] = None) -> "SchedulingConfig":
        s = settings if settings is not None else load_settings()
        sched = s.get("scheduling", {})
        tracking = s.get("tracking", {})
        feed = s.get("calendar_feed", {})
        return cls(
            snap_minutes=int(sched.get("snap_minutes", 15)),
            default_hour=int(sched.get("default_hour", 9)),
            quick_schedule_weekday=int(sched.get("quick_schedule_weekday", 6)),
            quick_schedule_hour=int(sched.get("quick_schedule_hour", 6)),
            ticker_interval_ms=int(tracking.get("ticker_interval_ms", 500)),
            feed_enabled=bool(feed.get("enabled", False)),
            feed_poll_interval_s=int(feed.get("poll_interval_s", 60)),
            timezone=str(sched.get("timezone", "local")),
        )
