# Rev 0.3.0
"""Instant helpers: the store keeps ISO-8601 UTC instants, the calendar thinks in local wall time."""
from __future__ import annotations

import math
import os
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")
_LOCALTIME = Path("/etc/localtime")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _system_zone() -> Optional[tzinfo]:
    """IANA zone of the machine: $TZ first, then /etc/localtime."""
    key = os.environ.get("TZ", "").lstrip(":")
    if key:
        try:
            return ZoneInfo(key)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    if _LOCALTIME.exists():
        target = str(_LOCALTIME.resolve())
        if "zoneinfo/" in target:
            try:
                return ZoneInfo(target.split("zoneinfo/", 1)[1])
            except (ZoneInfoNotFoundError, ValueError):
                pass
        try:
            with _LOCALTIME.open("rb") as fh:
                return ZoneInfo.from_file(fh, key="localtime")
        except (OSError, ValueError):
            pass
    return None


def resolve_tz(name: Optional[str] = None) -> tzinfo:
    """
    Zone for wall-clock rules (default hour, quick-schedule hour).

    "local" / "" / None  the system zone, DST-aware
    "UTC"               UTC
    IANA names          e.g. "Europe/Berlin"
    "+02:00", "-0500"   fixed offsets

    Raises ValueError for anything else.
    """
    s = (name or "local").strip()
    if s.lower() in ("local", "system"):
        # a fixed offset only when the platform exposes no zone database entry
        return _system_zone() or datetime.now().astimezone().tzinfo or timezone.utc
    if s.upper() in ("UTC", "Z", "GMT"):
        return timezone.utc
    m = _OFFSET_RE.match(s)
    if m:
        sign, hh, mm = m.groups()
        if int(hh) > 23 or int(mm) > 59:
            raise ValueError(f"invalid timezone offset {s!r}")
        minutes = (int(hh) * 60 + int(mm)) * (1 if sign == "+" else -1)
        return timezone(timedelta(minutes=minutes))
    try:
        return ZoneInfo(s)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"invalid timezone identifier {s!r}") from exc


def local_tz() -> tzinfo:
    return resolve_tz("local")


def ensure_aware(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Naive datetimes are read as wall time in `tz` (local zone by default)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz or local_tz())
    return dt


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return ensure_aware(dt).astimezone(timezone.utc).isoformat()


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def elapsed_minutes(since: datetime, now: datetime) -> float:
    """Fractional minutes between two instants, never negative."""
    return max(0.0, (now - since).total_seconds() / 60.0)


def floor_minutes(since: datetime, now: datetime) -> int:
    return int(math.floor(elapsed_minutes(since, now)))


def week_start_for(day: date) -> date:
    """Monday of the ISO week containing `day`."""
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())
