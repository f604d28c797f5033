# Rev 0.3.0
"""
External calendar collaborator and the calendar-side summaries built on it.

The feed is read-only: the core never writes busy intervals, it only folds
them into per-day load figures next to the user's own scheduled tasks.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from ..models.entities import BusyInterval, Project, Task
from ..models.types import BusyStatus
from ..utils.logging_setup import get_logger
from ..utils.timeutil import local_tz

log = get_logger("calendar_feed")


class CalendarFeed(Protocol):
    def list_busy_intervals(self) -> List[BusyInterval]: ...


class StaticCalendarFeed:
    """Feed over an in-memory list, e.g. events parsed elsewhere."""

    def __init__(self, intervals: Iterable[BusyInterval] = ()):
        self._intervals = list(intervals)

    def replace(self, intervals: Iterable[BusyInterval]) -> None:
        self._intervals = list(intervals)

    def list_busy_intervals(self) -> List[BusyInterval]:
        return list(self._intervals)


class SettingsGatedFeed:
    """Empty unless the feed is enabled and a source is configured."""

    def __init__(self, source: Optional[CalendarFeed], enabled: bool):
        self._source = source
        self._enabled = enabled

    def list_busy_intervals(self) -> List[BusyInterval]:
        if not self._enabled or self._source is None:
            log.debug("Calendar feed disabled or unconfigured")
            return []
        return self._source.list_busy_intervals()


def normalize_status(event_status: Optional[str] = None, partstat: Optional[str] = None) -> BusyStatus:
    """
    Map iCalendar STATUS / attendee PARTSTAT onto accepted/tentative/declined.
    The attendee's own answer wins over the event status when present.
    """
    status: BusyStatus = "accepted"
    ev = (event_status or "").upper()
    if ev == "CANCELLED":
        status = "declined"
    elif ev == "TENTATIVE":
        status = "tentative"

    ps = (partstat or "").upper()
    if ps == "DECLINED":
        status = "declined"
    elif ps in ("TENTATIVE", "NEEDS-ACTION"):
        status = "tentative"
    elif ps == "ACCEPTED":
        status = "accepted"
    return status


# ---------- day load ----------

@dataclass(frozen=True)
class DayLoad:
    day: date
    work_minutes: float = 0.0
    meeting_minutes: float = 0.0
    personal_minutes: float = 0.0

    @property
    def idle(self) -> bool:
        return not (self.work_minutes or self.meeting_minutes or self.personal_minutes)

    def label(self) -> str:
        """'work / meetings / personal', blank for an idle day."""
        if self.idle:
            return ""
        return " / ".join(
            format_hours(m) or "0h" for m in (self.work_minutes, self.meeting_minutes, self.personal_minutes)
        )


def format_hours(minutes: float) -> str:
    hours = int(minutes // 60)
    mins = int(round(minutes % 60))
    if hours == 0 and mins == 0:
        return ""
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h:{mins:02d}m"


def _overlap_minutes(start: datetime, end: datetime, lo: datetime, hi: datetime) -> float:
    a, b = max(start, lo), min(end, hi)
    if b <= a:
        return 0.0
    return (b - a).total_seconds() / 60.0


def day_load(
    day: date,
    projects: Sequence[Project],
    busy: Sequence[BusyInterval] = (),
    *,
    tz: Optional[tzinfo] = None,
) -> DayLoad:
    """Minutes of the local day covered by work tasks, accepted meetings and personal tasks."""
    tz = tz or local_tz()
    lo = datetime.combine(day, time(0, 0), tzinfo=tz)
    hi = lo + timedelta(days=1)

    work = personal = meetings = 0.0
    for project in projects:
        for task in project.tasks:
            interval = task.busy_interval()
            if interval is None:
                continue
            minutes = _overlap_minutes(interval[0], interval[1], lo, hi)
            if project.type == "Work":
                work += minutes
            else:
                personal += minutes

    for event in busy:
        if event.status != "accepted":
            continue
        meetings += _overlap_minutes(event.start, event.end, lo, hi)

    return DayLoad(day, work, meetings, personal)


# ---------- overlaps ----------

def find_overlaps(tasks: Sequence[Task], busy: Sequence[BusyInterval] = ()) -> List[Tuple[str, str]]:
    """
    Pairs of overlapping half-open intervals, labelled "task-<id>" / "busy-<id>".
    Purely informational: overlapping items are allowed and rendered side by side.
    Declined events do not block time.
    """
    spans: List[Tuple[datetime, datetime, str]] = []
    for t in tasks:
        interval = t.busy_interval()
        if interval is not None:
            spans.append((interval[0], interval[1], f"task-{t.id}"))
    for b in busy:
        if b.status != "declined":
            spans.append((b.start, b.end, f"busy-{b.id}"))
    spans.sort(key=lambda s: (s[0], s[1], s[2]))

    pairs: List[Tuple[str, str]] = []
    active: List[Tuple[datetime, datetime, str]] = []
    for span in spans:
        active = [a for a in active if a[1] > span[0]]
        pairs.extend((a[2], span[2]) for a in active)
        active.append(span)
    return pairs
