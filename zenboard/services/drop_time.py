# Rev 0.3.0
"""
Drop-time resolver: map a drag release on the calendar to one start instant.

Everything the resolver needs arrives in a GestureContext value built by the
presentation layer at release time (including the last hover preview), so the
function is pure and the same inputs always give the same answer.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Literal, Optional

from ..models.types import DropTargetKind
from ..utils.config import SchedulingConfig
from ..utils.timeutil import ensure_aware

DropOutcomeKind = Literal["schedule", "no_change", "no_op"]


@dataclass(frozen=True)
class GestureContext:
    """
    Snapshot of a drag release.

    target          what the pointer was over: "none", "all_day" (month/all-day
                    cell), "time_slot" (time grid) or "item" (a scheduled item)
    pointer_time    instant under the pointer (date only matters for all_day)
    target_item_id  id of the item dropped onto, for target == "item"
    target_item_start  start of that item, when scheduled
    hover_time      last live hover-preview resolution, if one was tracked
    """
    target: DropTargetKind = "none"
    pointer_time: Optional[datetime] = None
    target_item_id: Optional[int] = None
    target_item_start: Optional[datetime] = None
    hover_time: Optional[datetime] = None


@dataclass(frozen=True)
class DropResolution:
    kind: DropOutcomeKind
    start: Optional[datetime] = None
    rule: str = ""

    @property
    def changed(self) -> bool:
        return self.kind == "schedule"


def snap_to_interval(dt: datetime, snap_minutes: int = 15) -> datetime:
    """
    Round the minute field to the nearest snap interval, ties rounding up.
    Seconds and sub-seconds are truncated first; minute 60 rolls into the next hour.
    """
    base = dt.replace(minute=0, second=0, microsecond=0)
    steps = math.floor(dt.minute / snap_minutes + 0.5)
    return base + timedelta(minutes=steps * snap_minutes)


def at_default_hour(day: date, hour: int, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(hour, 0), tzinfo=tz)


def resolve_drop_time(
    moved_id: int,
    current_start: Optional[datetime],
    gesture: GestureContext,
    *,
    now: datetime,
    config: SchedulingConfig = SchedulingConfig(),
    tz: Optional[tzinfo] = None,
) -> DropResolution:
    """Apply the release rules in priority order and report schedule / no_change / no_op."""
    tz = tz or config.zone()

    if gesture.target == "none":
        return DropResolution("no_op", rule="outside_calendar")
    if gesture.target == "item" and gesture.target_item_id == moved_id:
        return DropResolution("no_op", rule="self_drop")

    start: Optional[datetime] = None
    rule = ""
    if gesture.target == "all_day" and gesture.pointer_time is not None:
        day = ensure_aware(gesture.pointer_time, tz).astimezone(tz).date()
        start, rule = at_default_hour(day, config.default_hour, tz), "all_day"
    elif gesture.target == "time_slot" and gesture.pointer_time is not None:
        local = ensure_aware(gesture.pointer_time, tz).astimezone(tz)
        start, rule = snap_to_interval(local, config.snap_minutes), "time_slot"
    elif gesture.target == "item" and gesture.hover_time is not None:
        start, rule = ensure_aware(gesture.hover_time, tz), "hover_preview"
    elif gesture.target == "item" and gesture.target_item_start is not None:
        start, rule = ensure_aware(gesture.target_item_start, tz), "stack_on_item"

    if start is None:
        local_now = ensure_aware(now, tz).astimezone(tz)
        start, rule = snap_to_interval(local_now, config.snap_minutes), "fallback_now"

    if current_start is not None and ensure_aware(current_start, tz) == start:
        return DropResolution("no_change", start=start, rule=rule)
    return DropResolution("schedule", start=start, rule=rule)


def quick_schedule_time(
    now: datetime,
    *,
    config: SchedulingConfig = SchedulingConfig(),
    tz: Optional[tzinfo] = None,
) -> datetime:
    """
    Next occurrence of the configured weekday strictly after today (a full week
    ahead when today already is that weekday), at the configured hour.
    """
    tz = tz or config.zone()
    today = ensure_aware(now, tz).astimezone(tz).date()
    days = (config.quick_schedule_weekday - today.weekday()) % 7 or 7
    return at_default_hour(today + timedelta(days=days), config.quick_schedule_hour, tz)
