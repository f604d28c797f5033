# Rev 0.3.0
"""
Time-tracking state machine (stopped / started / paused).

The planner functions here are pure: they read Task snapshots and return the
row patches a transition implies. The scheduling service reads the snapshots
and writes the patches inside one store transaction, which is what keeps
"at most one task started" true at every committed instant.

Persisted accrual is floored to whole minutes on every transition; the live
display value is fractional and never written.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ..models.entities import Task
from ..models.errors import InvalidTransition
from ..models.types import TRACKING_STATES, TrackingState
from ..utils.timeutil import floor_minutes

# from-state -> states reachable by an explicit request
ALLOWED: Dict[str, frozenset] = {
    "stopped": frozenset({"started"}),
    "started": frozenset({"paused", "stopped"}),
    "paused": frozenset({"started", "stopped"}),
}


@dataclass(frozen=True)
class TrackingPatch:
    task_id: int
    tracking_state: TrackingState
    tracking_started_at: Optional[datetime]
    time_tracked_minutes: int
    completed: Optional[bool] = None    # only set by completion toggles

    def as_fields(self) -> dict:
        fields = {
            "tracking_state": self.tracking_state,
            "tracking_started_at": self.tracking_started_at,
            "time_tracked_minutes": self.time_tracked_minutes,
        }
        if self.completed is not None:
            fields["completed"] = self.completed
        return fields


def folded_minutes(task: Task, now: datetime) -> int:
    """Stored total plus whole minutes elapsed since the last start, if running."""
    total = int(task.time_tracked_minutes)
    if task.tracking_state == "started" and task.tracking_started_at is not None:
        total += floor_minutes(task.tracking_started_at, now)
    return total


def _stop(task: Task, now: datetime, state: TrackingState = "stopped") -> TrackingPatch:
    return TrackingPatch(task.id, state, None, folded_minutes(task, now))


def plan_transition(
    task: Task,
    desired: str,
    now: datetime,
    started_others: Sequence[Task] = (),
) -> List[TrackingPatch]:
    """
    Patches for moving `task` to `desired`.

    `started_others` are the other tasks currently started (read in the same
    transaction); a start preempts each of them to stopped with its elapsed
    time folded. Requesting the current state is a no-op ([]).
    """
    if desired not in TRACKING_STATES:
        raise InvalidTransition(task.id, task.tracking_state, desired, "unknown state")
    current = task.tracking_state
    if desired == current:
        return []
    if desired not in ALLOWED[current]:
        raise InvalidTransition(task.id, current, desired)
    if desired in ("started", "paused") and task.completed:
        raise InvalidTransition(task.id, current, desired, "task is completed")

    if desired == "started":
        patches = [_stop(other, now) for other in started_others if other.id != task.id]
        patches.append(TrackingPatch(task.id, "started", now, int(task.time_tracked_minutes)))
        return patches
    if desired == "paused":
        return [_stop(task, now, "paused")]
    return [_stop(task, now)]


def plan_completion(task: Task, completed: bool, now: datetime) -> TrackingPatch:
    """
    Completing a started task stops it first (folding elapsed time). A paused
    task is also parked in stopped since it can no longer resume.
    Un-completing leaves tracking untouched.
    """
    if completed and task.tracking_state != "stopped":
        patch = _stop(task, now)
    else:
        patch = TrackingPatch(
            task.id, task.tracking_state, task.tracking_started_at, int(task.time_tracked_minutes)
        )
    return TrackingPatch(
        patch.task_id, patch.tracking_state, patch.tracking_started_at, patch.time_tracked_minutes, completed
    )
