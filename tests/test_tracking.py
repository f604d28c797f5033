# tests/test_tracking.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from zenboard.models.entities import Task
from zenboard.models.errors import InvalidTransition
from zenboard.services.tracking import (
    TrackingPatch,
    folded_minutes,
    plan_completion,
    plan_transition,
)

NOW = datetime(2024, 5, 6, 10, 0, tzinfo=timezone.utc)


def _task(task_id=1, state="stopped", tracked=0, started_ago=None, completed=False):
    started_at = NOW - started_ago if started_ago is not None else None
    return Task(
        id=task_id,
        project_id=1,
        title=f"t{task_id}",
        tracking_state=state,
        tracking_started_at=started_at,
        time_tracked_minutes=tracked,
        completed=completed,
    )


def test_start_from_stopped():
    assert plan_transition(_task(), "started", NOW) == [TrackingPatch(1, "started", NOW, 0)]


def test_start_preempts_running_task_and_folds_time():
    other = _task(2, "started", tracked=5, started_ago=timedelta(minutes=3, seconds=20))
    patches = plan_transition(_task(1, "paused", tracked=4), "started", NOW, [other])
    assert patches[0] == TrackingPatch(2, "stopped", None, 8)
    assert patches[-1] == TrackingPatch(1, "started", NOW, 4)


def test_pause_floors_elapsed_minutes():
    task = _task(state="started", tracked=10, started_ago=timedelta(minutes=2, seconds=59))
    assert plan_transition(task, "paused", NOW) == [TrackingPatch(1, "paused", None, 12)]


def test_stop_from_paused_keeps_total():
    task = _task(state="paused", tracked=7)
    assert plan_transition(task, "stopped", NOW) == [TrackingPatch(1, "stopped", None, 7)]


def test_pause_from_stopped_is_rejected():
    with pytest.raises(InvalidTransition) as exc:
        plan_transition(_task(), "paused", NOW)
    assert (exc.value.current, exc.value.desired) == ("stopped", "paused")


def test_same_state_is_noop():
    assert plan_transition(_task(state="paused", tracked=3), "paused", NOW) == []


def test_unknown_state_is_rejected():
    with pytest.raises(InvalidTransition):
        plan_transition(_task(), "running", NOW)


def test_completed_task_cannot_start():
    with pytest.raises(InvalidTransition):
        plan_transition(_task(completed=True), "started", NOW)


def test_clock_skew_never_subtracts_time():
    task = _task(state="started", tracked=6, started_ago=timedelta(minutes=-5))
    assert folded_minutes(task, NOW) == 6


def test_completing_started_task_stops_it():
    task = _task(state="started", tracked=1, started_ago=timedelta(minutes=10))
    assert plan_completion(task, True, NOW) == TrackingPatch(1, "stopped", None, 11, True)


def test_completing_paused_task_parks_it_stopped():
    task = _task(state="paused", tracked=9)
    assert plan_completion(task, True, NOW) == TrackingPatch(1, "stopped", None, 9, True)


def test_uncompleting_leaves_tracking_alone():
    task = _task(state="stopped", tracked=20, completed=True)
    patch = plan_completion(task, False, NOW)
    assert patch == TrackingPatch(1, "stopped", None, 20, False)
    assert patch.as_fields()["completed"] is False


def test_stop_from_started_folds_elapsed_minutes():
    task = _task(state="started", tracked=4, started_ago=timedelta(minutes=6, seconds=45))
    assert plan_transition(task, "stopped", NOW) == [TrackingPatch(1, "stopped", None, 10)]
