# tests/test_scheduling_service.py
from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone

import pytest

from zenboard.models.errors import (
    InvalidAnchor,
    InvalidTransition,
    NotFound,
    StoreUnavailable,
    ValidationError,
)
from zenboard.repositories.sqlite_task_repository import SQLiteTaskRepository
from zenboard.services.drop_time import GestureContext
from zenboard.services.ordering import APPEND

UTC = timezone.utc


def _tree(svc):
    return {p.id: [(t.id, t.order) for t in p.tasks] for p in svc.read_all()}


@pytest.fixture()
def seeded(svc):
    p1 = svc.create_project("Work stuff", type="Work", color="#ff0000")
    p2 = svc.create_project("Home")
    a = svc.create_task(p1.id, "a")
    b = svc.create_task(p1.id, "b")
    c = svc.create_task(p1.id, "c")
    x = svc.create_task(p2.id, "x")
    return {"p1": p1.id, "p2": p2.id, "a": a.id, "b": b.id, "c": c.id, "x": x.id}


# --- CRUD & validation --------------------------------------------------------

def test_creates_append_in_order(svc, seeded):
    projects = svc.read_all()
    assert [p.order for p in projects] == [0, 1]
    assert [t.title for t in projects[0].tasks] == ["a", "b", "c"]
    assert [t.order for t in projects[0].tasks] == [0, 1, 2]


def test_task_defaults(svc, seeded):
    t = svc.get_task(seeded["a"])
    assert t.start_date is None and not t.scheduled
    assert t.duration_minutes == 60
    assert (t.tracking_state, t.tracking_started_at, t.time_tracked_minutes) == ("stopped", None, 0)


def test_create_task_in_unknown_project(svc):
    with pytest.raises(NotFound):
        svc.create_task(999, "orphan")


@pytest.mark.parametrize("kwargs", [{"title": "  "}, {"title": "ok", "duration_minutes": 0},
                                    {"title": "ok", "duration_minutes": -5}])
def test_task_validation(svc, seeded, kwargs):
    title = kwargs.pop("title")
    with pytest.raises(ValidationError):
        svc.create_task(seeded["p1"], title, **kwargs)


def test_project_validation(svc):
    with pytest.raises(ValidationError):
        svc.create_project("x", type="Hobby")
    with pytest.raises(ValidationError):
        svc.create_project("x", color="red")


def test_update_rejects_internal_fields(svc, seeded):
    with pytest.raises(ValidationError):
        svc.update_task(seeded["a"], order=5)
    with pytest.raises(ValidationError):
        svc.update_task(seeded["a"], tracking_state="started")


def test_update_task_fields(svc, seeded):
    start = datetime(2024, 5, 7, 9, 0, tzinfo=UTC)
    t = svc.update_task(seeded["a"], title="renamed", start_date=start, duration_minutes=45)
    assert (t.title, t.start_date, t.duration_minutes) == ("renamed", start, 45)
    t = svc.update_task(seeded["a"], start_date=None)
    assert t.start_date is None


def test_delete_project_cascades(svc, seeded, db):
    s = svc.create_subtask(seeded["a"], "step")
    assert svc.delete_project(seeded["p1"]) is True
    with pytest.raises(NotFound):
        svc.get_task(seeded["a"])
    (n,) = db.conn.execute("SELECT COUNT(*) FROM subtasks WHERE id = ?", (s.id,)).fetchone()
    assert n == 0
    assert [p.id for p in svc.read_all()] == [seeded["p2"]]


def test_delete_task_cascades_subtasks(svc, seeded, db):
    svc.create_subtask(seeded["b"], "one")
    svc.create_subtask(seeded["b"], "two")
    assert svc.delete_task(seeded["b"]) is True
    (n,) = db.conn.execute("SELECT COUNT(*) FROM subtasks").fetchone()
    assert n == 0


# --- reordering ----------------------------------------------------------------

def test_move_within_project(svc, seeded):
    out = svc.move_and_reorder("task", seeded["c"], anchor=seeded["a"])
    assert len(out) == 3
    assert _tree(svc)[seeded["p1"]] == [(seeded["c"], 0), (seeded["a"], 1), (seeded["b"], 2)]


def test_move_across_projects(svc, seeded):
    svc.move_and_reorder("task", seeded["b"], target_parent_id=seeded["p2"], anchor=seeded["x"])
    tree = _tree(svc)
    assert tree[seeded["p1"]] == [(seeded["a"], 0), (seeded["c"], 1)]
    assert tree[seeded["p2"]] == [(seeded["b"], 0), (seeded["x"], 1)]
    assert svc.get_task(seeded["b"]).project_id == seeded["p2"]


def test_move_project_to_end(svc, seeded):
    svc.move_and_reorder("project", seeded["p1"], anchor=APPEND)
    assert [(p.id, p.order) for p in svc.read_all()] == [(seeded["p2"], 0), (seeded["p1"], 1)]


def test_move_subtask_to_other_task(svc, seeded):
    s1 = svc.create_subtask(seeded["a"], "s1")
    s2 = svc.create_subtask(seeded["a"], "s2")
    s3 = svc.create_subtask(seeded["b"], "s3")
    svc.move_and_reorder("subtask", s1.id, target_parent_id=seeded["b"])
    tasks = {t.id: t for p in svc.read_all() for t in p.tasks}
    assert [(s.id, s.order) for s in tasks[seeded["a"]].subtasks] == [(s2.id, 0)]
    assert [(s.id, s.order) for s in tasks[seeded["b"]].subtasks] == [(s3.id, 0), (s1.id, 1)]


def test_noop_move_writes_nothing(svc, seeded):
    assert svc.move_and_reorder("task", seeded["a"], anchor=seeded["b"]) == []
    assert svc.move_and_reorder("task", seeded["a"], anchor=seeded["a"]) == []


def test_anchor_from_other_project_is_rejected(svc, seeded):
    before = _tree(svc)
    with pytest.raises(InvalidAnchor):
        svc.move_and_reorder("task", seeded["a"], anchor=seeded["x"])
    assert _tree(svc) == before


def test_project_move_with_parent_is_rejected(svc, seeded):
    with pytest.raises(ValidationError):
        svc.move_and_reorder("project", seeded["p1"], target_parent_id=seeded["p2"])


def test_failed_batch_rolls_back_every_row(svc, seeded, monkeypatch):
    before = _tree(svc)
    original = SQLiteTaskRepository.set_order
    calls = {"n": 0}

    def flaky(self, task_id, order, project_id):
        calls["n"] += 1
        if calls["n"] == 2:
            raise sqlite3.OperationalError("disk I/O error")
        return original(self, task_id, order, project_id)

    monkeypatch.setattr(SQLiteTaskRepository, "set_order", flaky)
    with pytest.raises(StoreUnavailable):
        svc.move_and_reorder("task", seeded["c"], anchor=seeded["a"])
    assert calls["n"] == 2
    monkeypatch.undo()
    assert _tree(svc) == before


# --- calendar --------------------------------------------------------------------

def test_drop_on_time_slot_schedules(svc, seeded):
    gesture = GestureContext(target="time_slot", pointer_time=datetime(2024, 5, 7, 14, 37, tzinfo=UTC))
    out = svc.schedule_from_drop(seeded["a"], gesture)
    assert out.changed
    assert out.task.start_date == datetime(2024, 5, 7, 14, 30, tzinfo=UTC)
    assert svc.get_task(seeded["a"]).start_date == datetime(2024, 5, 7, 14, 30, tzinfo=UTC)


def test_drop_to_same_slot_is_no_change(svc, seeded):
    gesture = GestureContext(target="time_slot", pointer_time=datetime(2024, 5, 7, 14, 37, tzinfo=UTC))
    svc.schedule_from_drop(seeded["a"], gesture)
    again = svc.schedule_from_drop(seeded["a"], gesture)
    assert not again.changed
    assert again.resolution.kind == "no_change"


def test_drop_outside_calendar_touches_nothing(svc, seeded):
    out = svc.schedule_from_drop(seeded["a"], GestureContext(target="none"))
    assert out.task is None and out.resolution.kind == "no_op"
    assert svc.get_task(seeded["a"]).start_date is None


def test_drop_on_unknown_task(svc):
    gesture = GestureContext(target="time_slot", pointer_time=datetime(2024, 5, 7, 14, 0, tzinfo=UTC))
    with pytest.raises(NotFound):
        svc.schedule_from_drop(12345, gesture)


def test_drop_on_other_item_stacks(svc, seeded):
    start = datetime(2024, 5, 8, 13, 0, tzinfo=UTC)
    svc.move_calendar_event(seeded["x"], start)
    gesture = GestureContext(target="item", target_item_id=seeded["x"], target_item_start=start)
    assert svc.schedule_from_drop(seeded["a"], gesture).task.start_date == start


def test_quick_schedule_next_sunday_morning(svc, seeded):
    t = svc.quick_schedule(seeded["a"])
    assert t.start_date == datetime(2024, 5, 12, 6, 0, tzinfo=UTC)


def test_resize_sets_duration(svc, seeded):
    start = datetime(2024, 5, 7, 9, 0, tzinfo=UTC)
    svc.move_calendar_event(seeded["a"], start)
    t = svc.resize_calendar_event(seeded["a"], start, datetime(2024, 5, 7, 10, 30, tzinfo=UTC))
    assert t.duration_minutes == 90
    with pytest.raises(ValidationError):
        svc.resize_calendar_event(seeded["a"], start, start)


# --- tracking --------------------------------------------------------------------

def _started(svc):
    return [t.id for p in svc.read_all() for t in p.tasks if t.tracking_state == "started"]


def test_only_one_task_tracks_at_a_time(svc, seeded, clock):
    svc.set_tracking_state(seeded["a"], "started")
    clock.advance(minutes=5)
    svc.set_tracking_state(seeded["a"], "paused")
    assert svc.get_task(seeded["a"]).time_tracked_minutes == 5

    svc.set_tracking_state(seeded["a"], "started")
    clock.advance(minutes=3, seconds=30)
    svc.set_tracking_state(seeded["x"], "started")

    a = svc.get_task(seeded["a"])
    assert (a.tracking_state, a.tracking_started_at, a.time_tracked_minutes) == ("stopped", None, 8)
    x = svc.get_task(seeded["x"])
    assert x.tracking_state == "started" and x.tracking_started_at == clock.now
    assert _started(svc) == [seeded["x"]]


def test_invalid_transition_leaves_row_alone(svc, seeded):
    with pytest.raises(InvalidTransition):
        svc.set_tracking_state(seeded["a"], "paused")
    assert svc.get_task(seeded["a"]).tracking_state == "stopped"


def test_unknown_state_is_validation_error(svc, seeded):
    with pytest.raises(ValidationError):
        svc.set_tracking_state(seeded["a"], "running")


def test_completing_running_task_stops_tracking(svc, seeded, clock):
    svc.set_tracking_state(seeded["a"], "started")
    clock.advance(minutes=10)
    t = svc.set_completed(seeded["a"], True)
    assert t.completed and t.tracking_state == "stopped" and t.time_tracked_minutes == 10
    with pytest.raises(InvalidTransition):
        svc.set_tracking_state(seeded["a"], "started")

    t = svc.set_completed(seeded["a"], False)
    assert not t.completed and t.time_tracked_minutes == 10
    assert svc.set_tracking_state(seeded["a"], "started").tracking_state == "started"


# --- weekly plans ----------------------------------------------------------------

def test_weekly_plan_created_lazily(svc):
    plan = svc.weekly_plan_for(date(2024, 5, 8))
    assert plan.week_start_date == date(2024, 5, 6)
    assert plan.content == ""
    assert svc.weekly_plan_for(date(2024, 5, 12)).id == plan.id


def test_weekly_plan_save_and_reload(svc):
    svc.save_weekly_plan(date(2024, 5, 6), "- ship it")
    assert svc.weekly_plan(date(2024, 5, 6)).content == "- ship it"
    with pytest.raises(ValidationError):
        svc.save_weekly_plan(date(2024, 5, 7), "tuesday")


def test_pause_gap_is_not_accrued(svc, seeded, clock):
    svc.set_tracking_state(seeded["a"], "started")
    clock.advance(minutes=5)
    svc.set_tracking_state(seeded["a"], "paused")
    clock.advance(minutes=5)
    svc.set_tracking_state(seeded["a"], "started")
    clock.advance(minutes=3)
    t = svc.set_tracking_state(seeded["a"], "stopped")
    assert (t.tracking_state, t.tracking_started_at, t.time_tracked_minutes) == ("stopped", None, 8)


def test_stop_while_running_folds_time(svc, seeded, clock):
    svc.set_tracking_state(seeded["a"], "started")
    clock.advance(minutes=12, seconds=59)
    t = svc.set_tracking_state(seeded["a"], "stopped")
    assert (t.tracking_state, t.time_tracked_minutes) == ("stopped", 12)
    assert _started(svc) == []


def test_quick_schedule_from_wednesday(svc, seeded, clock):
    clock.now = datetime(2024, 5, 8, 16, 20, tzinfo=UTC)
    assert svc.quick_schedule(seeded["a"]).start_date == datetime(2024, 5, 12, 6, 0, tzinfo=UTC)


def test_subtask_completed_must_be_boolean(svc, seeded):
    s = svc.create_subtask(seeded["a"], "step")
    with pytest.raises(ValidationError):
        svc.update_subtask(s.id, completed="yes")
    with pytest.raises(ValidationError):
        svc.update_subtask(s.id, completed=1)
    assert svc.update_subtask(s.id, completed=True).completed is True
