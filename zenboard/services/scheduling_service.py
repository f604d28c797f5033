# Rev 0.3.0
"""
Scheduling facade: the one entry point consumers call.

Each operation validates its input, runs the matching resolver on state read
inside a single store transaction, and writes the resulting rows in that same
transaction. A failure anywhere rolls the whole unit back.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any, Callable, List, Optional

from .drop_time import DropResolution, GestureContext, quick_schedule_time, resolve_drop_time
from .ordering import APPEND, Anchor, ReorderMutation, resolve_reorder
from .tracking import plan_completion, plan_transition
from . import validation as v
from ..models.entities import Project, Subtask, Task, WeeklyPlan
from ..models.errors import ValidationError
from ..repositories.db import Database
from ..repositories.sqlite_project_repository import SQLiteProjectRepository
from ..repositories.sqlite_reorder_repository import SQLiteReorderRepository
from ..repositories.sqlite_subtask_repository import SQLiteSubtaskRepository
from ..repositories.sqlite_task_repository import SQLiteTaskRepository
from ..repositories.sqlite_weekly_plan_repository import SQLiteWeeklyPlanRepository
from ..utils.config import SchedulingConfig
from ..utils.logging_setup import get_logger
from ..utils.timeutil import utc_now, week_start_for

log = get_logger("scheduling")

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class ScheduleOutcome:
    """Result of a drop: `task` is None only for no-op drops that never touched the store."""
    task: Optional[Task]
    resolution: DropResolution

    @property
    def changed(self) -> bool:
        return self.resolution.changed


class SchedulingService:
    TASK_EDITABLE = ("title", "description", "start_date", "duration_minutes")
    SUBTASK_EDITABLE = ("title", "notes", "completed")
    PROJECT_EDITABLE = ("name", "type", "color")

    def __init__(
        self,
        db: Database,
        *,
        config: Optional[SchedulingConfig] = None,
        clock: Clock = utc_now,
        tz: Optional[tzinfo] = None,
    ):
        self._db = db
        self._projects = SQLiteProjectRepository(db)
        self._tasks = SQLiteTaskRepository(db)
        self._subtasks = SQLiteSubtaskRepository(db)
        self._plans = SQLiteWeeklyPlanRepository(db)
        self._reorder = SQLiteReorderRepository(db)
        self._config = config or SchedulingConfig()
        self._clock = clock
        self._tz = tz or self._config.zone()

    @property
    def config(self) -> SchedulingConfig:
        return self._config

    # ------------------------------------------------------------------ reads

    def read_all(self) -> List[Project]:
        return self._projects.read_all()

    def get_task(self, task_id: int) -> Task:
        return self._tasks.require_task(task_id)

    # --------------------------------------------------------------- projects

    def create_project(self, name: str, type: str = "Personal", color: str = "#3b82f6") -> Project:
        fields = v.clean_project_fields({"name": name, "type": type, "color": color})
        project = self._projects.create_project(**fields)
        log.info("Created project %s (%s) at order %s", project.id, project.name, project.order)
        return project

    def update_project(self, project_id: int, **fields: Any) -> Project:
        self._only(fields, self.PROJECT_EDITABLE, "project")
        return self._projects.update_project(project_id, **v.clean_project_fields(fields))

    def delete_project(self, project_id: int) -> bool:
        ok = self._projects.delete_project(project_id)
        log.info("Deleted project %s (cascade): %s", project_id, ok)
        return ok

    # ------------------------------------------------------------------ tasks

    def create_task(
        self,
        project_id: int,
        title: str,
        *,
        description: Optional[str] = None,
        start_date: Optional[datetime] = None,
        duration_minutes: int = 60,
    ) -> Task:
        fields = v.clean_task_fields(
            {"title": title, "start_date": start_date, "duration_minutes": duration_minutes}
        )
        with self._db.transaction():
            self._projects.require_project(project_id)
            task = self._tasks.create_task(project_id=project_id, description=description, **fields)
        log.info("Created task %s in project %s at order %s", task.id, project_id, task.order)
        return task

    def update_task(self, task_id: int, **fields: Any) -> Task:
        self._only(fields, self.TASK_EDITABLE, "task")
        return self._tasks.update_task(task_id, **v.clean_task_fields(fields))

    def delete_task(self, task_id: int) -> bool:
        ok = self._tasks.delete_task(task_id)
        log.info("Deleted task %s (cascade): %s", task_id, ok)
        return ok

    # --------------------------------------------------------------- subtasks

    def create_subtask(self, task_id: int, title: str, *, notes: Optional[str] = None) -> Subtask:
        title = v.require_text(title, "title")
        with self._db.transaction():
            self._tasks.require_task(task_id)
            return self._subtasks.create_subtask(task_id=task_id, title=title, notes=notes)

    def update_subtask(self, subtask_id: int, **fields: Any) -> Subtask:
        self._only(fields, self.SUBTASK_EDITABLE, "subtask")
        if "title" in fields:
            fields["title"] = v.require_text(fields["title"], "title")
        if "completed" in fields:
            fields["completed"] = v.check_flag(fields["completed"], "completed")
        return self._subtasks.update_subtask(subtask_id, **fields)

    def delete_subtask(self, subtask_id: int) -> bool:
        return self._subtasks.delete_subtask(subtask_id)

    # -------------------------------------------------------------- reordering

    def move_and_reorder(
        self,
        kind: str,
        moved_id: int,
        target_parent_id: Optional[int] = None,
        anchor: Anchor = APPEND,
    ) -> List[ReorderMutation]:
        """Move one item (optionally under a new parent) and persist dense orders atomically."""
        v.check_kind(kind)
        with self._db.transaction():
            if kind == "project":
                if target_parent_id is not None:
                    raise ValidationError("projects have no parent")
                self._projects.require_project(moved_id)
                ids = self._projects.list_sibling_ids()
                mutations = resolve_reorder("project", moved_id, ids, ids, anchor)
            elif kind == "task":
                source_parent = self._tasks.require_task(moved_id).project_id
                target_parent = source_parent if target_parent_id is None else target_parent_id
                self._projects.require_project(target_parent)
                mutations = self._resolve_scoped(
                    "task", moved_id, source_parent, target_parent, anchor, self._tasks.list_sibling_ids
                )
            else:
                source_parent = self._subtasks.require_subtask(moved_id).task_id
                target_parent = source_parent if target_parent_id is None else target_parent_id
                self._tasks.require_task(target_parent)
                mutations = self._resolve_scoped(
                    "subtask", moved_id, source_parent, target_parent, anchor, self._subtasks.list_sibling_ids
                )

            if mutations:
                self._reorder.apply_reorder(mutations)

        if mutations:
            log.info("Reordered %s %s before %r: %d rows", kind, moved_id, anchor, len(mutations))
        else:
            log.debug("Reorder of %s %s is a no-op", kind, moved_id)
        return mutations

    @staticmethod
    def _resolve_scoped(kind, moved_id, source_parent, target_parent, anchor, sibling_ids) -> List[ReorderMutation]:
        source = sibling_ids(source_parent)
        target = source if target_parent == source_parent else sibling_ids(target_parent)
        return resolve_reorder(
            kind, moved_id, source, target, anchor,
            source_parent_id=source_parent, target_parent_id=target_parent,
        )

    # -------------------------------------------------------------- calendar

    def schedule_from_drop(self, task_id: int, gesture: GestureContext) -> ScheduleOutcome:
        now = self._clock()
        # outside-calendar and self drops are decided without reading the store
        early = resolve_drop_time(task_id, None, gesture, now=now, config=self._config, tz=self._tz)
        if early.kind == "no_op":
            log.debug("Drop of task %s ignored (%s)", task_id, early.rule)
            return ScheduleOutcome(None, early)

        with self._db.transaction():
            task = self._tasks.require_task(task_id)
            resolution = resolve_drop_time(
                task_id, task.start_date, gesture, now=now, config=self._config, tz=self._tz
            )
            if not resolution.changed:
                log.debug("Drop of task %s resolves to its current start; skipped", task_id)
                return ScheduleOutcome(task, resolution)
            task = self._tasks.update_task(task_id, start_date=resolution.start)

        log.info("Scheduled task %s at %s (%s)", task_id, task.start_date, resolution.rule)
        return ScheduleOutcome(task, resolution)

    def quick_schedule(self, task_id: int) -> Task:
        start = quick_schedule_time(self._clock(), config=self._config, tz=self._tz)
        task = self._tasks.update_task(task_id, start_date=start)
        log.info("Quick-scheduled task %s at %s", task_id, task.start_date)
        return task

    def move_calendar_event(self, task_id: int, start: datetime) -> Task:
        """An already-scheduled item dragged to a new slot on the grid."""
        return self._tasks.update_task(task_id, start_date=v.check_start(start))

    def resize_calendar_event(self, task_id: int, start: datetime, end: datetime) -> Task:
        minutes = math.floor((end - start).total_seconds() / 60 + 0.5)
        return self._tasks.update_task(task_id, duration_minutes=v.check_duration(minutes))

    # --------------------------------------------------------------- tracking

    def set_tracking_state(self, task_id: int, desired: str) -> Task:
        """Transition one task; starting preempts every other started task in the same transaction."""
        v.check_tracking_state(desired)
        with self._db.transaction():
            task = self._tasks.require_task(task_id)
            now = self._clock()
            others = self._tasks.list_started_tasks(exclude_id=task_id) if desired == "started" else []
            patches = plan_transition(task, desired, now, others)
            for patch in patches:
                self._tasks.update_task(patch.task_id, **patch.as_fields())
            result = self._tasks.require_task(task_id)

        for patch in patches:
            if patch.task_id != task_id:
                log.info("Preempted task %s (total %s min)", patch.task_id, patch.time_tracked_minutes)
        if patches:
            log.info("Task %s tracking %s -> %s", task_id, task.tracking_state, desired)
        return result

    def set_completed(self, task_id: int, completed: bool) -> Task:
        with self._db.transaction():
            task = self._tasks.require_task(task_id)
            if task.completed == bool(completed):
                return task
            patch = plan_completion(task, bool(completed), self._clock())
            result = self._tasks.update_task(task_id, **patch.as_fields())
        log.info("Task %s completed=%s (tracking %s)", task_id, result.completed, result.tracking_state)
        return result

    # ----------------------------------------------------------- weekly plans

    def weekly_plan(self, week_start: date) -> WeeklyPlan:
        return self._plans.get_or_create(v.check_week_start(week_start))

    def weekly_plan_for(self, day: date) -> WeeklyPlan:
        return self.weekly_plan(week_start_for(day))

    def save_weekly_plan(self, week_start: date, content: str) -> WeeklyPlan:
        return self._plans.upsert(v.check_week_start(week_start), content or "")

    # ---------------------------------------------------------------- helpers

    @staticmethod
    def _only(fields: dict, allowed: tuple, kind: str) -> None:
        extra = set(fields) - set(allowed)
        if extra:
            raise ValidationError(f"{kind} fields not editable here: {sorted(extra)}")
