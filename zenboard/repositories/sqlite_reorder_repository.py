# Rev 0.3.0
from __future__ import annotations

from typing import Iterable

from .db import Database
from .sqlite_project_repository import SQLiteProjectRepository
from .sqlite_subtask_repository import SQLiteSubtaskRepository
from .sqlite_task_repository import SQLiteTaskRepository
from ..models.errors import NotFound
from ..services.ordering import ReorderMutation


class SQLiteReorderRepository:
    """Batch writer for (kind, id, order, parent_id) tuples; all rows or none."""

    def __init__(self, db: Database):
        self._db = db
        self._projects = SQLiteProjectRepository(db)
        self._tasks = SQLiteTaskRepository(db)
        self._subtasks = SQLiteSubtaskRepository(db)

    def apply_reorder(self, mutations: Iterable[ReorderMutation]) -> int:
        count = 0
        with self._db.transaction():
            for m in mutations:
                if m.kind == "project":
                    ok = self._projects.set_order(m.id, m.order)
                elif m.kind == "task":
                    ok = self._tasks.set_order(m.id, m.order, m.parent_id)
                elif m.kind == "subtask":
                    ok = self._subtasks.set_order(m.id, m.order, m.parent_id)
                else:
                    raise ValueError(f"unknown entity kind {m.kind!r}")
                if not ok:
                    # aborts the whole batch; earlier rows roll back with it
                    raise NotFound(m.kind, m.id)
                count += 1
        return count
