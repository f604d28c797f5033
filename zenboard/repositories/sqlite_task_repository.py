# Rev 0.3.0
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import SQLiteRepository
from ..models.entities import Subtask, Task
from ..models.errors import NotFound
from ..utils.timeutil import to_iso


class SQLiteTaskRepository(SQLiteRepository):
    """
    Task CRUD, per-project sibling listing and the tracking-state queries.
    Every method joins the caller's transaction when one is open.
    """

    table = "tasks"
    UPDATABLE = (
        "title",
        "description",
        "start_date",
        "duration_minutes",
        "order",
        "completed",
        "project_id",
        "time_tracked_minutes",
        "tracking_state",
        "tracking_started_at",
    )

    # -------------------------
    # Reads
    # -------------------------
    def get_task(self, task_id: int, *, with_subtasks: bool = False) -> Optional[Task]:
        row = self._fetch_one("SELECT * FROM tasks WHERE id = ?", (task_id,))
        if not row:
            return None
        task = Task.from_row(row)
        if with_subtasks:
            rows = self._fetch_all(
                'SELECT * FROM subtasks WHERE task_id = ? ORDER BY "order" ASC, id ASC', (task_id,)
            )
            task.subtasks = [Subtask.from_row(r) for r in rows]
        return task

    def require_task(self, task_id: int) -> Task:
        task = self.get_task(task_id)
        if task is None:
            raise NotFound("task", task_id)
        return task

    def list_sibling_ids(self, project_id: int) -> List[int]:
        return self._ids(self._fetch_all(
            'SELECT id FROM tasks WHERE project_id = ? ORDER BY "order" ASC, id ASC', (project_id,)
        ))

    def list_started_tasks(self, *, exclude_id: Optional[int] = None) -> List[Task]:
        """Tasks currently accruing time; at most one outside a start transition."""
        if exclude_id is None:
            rows = self._fetch_all("SELECT * FROM tasks WHERE tracking_state = 'started' ORDER BY id")
        else:
            rows = self._fetch_all(
                "SELECT * FROM tasks WHERE tracking_state = 'started' AND id != ? ORDER BY id",
                (exclude_id,),
            )
        return [Task.from_row(r) for r in rows]

    # -------------------------
    # Mutations
    # -------------------------
    def create_task(
        self,
        *,
        project_id: int,
        title: str,
        description: Optional[str] = None,
        start_date: Optional[datetime] = None,
        duration_minutes: int = 60,
    ) -> Task:
        with self._db.transaction():
            order = self._next_order("project_id = ?", (project_id,))
            cur = self._conn().execute(
                """
                INSERT INTO tasks(project_id, title, description, start_date, duration_minutes, "order")
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (project_id, title, description, to_iso(start_date), duration_minutes, order),
            )
            return self.require_task(int(cur.lastrowid))

    def update_task(self, task_id: int, **fields: Any) -> Task:
        unknown = set(fields) - set(self.UPDATABLE)
        if unknown:
            raise ValueError(f"not updatable on task: {sorted(unknown)}")
        with self._db.transaction():
            self.require_task(task_id)
            self._update_fields(task_id, self._to_columns(fields))
            return self.require_task(task_id)

    def delete_task(self, task_id: int) -> bool:
        """Cascade: the task's subtasks first, then the task."""
        with self._db.transaction():
            con = self._conn()
            con.execute("DELETE FROM subtasks WHERE task_id = ?", (task_id,))
            cur = con.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cur.rowcount > 0

    def set_order(self, task_id: int, order: int, project_id: int) -> bool:
        return self._update_fields(task_id, {"order": order, "project_id": project_id})

    @staticmethod
    def _to_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, value in fields.items():
            if key in ("start_date", "tracking_started_at"):
                value = to_iso(value)
            elif key == "completed":
                value = 1 if value else 0
            out[key] = value
        return out
