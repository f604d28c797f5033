# Rev 0.3.0
from __future__ import annotations
from typing import Any, List, Optional

from .base import SQLiteRepository
from ..models.entities import Subtask
from ..models.errors import NotFound


class SQLiteSubtaskRepository(SQLiteRepository):
    """Subtask CRUD; sibling scope is the owning task."""

    table = "subtasks"
    UPDATABLE = ("title", "notes", "completed", "order", "task_id")

    def get_subtask(self, subtask_id: int) -> Optional[Subtask]:
        row = self._fetch_one("SELECT * FROM subtasks WHERE id = ?", (subtask_id,))
        return Subtask.from_row(row) if row else None

    def require_subtask(self, subtask_id: int) -> Subtask:
        sub = self.get_subtask(subtask_id)
        if sub is None:
            raise NotFound("subtask", subtask_id)
        return sub

    def list_sibling_ids(self, task_id: int) -> List[int]:
        return self._ids(self._fetch_all(
            'SELECT id FROM subtasks WHERE task_id = ? ORDER BY "order" ASC, id ASC', (task_id,)
        ))

    def create_subtask(self, *, task_id: int, title: str, notes: Optional[str] = None) -> Subtask:
        with self._db.transaction():
            order = self._next_order("task_id = ?", (task_id,))
            cur = self._conn().execute(
                'INSERT INTO subtasks(task_id, title, notes, "order") VALUES (?, ?, ?, ?)',
                (task_id, title, notes, order),
            )
            return self.require_subtask(int(cur.lastrowid))

    def update_subtask(self, subtask_id: int, **fields: Any) -> Subtask:
        unknown = set(fields) - set(self.UPDATABLE)
        if unknown:
            raise ValueError(f"not updatable on subtask: {sorted(unknown)}")
        if "completed" in fields:
            fields["completed"] = 1 if fields["completed"] else 0
        with self._db.transaction():
            self.require_subtask(subtask_id)
            self._update_fields(subtask_id, fields)
            return self.require_subtask(subtask_id)

    def delete_subtask(self, subtask_id: int) -> bool:
        with self._db.transaction():
            cur = self._conn().execute("DELETE FROM subtasks WHERE id = ?", (subtask_id,))
            return cur.rowcount > 0

    def set_order(self, subtask_id: int, order: int, task_id: int) -> bool:
        return self._update_fields(subtask_id, {"order": order, "task_id": task_id})
