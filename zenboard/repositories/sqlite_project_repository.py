# Rev 0.3.0
# zenboard – SQLiteProjectRepository
from __future__ import annotations
from typing import Any, Dict, List, Optional

from .base import SQLiteRepository
from ..models.entities import Project, Subtask, Task
from ..models.errors import NotFound


class SQLiteProjectRepository(SQLiteRepository):
    """
    Project CRUD and the nested read of the whole planner.
    Projects form one global sibling scope ordered by "order", id.
    """

    table = "projects"
    UPDATABLE = ("name", "type", "color", "order")

    # ---------- reads ----------

    def list_projects(self) -> List[Project]:
        rows = self._fetch_all('SELECT * FROM projects ORDER BY "order" ASC, id ASC')
        return [Project.from_row(r) for r in rows]

    def get_project(self, project_id: int) -> Optional[Project]:
        row = self._fetch_one("SELECT * FROM projects WHERE id = ?", (project_id,))
        return Project.from_row(row) if row else None

    def require_project(self, project_id: int) -> Project:
        proj = self.get_project(project_id)
        if proj is None:
            raise NotFound("project", project_id)
        return proj

    def list_sibling_ids(self) -> List[int]:
        return self._ids(self._fetch_all('SELECT id FROM projects ORDER BY "order" ASC, id ASC'))

    def read_all(self) -> List[Project]:
        """
        Projects with their tasks with their subtasks, each level in sibling order.
        Three flat queries stitched in memory, read inside one transaction for a consistent snapshot.
        """
        with self._db.transaction():
            projects = self.list_projects()
            tasks = [Task.from_row(r) for r in self._fetch_all('SELECT * FROM tasks ORDER BY "order" ASC, id ASC')]
            subtasks = [Subtask.from_row(r) for r in self._fetch_all('SELECT * FROM subtasks ORDER BY "order" ASC, id ASC')]

        subs_by_task: Dict[int, List[Subtask]] = {}
        for s in subtasks:
            subs_by_task.setdefault(s.task_id, []).append(s)
        tasks_by_project: Dict[int, List[Task]] = {}
        for t in tasks:
            t.subtasks = subs_by_task.get(t.id, [])
            tasks_by_project.setdefault(t.project_id, []).append(t)
        for p in projects:
            p.tasks = tasks_by_project.get(p.id, [])
        return projects

    # ---------- mutations ----------

    def create_project(self, *, name: str, type: str = "Personal", color: str = "#3b82f6") -> Project:
        with self._db.transaction():
            order = self._next_order()
            cur = self._conn().execute(
                'INSERT INTO projects(name, type, color, "order") VALUES (?, ?, ?, ?)',
                (name, type, color, order),
            )
            return self.require_project(int(cur.lastrowid))

    def update_project(self, project_id: int, **fields: Any) -> Project:
        unknown = set(fields) - set(self.UPDATABLE)
        if unknown:
            raise ValueError(f"not updatable on project: {sorted(unknown)}")
        with self._db.transaction():
            self.require_project(project_id)
            self._update_fields(project_id, fields, touch=True)
            return self.require_project(project_id)

    def delete_project(self, project_id: int) -> bool:
        """Cascade: subtasks of the project's tasks, then its tasks, then the project."""
        with self._db.transaction():
            con = self._conn()
            con.execute(
                "DELETE FROM subtasks WHERE task_id IN (SELECT id FROM tasks WHERE project_id = ?)",
                (project_id,),
            )
            con.execute("DELETE FROM tasks WHERE project_id = ?", (project_id,))
            cur = con.execute("DELETE FROM projects WHERE id = ?", (project_id,))
            return cur.rowcount > 0

    def set_order(self, project_id: int, order: int) -> bool:
        return self._update_fields(project_id, {"order": order}, touch=True)
