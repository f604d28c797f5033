# Rev 0.3.0
from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional

from PySide6.QtCore import QObject, Signal

from ..models.errors import ZenboardError
from ..services.drop_time import GestureContext
from ..services.ordering import APPEND, Anchor, resolve_reorder
from ..services.scheduling_service import SchedulingService
from ..utils.logging_setup import get_logger

log = get_logger("planner_vm")

Tree = List[Dict[str, Any]]


class PlannerViewModel(QObject):
    """
    VM for the projects → tasks → subtasks tree shown next to the calendar.
    Emits:
      - treeReloaded(projects: list[dict])   after every load, optimistic edit or rollback
      - operationFailed(message: str)        when the store rejected a command
    """

    treeReloaded = Signal(list)
    operationFailed = Signal(str)

    def __init__(self, service: SchedulingService):
        super().__init__()
        self._svc = service
        self._tree: Tree = []

    # ---- queries ----
    def reload(self) -> None:
        self._tree = [p.to_dict() for p in self._svc.read_all()]
        self.treeReloaded.emit(self._tree)

    def tree(self) -> Tree:
        return self._tree

    def find_task(self, task_id: int) -> Optional[Dict[str, Any]]:
        return self._find_in(self._tree, task_id)

    # ---- commands ----
    def move_item(self, kind: str, moved_id: int, *, target_parent_id: Optional[int] = None,
                  anchor: Anchor = APPEND) -> bool:
        return self._run(
            lambda tree: self._local_move(tree, kind, moved_id, target_parent_id, anchor),
            lambda: self._svc.move_and_reorder(kind, moved_id, target_parent_id, anchor),
        )

    def drop_on_calendar(self, task_id: int, gesture: GestureContext) -> bool:
        return self._run(None, lambda: self._svc.schedule_from_drop(task_id, gesture))

    def quick_schedule(self, task_id: int) -> bool:
        return self._run(None, lambda: self._svc.quick_schedule(task_id))

    def set_tracking(self, task_id: int, state: str) -> bool:
        def optimistic(tree: Tree) -> None:
            task = self._find_in(tree, task_id)
            if task is None:
                return
            if state == "started":
                # preemption mirrored locally: one running timer per emitted tree
                for p in tree:
                    for other in p["tasks"]:
                        if other["tracking_state"] == "started" and other["id"] != task_id:
                            other["tracking_state"] = "stopped"
                            other["tracking_started_at"] = None
            task["tracking_state"] = state
        return self._run(optimistic, lambda: self._svc.set_tracking_state(task_id, state))

    def toggle_completed(self, task_id: int) -> bool:
        current = self.find_task(task_id)
        completed = not (current and current["completed"])

        def optimistic(tree: Tree) -> None:
            task = self._find_in(tree, task_id)
            if task is not None:
                task["completed"] = completed
                if completed and task["tracking_state"] != "stopped":
                    task["tracking_state"] = "stopped"
                    task["tracking_started_at"] = None
        return self._run(optimistic, lambda: self._svc.set_completed(task_id, completed))

    # ---- internals ----
    def _run(self, optimistic: Optional[Callable[[Tree], None]], command: Callable[[], Any]) -> bool:
        snapshot = copy.deepcopy(self._tree)
        try:
            if optimistic is not None:
                optimistic(self._tree)
                self.treeReloaded.emit(self._tree)
            command()
        except ZenboardError as exc:
            log.warning("Command rejected, restoring last persisted view: %s", exc)
            self._tree = snapshot
            self.treeReloaded.emit(self._tree)
            self.operationFailed.emit(str(exc))
            return False
        self.reload()
        return True

    @staticmethod
    def _find_in(tree: Tree, task_id: int) -> Optional[Dict[str, Any]]:
        for p in tree:
            for t in p["tasks"]:
                if t["id"] == task_id:
                    return t
        return None

    @staticmethod
    def _local_move(tree: Tree, kind: str, moved_id: int, target_parent_id: Optional[int], anchor: Anchor) -> None:
        """Same splice the store will do, applied to the in-memory tree for instant feedback."""
        if kind == "project":
            if not any(p["id"] == moved_id for p in tree):
                return
            scopes = {None: tree}
            source_parent = target_parent = None
        elif kind == "task":
            scopes = {p["id"]: p["tasks"] for p in tree}
            source_parent = next((pid for pid, items in scopes.items() if any(t["id"] == moved_id for t in items)), None)
            target_parent = source_parent if target_parent_id is None else target_parent_id
        else:
            scopes = {t["id"]: t["subtasks"] for p in tree for t in p["tasks"]}
            source_parent = next((tid for tid, items in scopes.items() if any(s["id"] == moved_id for s in items)), None)
            target_parent = source_parent if target_parent_id is None else target_parent_id

        if source_parent not in scopes or target_parent not in scopes:
            return  # not in the local view; the store decides
        source = scopes[source_parent]
        target = scopes[target_parent]
        mutations = resolve_reorder(
            kind, moved_id, [i["id"] for i in source], [i["id"] for i in target], anchor,
            source_parent_id=source_parent, target_parent_id=target_parent,
        )
        by_id = {i["id"]: i for i in source + target}
        parent_key = {"task": "project_id", "subtask": "task_id"}.get(kind)
        new_scopes: Dict[Optional[int], list] = {}
        for m in mutations:
            item = by_id[m.id]
            item["order"] = m.order
            if parent_key:
                item[parent_key] = m.parent_id
            new_scopes.setdefault(m.parent_id, []).append(item)
        for parent, items in new_scopes.items():
            scopes[parent][:] = items
