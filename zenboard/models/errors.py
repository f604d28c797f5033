# Rev 0.3.0
"""Error taxonomy for the scheduling & tracking core."""
from __future__ import annotations


class ZenboardError(Exception):
    """Base class for every error raised by the core."""


class ValidationError(ZenboardError, ValueError):
    """Rejected input: missing field, non-positive duration, bad enum value."""


class NotFound(ZenboardError, LookupError):
    def __init__(self, kind: str, entity_id):
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class InvalidAnchor(ZenboardError):
    """Reorder anchor is not a member of the target sibling list."""

    def __init__(self, anchor_id, parent_id=None):
        where = f" under parent {parent_id}" if parent_id is not None else ""
        super().__init__(f"anchor {anchor_id} not found among siblings{where}")
        self.anchor_id = anchor_id
        self.parent_id = parent_id


class InvalidTransition(ZenboardError):
    """Tracking transition not allowed from the current state."""

    def __init__(self, task_id: int, current: str, desired: str, reason: str = ""):
        msg = f"task {task_id}: {current} -> {desired} not allowed"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.task_id = task_id
        self.current = current
        self.desired = desired
        self.reason = reason


class StoreUnavailable(ZenboardError):
    """The entity store could not commit; nothing from the transaction is visible."""
