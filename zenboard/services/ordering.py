# Rev 0.3.0
"""
Ordering resolver: turn "move X before anchor Y (or to the end)" into dense,
zero-based `order` values for every affected sibling.

Works on plain id sequences so the same code serves the three hierarchy
levels; the only difference between levels is which column is the parent
(none for projects, project_id for tasks, task_id for subtasks).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Final, List, Optional, Sequence, Union

from ..models.errors import InvalidAnchor
from ..models.types import EntityType


class _Append:
    __slots__ = ()

    def __repr__(self) -> str:
        return "APPEND"


APPEND: Final = _Append()
Anchor = Union[int, _Append]


@dataclass(frozen=True)
class ReorderMutation:
    kind: EntityType
    id: int
    order: int
    parent_id: Optional[int] = None


def _renumber(kind: EntityType, ids: Sequence[int], parent_id: Optional[int]) -> List[ReorderMutation]:
    return [ReorderMutation(kind, item_id, idx, parent_id) for idx, item_id in enumerate(ids)]


def resolve_reorder(
    kind: EntityType,
    moved_id: int,
    source_ids: Sequence[int],
    target_ids: Sequence[int],
    anchor: Anchor = APPEND,
    *,
    source_parent_id: Optional[int] = None,
    target_parent_id: Optional[int] = None,
) -> List[ReorderMutation]:
    """
    Compute the mutation set for one move.

    `source_ids` / `target_ids` are the sibling ids in current order; for a
    move inside one list pass the same sequence twice and equal parent ids.
    The moved item lands at the anchor's index once it has been taken out of
    the list, i.e. immediately before the anchor. Returns [] when nothing
    would change. Raises InvalidAnchor when the anchor is not a target sibling.
    """
    if anchor is not APPEND and anchor == moved_id:
        return []

    cross_parent = source_parent_id != target_parent_id

    working = [i for i in target_ids if i != moved_id]
    if anchor is APPEND:
        index = len(working)
    else:
        try:
            index = working.index(anchor)
        except ValueError:
            raise InvalidAnchor(anchor, target_parent_id) from None
    working.insert(index, moved_id)

    if not cross_parent:
        if list(target_ids) == working:
            return []
        return _renumber(kind, working, target_parent_id)

    remaining = [i for i in source_ids if i != moved_id]
    return _renumber(kind, remaining, source_parent_id) + _renumber(kind, working, target_parent_id)
