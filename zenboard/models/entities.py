# Rev 0.3.0
"""Lightweight entities aligned with schema 0001 (projects/tasks/subtasks/weekly_plans)."""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from .types import BusyStatus, ProjectType, TrackingState
from ..utils.timeutil import elapsed_minutes, parse_iso, to_iso


@dataclass
class Subtask:
    id: int | None
    task_id: int
    title: str
    notes: Optional[str] = None
    completed: bool = False
    order: int = 0
    created_at_utc: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Subtask":
        return cls(
            id=row["id"],
            task_id=row["task_id"],
            title=row["title"],
            notes=row["notes"],
            completed=bool(row["completed"]),
            order=row["order"],
            created_at_utc=row["created_at_utc"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Task:
    id: int | None
    project_id: int
    title: str
    description: Optional[str] = None        # opaque rich-content blob
    start_date: Optional[datetime] = None    # None => unscheduled
    duration_minutes: int = 60
    order: int = 0
    completed: bool = False
    time_tracked_minutes: int = 0
    tracking_state: TrackingState = "stopped"
    tracking_started_at: Optional[datetime] = None
    created_at_utc: Optional[str] = None
    subtasks: List[Subtask] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Task":
        return cls(
            id=row["id"],
            project_id=row["project_id"],
            title=row["title"],
            description=row["description"],
            start_date=parse_iso(row["start_date"]),
            duration_minutes=row["duration_minutes"],
            order=row["order"],
            completed=bool(row["completed"]),
            time_tracked_minutes=int(row["time_tracked_minutes"]),
            tracking_state=row["tracking_state"],
            tracking_started_at=parse_iso(row["tracking_started_at"]),
            created_at_utc=row["created_at_utc"],
        )

    @property
    def scheduled(self) -> bool:
        return self.start_date is not None

    def busy_interval(self) -> Optional[tuple[datetime, datetime]]:
        """Half-open [start, start + duration) or None when unscheduled."""
        if self.start_date is None:
            return None
        return self.start_date, self.start_date + timedelta(minutes=self.duration_minutes)

    def live_tracked_minutes(self, now: datetime) -> float:
        """Display-only accrual; fractional while started, never written back."""
        if self.tracking_state == "started" and self.tracking_started_at is not None:
            return self.time_tracked_minutes + elapsed_minutes(self.tracking_started_at, now)
        return float(self.time_tracked_minutes)

    def remaining_minutes(self, now: datetime) -> float:
        return max(0.0, self.duration_minutes - self.live_tracked_minutes(now))

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["start_date"] = to_iso(self.start_date)
        d["tracking_started_at"] = to_iso(self.tracking_started_at)
        return d


@dataclass
class Project:
    id: int | None
    name: str
    type: ProjectType = "Personal"
    color: str = "#3b82f6"
    order: int = 0
    created_at_utc: Optional[str] = None
    updated_at_utc: Optional[str] = None
    tasks: List[Task] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Project":
        return cls(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            color=row["color"],
            order=row["order"],
            created_at_utc=row["created_at_utc"],
            updated_at_utc=row["updated_at_utc"],
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["tasks"] = [t.to_dict() for t in self.tasks]
        return d


@dataclass
class WeeklyPlan:
    id: int | None
    week_start_date: date     # always a Monday
    content: str = ""
    created_at_utc: Optional[str] = None
    updated_at_utc: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "WeeklyPlan":
        return cls(
            id=row["id"],
            week_start_date=date.fromisoformat(row["week_start_date"]),
            content=row["content"] or "",
            created_at_utc=row["created_at_utc"],
            updated_at_utc=row["updated_at_utc"],
        )


@dataclass(frozen=True)
class BusyInterval:
    """Read-only event from an external calendar feed; never persisted."""
    id: str
    title: str
    start: datetime
    end: datetime
    status: BusyStatus = "accepted"
    description: str = ""
    location: str = ""
