# zenboard type definitions
# Rev 0.3.0

from __future__ import annotations
from typing import Literal

# Entity classification hierarchy: project → task → subtask
EntityType = Literal["project", "task", "subtask"]
ENTITY_TYPES = ("project", "task", "subtask")

TrackingState = Literal["stopped", "started", "paused"]
TRACKING_STATES = ("stopped", "started", "paused")

ProjectType = Literal["Work", "Personal"]
PROJECT_TYPES = ("Work", "Personal")

BusyStatus = Literal["accepted", "tentative", "declined"]

# Where a drag gesture was released on the calendar surface
DropTargetKind = Literal["none", "all_day", "time_slot", "item"]
