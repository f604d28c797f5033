# Rev 0.3.0
from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ..models.entities import WeeklyPlan
from ..services.scheduling_service import SchedulingService
from ..utils.timeutil import week_start_for


class WeeklyPlanViewModel(QObject):
    """
    VM for the free-text plan of the week on screen.
    Emits:
      - planLoaded(week_start_iso: str, content: str)
    """

    planLoaded = Signal(str, str)

    def __init__(self, service: SchedulingService):
        super().__init__()
        self._svc = service
        self._plan: Optional[WeeklyPlan] = None

    def load_for(self, day: date) -> WeeklyPlan:
        self._plan = self._svc.weekly_plan_for(day)
        self.planLoaded.emit(self._plan.week_start_date.isoformat(), self._plan.content)
        return self._plan

    def shift_weeks(self, weeks: int) -> WeeklyPlan:
        base = self._plan.week_start_date if self._plan else week_start_for(date.today())
        return self.load_for(base + timedelta(weeks=weeks))

    def save(self, content: str) -> WeeklyPlan:
        if self._plan is None:
            raise ValueError("WeeklyPlanViewModel has no week loaded.")
        self._plan = self._svc.save_weekly_plan(self._plan.week_start_date, content)
        return self._plan
