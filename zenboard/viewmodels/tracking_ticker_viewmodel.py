# Rev 0.3.0
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ..models.entities import Task
from ..utils.timeutil import utc_now


class TrackingTickerViewModel(QObject):
    """
    Live "time tracked" readout for one task.

    Pure read + derive on a QTimer: every tick recomputes stored minutes plus
    the fractional time since tracking_started_at. Nothing is ever written;
    only explicit tracking transitions persist accrual.

    Emits:
      - elapsedChanged(task_id: int, tracked_minutes: float, remaining_minutes: float)
    """

    elapsedChanged = Signal(int, float, float)

    def __init__(self, interval_ms: int = 500, clock: Callable[[], datetime] = utc_now):
        super().__init__()
        self._clock = clock
        self._task: Optional[Task] = None
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.tick)

    def set_task(self, task: Optional[Task]) -> None:
        """Bind to the last persisted snapshot of a task; ticking runs only while it is started."""
        self._task = task
        if task is not None and task.tracking_state == "started":
            self._timer.start()
        else:
            self._timer.stop()
        self.tick()

    def is_ticking(self) -> bool:
        return self._timer.isActive()

    def stop(self) -> None:
        self._timer.stop()

    def tick(self) -> None:
        task = self._task
        if task is None:
            return
        now = self._clock()
        self.elapsedChanged.emit(task.id, task.live_tracked_minutes(now), task.remaining_minutes(now))

    def progress_percent(self) -> float:
        task = self._task
        if task is None or task.duration_minutes <= 0:
            return 0.0
        return min(100.0, 100.0 * task.live_tracked_minutes(self._clock()) / task.duration_minutes)
