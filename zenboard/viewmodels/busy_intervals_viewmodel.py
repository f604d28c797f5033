# Rev 0.3.0
from __future__ import annotations

from datetime import date, tzinfo
from typing import List, Optional, Sequence

from PySide6.QtCore import QObject, QTimer, Signal

from ..models.entities import BusyInterval, Project
from ..services.calendar_feed import CalendarFeed, DayLoad, day_load
from ..utils.logging_setup import get_logger

log = get_logger("busy_vm")


class BusyIntervalsViewModel(QObject):
    """
    Polls the external calendar feed on a fixed interval and keeps the last
    good result. Feed failures never clear what is already shown.
    Emits:
      - intervalsLoaded(intervals: list[BusyInterval])
      - feedFailed(message: str)
    """

    intervalsLoaded = Signal(list)
    feedFailed = Signal(str)

    def __init__(self, feed: CalendarFeed, poll_interval_s: int = 60):
        super().__init__()
        self._feed = feed
        self._intervals: List[BusyInterval] = []
        self._timer = QTimer(self)
        self._timer.setInterval(poll_interval_s * 1000)
        self._timer.timeout.connect(self.refresh)

    def start(self) -> None:
        self.refresh()
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def intervals(self) -> List[BusyInterval]:
        return list(self._intervals)

    def refresh(self) -> None:
        try:
            intervals = self._feed.list_busy_intervals()
        except Exception as exc:  # external source: network, parse, auth...
            log.warning("Calendar feed refresh failed: %s", exc)
            self.feedFailed.emit(str(exc))
            return
        self._intervals = list(intervals)
        log.debug("Calendar feed: %d busy intervals", len(self._intervals))
        self.intervalsLoaded.emit(self._intervals)

    def day_loads(self, days: Sequence[date], projects: Sequence[Project], *,
                  tz: Optional[tzinfo] = None) -> List[DayLoad]:
        return [day_load(d, projects, self._intervals, tz=tz) for d in days]
