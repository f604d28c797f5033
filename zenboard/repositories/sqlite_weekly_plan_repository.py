# Rev 0.3.0
from __future__ import annotations

from datetime import date

from .base import NOW_SQL, SQLiteRepository
from ..models.entities import WeeklyPlan


class SQLiteWeeklyPlanRepository(SQLiteRepository):
    """
    One free-text plan per week, keyed by the ISO date of its Monday.
    Rows are created lazily on first read.
    """

    table = "weekly_plans"

    def get_or_create(self, week_start: date) -> WeeklyPlan:
        key = week_start.isoformat()
        with self._db.transaction():
            self._conn().execute(
                "INSERT OR IGNORE INTO weekly_plans(week_start_date, content) VALUES (?, '')", (key,)
            )
            row = self._fetch_one("SELECT * FROM weekly_plans WHERE week_start_date = ?", (key,))
        return WeeklyPlan.from_row(row)

    def upsert(self, week_start: date, content: str) -> WeeklyPlan:
        key = week_start.isoformat()
        with self._db.transaction():
            self._conn().execute(
                f"""
                INSERT INTO weekly_plans(week_start_date, content) VALUES (?, ?)
                ON CONFLICT(week_start_date) DO UPDATE SET
                    content = excluded.content,
                    updated_at_utc = {NOW_SQL}
                """,
                (key, content),
            )
            row = self._fetch_one("SELECT * FROM weekly_plans WHERE week_start_date = ?", (key,))
        return WeeklyPlan.from_row(row)
