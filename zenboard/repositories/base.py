# Rev 0.3.0
from __future__ import annotations

import sqlite3
from typing import Any, Iterable, List, Mapping, Optional

from .db import Database

# Same textual shape as the schema defaults so rows compare lexically
NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')"


class SQLiteRepository:
    """Shared connection plumbing for the per-table repositories."""

    table: str = ""

    def __init__(self, db: Database):
        self._db = db

    def _conn(self) -> sqlite3.Connection:
        return self._db.conn

    def _fetch_one(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        return self._conn().execute(sql, tuple(params)).fetchone()

    def _fetch_all(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        return self._conn().execute(sql, tuple(params)).fetchall()

    def _next_order(self, where: str = "", params: Iterable[Any] = ()) -> int:
        sql = f'SELECT MAX("order") FROM {self.table}'
        if where:
            sql += f" WHERE {where}"
        row = self._fetch_one(sql, params)
        return 0 if row is None or row[0] is None else int(row[0]) + 1

    def _update_fields(self, entity_id: int, fields: Mapping[str, Any], *, touch: bool = False) -> bool:
        sets, params = [], []
        for col, value in fields.items():
            sets.append(f'"{col}" = ?')
            params.append(value)
        if touch:
            sets.append(f"updated_at_utc = {NOW_SQL}")
        if not sets:
            return False
        params.append(entity_id)
        cur = self._conn().execute(f"UPDATE {self.table} SET {', '.join(sets)} WHERE id = ?", params)
        return cur.rowcount > 0

    @staticmethod
    def _ids(rows: List[sqlite3.Row]) -> List[int]:
        return [int(r[0]) for r in rows]
