# Rev 0.3.0

"""SQLite connection, transactions & migration runner (Rev 0.3.0)
- WAL mode, foreign_keys=ON, autocommit connection with explicit transactions
- transaction() is re-entrant: only the outermost block issues BEGIN/COMMIT
- Applies SQL files in zenboard/data/migrations in lexical order
- Tracks applied files in schema_migrations(filename TEXT PRIMARY KEY, applied_at UTC)
"""
from __future__ import annotations
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from datetime import datetime, timezone
from typing import Iterator


from ..models.errors import StoreUnavailable
from ..utils.logging_setup import get_logger
from ..utils.paths import MIGRATIONS_DIR, default_db_path


log = get_logger("db")


class Database:
    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else default_db_path()
        if str(self.path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA foreign_keys=ON;")
        self.conn.execute("PRAGMA busy_timeout=5000;")
        self.conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_migrations (filename TEXT PRIMARY KEY, applied_at TEXT NOT NULL)"
        )
        self._depth = 0
        log.info("SQLite open %s", self.path)


    def close(self) -> None:
        self.conn.close()


    def applied(self) -> set[str]:
        rows = self.conn.execute("SELECT filename FROM schema_migrations").fetchall()
        return {r[0] for r in rows}


    def run_migrations(self, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
        applied = self.applied()
        to_apply = [p for p in sorted(migrations_dir.glob("*.sql")) if p.name not in applied]
        for p in to_apply:
            sql = p.read_text(encoding="utf-8")
            self.conn.executescript(sql)
            self.conn.execute(
                "INSERT INTO schema_migrations(filename, applied_at) VALUES(?, ?)",
                (p.name, datetime.now(timezone.utc).isoformat()),
            )
            log.info("Applied migration %s", p.name)
        return [p.name for p in to_apply]


    @property
    def in_transaction(self) -> bool:
        return self._depth > 0


    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """All-or-nothing unit of work. sqlite failures surface as StoreUnavailable."""
        if self._depth:
            self._depth += 1
            try:
                yield self.conn
            finally:
                self._depth -= 1
            return

        try:
            # IMMEDIATE takes the write lock up front so read-then-write is serialized
            self.conn.execute("BEGIN IMMEDIATE;")
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"cannot begin transaction: {exc}") from exc

        self._depth = 1
        try:
            yield self.conn
        except sqlite3.Error as exc:
            self._rollback()
            log.error("Transaction rolled back: %s", exc)
            raise StoreUnavailable(str(exc)) from exc
        except BaseException:
            self._rollback()
            raise
        else:
            try:
                self.conn.execute("COMMIT;")
            except sqlite3.Error as exc:
                self._rollback()
                log.error("Commit failed: %s", exc)
                raise StoreUnavailable(f"commit failed: {exc}") from exc
        finally:
            self._depth = 0


    def _rollback(self) -> None:
        if self.conn.in_transaction:
            self.conn.execute("ROLLBACK;")
