# File: zenboard/tools/migrate.py
# Usage examples:
#   python -m zenboard.tools.migrate up
#   python -m zenboard.tools.migrate status
#   python -m zenboard.tools.migrate rebuild
#   python -m zenboard.tools.migrate verify --db /path/to/zenboard.db
#
# Notes:
# - DB path defaults to env ZENBOARD_DB or $XDG_DATA_HOME/zenboard/zenboard.db
# - Applies zenboard/data/migrations/*.sql in lexicographic order
# - Records applied migrations (name + sha256) in schema_migrations
# - Warns when an applied file was edited afterwards (--strict makes it fatal)

from __future__ import annotations

import argparse
import hashlib
import sqlite3
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Tuple

from ..utils.paths import MIGRATIONS_DIR, default_db_path

REQUIRED_TABLES = ["projects", "tasks", "subtasks", "weekly_plans", "schema_migrations"]
ORDERED_TABLES = ["projects", "tasks", "subtasks"]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def sha256_bytes(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.isolation_level = None  # we'll manage transactions
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA synchronous = NORMAL;")
    conn.execute("PRAGMA busy_timeout = 5000;")
    return conn


def exec_script(conn: sqlite3.Connection, sql_text: str) -> None:
    conn.execute("BEGIN;")
    try:
        conn.executescript(sql_text)
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK;")
        raise
    else:
        if conn.in_transaction:
            conn.execute("COMMIT;")


def ensure_migrations_table(conn: sqlite3.Connection) -> None:
    # Same table the app's Database opens; sha256 is added on first CLI use.
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_migrations (filename TEXT PRIMARY KEY, applied_at TEXT NOT NULL)"
    )
    cols = {r[1] for r in conn.execute("PRAGMA table_info(schema_migrations);").fetchall()}
    if "sha256" not in cols:
        conn.execute("ALTER TABLE schema_migrations ADD COLUMN sha256 TEXT;")


def get_applied(conn: sqlite3.Connection) -> dict[str, Tuple[Optional[str], str]]:
    cur = conn.execute("SELECT filename, sha256, applied_at FROM schema_migrations ORDER BY filename;")
    return {r[0]: (r[1], r[2]) for r in cur.fetchall()}


def list_migration_files(migrations_dir: Path) -> list[Path]:
    return sorted(Path(migrations_dir).glob("*.sql"))


def apply_migrations(conn: sqlite3.Connection, migrations: Iterable[Path], strict: bool = False) -> list[str]:
    ensure_migrations_table(conn)
    applied = get_applied(conn)
    applied_now: list[str] = []

    for path in migrations:
        name = path.name
        sql = path.read_text(encoding="utf-8")
        digest = sha256_bytes(sql.encode("utf-8"))

        if name in applied:
            recorded_hash, _when = applied[name]
            if recorded_hash is None:
                conn.execute("UPDATE schema_migrations SET sha256 = ? WHERE filename = ?;", (digest, name))
            elif recorded_hash != digest:
                msg = (
                    f"Hash changed for already applied migration {name}.\n"
                    f"    recorded={recorded_hash}\n"
                    f"    current ={digest}"
                )
                if strict:
                    raise RuntimeError(msg)
                print(f"WARNING: {msg}")
            continue

        print(f"-> Applying migration: {name}")
        exec_script(conn, sql)
        conn.execute(
            "INSERT INTO schema_migrations (filename, sha256, applied_at) VALUES (?, ?, ?);",
            (name, digest, utc_now_iso()),
        )
        applied_now.append(name)

    return applied_now


def cmd_status(db: Path, migrations_dir: Path) -> int:
    conn = connect(db)
    try:
        ensure_migrations_table(conn)
        applied = get_applied(conn)
        print(f"DB: {db}")
        print(f"Migrations dir: {migrations_dir}")
        print(f"Applied count: {len(applied)}")
        for name, (_h, when) in applied.items():
            print(f"  [x] {name}  ({when})")
        pending = [p.name for p in list_migration_files(migrations_dir) if p.name not in applied]
        print(f"Pending count: {len(pending)}")
        for name in pending:
            print(f"  [ ] {name}")
        return 0
    finally:
        conn.close()


def cmd_up(db: Path, migrations_dir: Path, strict: bool) -> int:
    conn = connect(db)
    try:
        pending = apply_migrations(conn, list_migration_files(migrations_dir), strict=strict)
        if pending:
            print("Database is up to date.")
        else:
            print("No changes. Database already up to date.")
        return 0
    finally:
        conn.close()


def cmd_rebuild(db: Path, migrations_dir: Path) -> int:
    if db.exists():
        print(f"Rebuilding: removing existing DB {db}")
        db.unlink()
        for suffix in ("-wal", "-shm"):
            side = db.with_name(db.name + suffix)
            if side.exists():
                side.unlink()
    conn = connect(db)
    try:
        apply_migrations(conn, list_migration_files(migrations_dir))
        print("Rebuild complete.")
        return 0
    finally:
        conn.close()


def cmd_verify(db: Path) -> int:
    conn = connect(db)
    try:
        cur = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%';")
        names = {r[0] for r in cur.fetchall()}
        missing = [t for t in REQUIRED_TABLES if t not in names]
        if missing:
            print("Missing tables:", ", ".join(missing))
            return 2

        for table in ORDERED_TABLES:
            cols = {r[1] for r in conn.execute(f"PRAGMA table_info({table});").fetchall()}
            if "order" not in cols:
                print(f"Table {table} has no order column")
                return 3

        (mode,) = conn.execute("PRAGMA journal_mode;").fetchone()
        if str(mode).lower() != "wal":
            print(f"journal_mode is not WAL (got {mode})")
            return 4

        (started,) = conn.execute("SELECT COUNT(*) FROM tasks WHERE tracking_state = 'started';").fetchone()
        if started > 1:
            print(f"{started} tasks are tracking at once")
            return 5

        print("Verification passed.")
        return 0
    finally:
        conn.close()


def parse_args(argv: list[str]) -> argparse.Namespace:
    default_db = default_db_path()
    p = argparse.ArgumentParser(prog="zenboard-migrate", description="SQLite migration runner for zenboard")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(sp: argparse.ArgumentParser):
        sp.add_argument("--db", type=Path, default=default_db, help=f"Path to SQLite DB (default: {default_db})")
        sp.add_argument("--migrations-dir", type=Path, default=MIGRATIONS_DIR,
                        help=f"Migrations directory (default: {MIGRATIONS_DIR})")

    s_up = sub.add_parser("up", help="Run pending migrations")
    add_common(s_up)
    s_up.add_argument("--strict", action="store_true", help="Fail when an applied migration was edited")

    s_rebuild = sub.add_parser("rebuild", help="Drop and recreate DB from migrations")
    add_common(s_rebuild)

    s_status = sub.add_parser("status", help="Show applied and pending migrations")
    add_common(s_status)

    s_verify = sub.add_parser("verify", help="Lightweight structural verification")
    s_verify.add_argument("--db", type=Path, default=default_db, help=f"Path to SQLite DB (default: {default_db})")

    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    ns = parse_args(sys.argv[1:] if argv is None else argv)
    if ns.cmd == "status":
        return cmd_status(ns.db, ns.migrations_dir)
    if ns.cmd == "up":
        return cmd_up(ns.db, ns.migrations_dir, ns.strict)
    if ns.cmd == "rebuild":
        return cmd_rebuild(ns.db, ns.migrations_dir)
    if ns.cmd == "verify":
        return cmd_verify(ns.db)
    raise SystemExit(1)


if __name__ == "__main__":
    raise SystemExit(main())
