import logging
import sqlite3

logger = logging.getLogger(__name__)


def integrity_problems(conn: sqlite3.Connection) -> list[str]:
    """Run PRAGMA integrity_check. Returns [] when the file is sound."""
    messages = [row[0] for row in conn.execute("PRAGMA integrity_check").fetchall()]
    if messages == ["ok"]:
        return []
    for msg in messages:
        logger.error(f"Integrity check: {msg}")
    return messages


def table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Column names of table, empty if the table does not exist."""
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


def missing_columns(conn: sqlite3.Connection, table: str, expected: set[str]) -> set[str]:
    """Expected columns absent from table (all of them if the table is missing)."""
    return expected - table_columns(conn, table)


def table_count(conn: sqlite3.Connection, table: str) -> int:
    """Get row count for table, returns 0 if table doesn't exist."""
    exists = conn.execute(
        "SELECT COUNT(*) FROM sqlite_master WHERE type='table' AND name=?",
        (table,),
    ).fetchone()[0]
    if not exists:
        return 0
    result = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
    return result[0] if result else 0


def index_exists(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='index' AND name=?",
        (name,),
    ).fetchone()
    return row is not None
