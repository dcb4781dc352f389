import logging
import sqlite3
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from taskman.errors import LockTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA_FILE = Path(__file__).with_name("schema.sql")


def load_schema() -> list[str]:
    """Read schema.sql and split it into individual statements."""
    sql = SCHEMA_FILE.read_text()
    return [stmt.strip() for stmt in sql.split(";") if stmt.strip()]


def is_locked(err: sqlite3.OperationalError) -> bool:
    msg = str(err).lower()
    return "locked" in msg or "busy" in msg


def retry_on_lock(
    op: Callable[[], T],
    *,
    timeout: float,
    delay: float,
    max_delay: float,
) -> T:
    """Run op, retrying with exponential backoff while the database is locked.

    Gives up with LockTimeoutError once the deadline passes. Any other error
    propagates on the first attempt.
    """
    deadline = time.monotonic() + timeout
    attempt = 0
    while True:
        try:
            return op()
        except sqlite3.OperationalError as err:
            if not is_locked(err):
                raise
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"Lock not acquired after {attempt + 1} attempts ({timeout:.2f}s)")
                raise LockTimeoutError(
                    f"Database is locked by another process; gave up after {timeout:.2f}s"
                ) from err
            pause = min(delay * (2**attempt), max_delay, remaining)
            attempt += 1
            logger.debug(f"Database locked, retry {attempt} in {pause:.3f}s")
            time.sleep(pause)


def connect(db_path: Path) -> sqlite3.Connection:
    """Connect to SQLite in WAL mode with durable commits.

    busy_timeout is 0: lock contention surfaces immediately as
    OperationalError so retry_on_lock owns the waiting.
    """
    start = time.perf_counter()

    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.isolation_level = None

    try:
        conn.execute("PRAGMA busy_timeout = 0")
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = FULL")
    except BaseException:
        conn.close()
        raise

    elapsed = time.perf_counter() - start
    if elapsed > 0.1:
        logger.warning(f"SQLite connection took {elapsed:.3f}s (possible lock contention)")

    return conn


def _finish(conn: sqlite3.Connection, ok: bool) -> None:
    if not conn.in_transaction:
        return
    if ok:
        conn.execute("COMMIT")
    else:
        conn.execute("ROLLBACK")


@contextmanager
def write_transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Exclusive write transaction: BEGIN IMMEDIATE, then COMMIT or ROLLBACK.

    The write lock is taken up front, so a concurrent writer fails fast with
    'database is locked' instead of deadlocking on upgrade.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
        _finish(conn, ok=True)
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise


@contextmanager
def read_transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Snapshot read: every statement inside sees the same committed state."""
    conn.execute("BEGIN")
    try:
        yield conn
    finally:
        _finish(conn, ok=False)
