"""Storage engine: durable, concurrency-safe CRUD over the tasks table.

Each TaskStore is an explicit handle on one database file. Every public
operation runs in its own transaction; writes take the SQLite write lock with
BEGIN IMMEDIATE and retry with bounded backoff while another process holds it.
"""

import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TypeVar

from taskman.errors import IntegrityError, NotFoundError, ValidationError
from taskman.lib import store
from taskman.models import Task

logger = logging.getLogger(__name__)

T = TypeVar("T")

TASK_COLUMNS = {"id", "description", "completed", "created_at", "updated_at"}
TASK_INDEX = "idx_tasks_completed"
_SELECT = "SELECT id, description, completed, created_at, updated_at FROM tasks"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _advance(previous: str) -> str:
    """Current timestamp, forced strictly past previous."""
    now = _now()
    if now > previous:
        return now
    bumped = datetime.fromisoformat(previous) + timedelta(microseconds=1)
    return bumped.isoformat(timespec="microseconds")


def _begin_snapshot(conn: sqlite3.Connection) -> None:
    # First read fixes the WAL snapshot.
    conn.execute("BEGIN")
    try:
        conn.execute("SELECT 1 FROM tasks LIMIT 1").fetchall()
    except BaseException:
        conn.execute("ROLLBACK")
        raise


def _row_to_task(row: store.Row) -> Task:
    return Task(
        id=row["id"],
        description=row["description"],
        completed=bool(row["completed"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def clean_description(description: str | None) -> str:
    """Strip description, raising ValidationError if nothing is left."""
    if description is None or not isinstance(description, str) or not description.strip():
        raise ValidationError("Task description cannot be empty")
    return description.strip()


def check_id(task_id: int) -> int:
    """Task ids are positive integers."""
    if isinstance(task_id, bool) or not isinstance(task_id, int) or task_id < 1:
        raise ValidationError(f"Invalid task id: {task_id!r} (must be a positive integer)")
    return task_id


class TaskStore:
    """Handle on a single tasks database file.

    Construct one per process (or per test) with the path to use; nothing is
    shared through module state. Call initialize() before any other operation.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        lock_timeout: float = 5.0,
        retry_delay: float = 0.01,
        retry_max_delay: float = 0.25,
    ):
        self.db_path = Path(db_path)
        self.lock_timeout = lock_timeout
        self.retry_delay = retry_delay
        self.retry_max_delay = retry_max_delay
        self._conn: sqlite3.Connection | None = None
        self._broken: str | None = None

    @classmethod
    def from_settings(cls, settings) -> "TaskStore":
        return cls(
            settings.db_path,
            lock_timeout=settings.lock_timeout,
            retry_delay=settings.retry_delay,
            retry_max_delay=settings.retry_max_delay,
        )

    def __enter__(self) -> "TaskStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ---- plumbing ----

    def _retry(self, op: Callable[[], T]) -> T:
        return store.retry_on_lock(
            op,
            timeout=self.lock_timeout,
            delay=self.retry_delay,
            max_delay=self.retry_max_delay,
        )

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """Translate structural SQLite failures into IntegrityError and poison the handle."""
        if self._broken:
            raise IntegrityError(f"{self.db_path}: {self._broken}")
        try:
            yield
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Rejected by schema constraint: {e}") from e
        except sqlite3.OperationalError:
            raise
        except sqlite3.DatabaseError as e:
            self._poison(str(e))
            raise IntegrityError(f"{self.db_path}: {e}") from e

    def _poison(self, reason: str) -> None:
        logger.error(f"Database {self.db_path} is corrupt: {reason}")
        self._broken = reason
        self.close()

    def _connection(self) -> sqlite3.Connection:
        # Called inside a retried attempt; a locked connect is retried with it.
        if self._conn is None:
            self._conn = store.connect(self.db_path)
        return self._conn

    def _write(self, op: Callable[[sqlite3.Connection], T]) -> T:
        def attempt() -> T:
            conn = self._connection()
            with store.write_transaction(conn):
                return op(conn)

        with self._guard():
            return self._retry(attempt)

    def _read(self, op: Callable[[sqlite3.Connection], T]) -> T:
        def attempt() -> T:
            conn = self._connection()
            with store.read_transaction(conn):
                return op(conn)

        with self._guard():
            return self._retry(attempt)

    # ---- lifecycle ----

    def initialize(self) -> "TaskStore":
        """Create the file and schema if absent, then verify integrity. Idempotent."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        statements = store.load_schema()

        def schema_ready(conn: sqlite3.Connection) -> bool:
            existing = store.table_columns(conn, "tasks")
            if existing and TASK_COLUMNS - existing:
                missing = ", ".join(sorted(TASK_COLUMNS - existing))
                raise IntegrityError(f"{self.db_path}: tasks table missing columns: {missing}")
            return bool(existing) and store.index_exists(conn, TASK_INDEX)

        def create_schema(conn: sqlite3.Connection) -> None:
            # Another process may have created it since the read.
            if schema_ready(conn):
                return
            for stmt in statements:
                conn.execute(stmt)

        # Write lock only when the schema is incomplete.
        try:
            if not self._read(schema_ready):
                self._write(create_schema)
        except IntegrityError as e:
            if not self._broken:
                self._poison(str(e))
            raise
        self.check_integrity()
        logger.debug(f"TaskStore ready db={self.db_path}")
        return self

    def check_integrity(self) -> None:
        """Raise IntegrityError if the file is corrupt or the tasks table is malformed."""

        def check(conn: sqlite3.Connection) -> list[str]:
            problems = store.integrity_problems(conn)
            missing = store.missing_columns(conn, "tasks", TASK_COLUMNS)
            if missing:
                problems.append(f"tasks table missing columns: {', '.join(sorted(missing))}")
            return problems

        problems = self._read(check)
        if problems:
            self._poison("; ".join(problems))
            raise IntegrityError(f"{self.db_path}: {'; '.join(problems)}")

    # ---- CRUD ----

    def create(self, description: str) -> Task:
        text = clean_description(description)
        now = _now()

        def insert(conn: sqlite3.Connection) -> Task:
            cursor = conn.execute(
                "INSERT INTO tasks (description, completed, created_at, updated_at) VALUES (?, 0, ?, ?)",
                (text, now, now),
            )
            return Task(
                id=cursor.lastrowid,
                description=text,
                completed=False,
                created_at=now,
                updated_at=now,
            )

        task = self._write(insert)
        logger.debug(f"Task created id={task.id}")
        return task

    def read(self, task_id: int) -> Task:
        check_id(task_id)

        def fetch(conn: sqlite3.Connection) -> Task:
            row = conn.execute(f"{_SELECT} WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                raise NotFoundError(task_id)
            return _row_to_task(row)

        return self._read(fetch)

    def read_all(self, include_completed: bool = False) -> Iterator[Task]:
        """Yield tasks in ascending id order, open tasks only unless include_completed.

        Single pass: call again to rescan. The scan uses its own connection and
        snapshot, released when the iterator is exhausted or closed.
        """
        query = _SELECT if include_completed else f"{_SELECT} WHERE completed = 0"
        query += " ORDER BY id ASC"

        with self._guard():
            conn = self._retry(lambda: store.connect(self.db_path))
        try:
            with self._guard():
                self._retry(lambda: _begin_snapshot(conn))
                for row in conn.execute(query):
                    yield _row_to_task(row)
        finally:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            conn.close()

    def complete(self, task_id: int) -> Task:
        """Mark completed. Already-completed tasks are returned unchanged."""
        check_id(task_id)

        def mark(conn: sqlite3.Connection) -> Task:
            row = conn.execute(f"{_SELECT} WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                raise NotFoundError(task_id)
            task = _row_to_task(row)
            if task.completed:
                return task
            task.completed = True
            task.updated_at = _advance(task.updated_at)
            conn.execute(
                "UPDATE tasks SET completed = 1, updated_at = ? WHERE id = ?",
                (task.updated_at, task_id),
            )
            logger.debug(f"Task completed id={task_id}")
            return task

        return self._write(mark)

    def update(self, task_id: int, description: str) -> Task:
        check_id(task_id)
        text = clean_description(description)

        def edit(conn: sqlite3.Connection) -> Task:
            row = conn.execute(f"{_SELECT} WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                raise NotFoundError(task_id)
            task = _row_to_task(row)
            task.description = text
            task.updated_at = _advance(task.updated_at)
            conn.execute(
                "UPDATE tasks SET description = ?, updated_at = ? WHERE id = ?",
                (text, task.updated_at, task_id),
            )
            return task

        task = self._write(edit)
        logger.debug(f"Task updated id={task_id}")
        return task

    def delete(self, task_id: int) -> None:
        check_id(task_id)

        def remove(conn: sqlite3.Connection) -> None:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(task_id)

        self._write(remove)
        logger.debug(f"Task deleted id={task_id}")

    def count(self) -> int:
        return self._read(lambda conn: store.table_count(conn, "tasks"))
