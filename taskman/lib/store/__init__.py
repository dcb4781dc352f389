"""SQLite connection, transaction and health primitives."""

import sqlite3

from taskman.lib.store.health import (
    index_exists,
    integrity_problems,
    missing_columns,
    table_columns,
    table_count,
)
from taskman.lib.store.sqlite import (
    connect,
    is_locked,
    load_schema,
    read_transaction,
    retry_on_lock,
    write_transaction,
)

Row = sqlite3.Row

__all__ = [
    "Row",
    "connect",
    "index_exists",
    "integrity_problems",
    "is_locked",
    "load_schema",
    "missing_columns",
    "read_transaction",
    "retry_on_lock",
    "table_columns",
    "table_count",
    "write_transaction",
]
