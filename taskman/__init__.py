"""Command-line task manager backed by a local SQLite file."""

from .engine import TaskStore
from .errors import IntegrityError, LockTimeoutError, NotFoundError, TaskmanError, ValidationError
from .models import DeleteResult, Task
from .service import TaskService

__version__ = "0.1.0"

__all__ = [
    "DeleteResult",
    "IntegrityError",
    "LockTimeoutError",
    "NotFoundError",
    "Task",
    "TaskService",
    "TaskStore",
    "TaskmanError",
    "ValidationError",
]
