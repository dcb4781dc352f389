"""Task service: command-level validation and policy over the storage engine."""

import logging
from collections.abc import Callable, Iterator

from taskman.engine import TaskStore, check_id, clean_description
from taskman.models import DeleteResult, Task

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]


def deny(action: str) -> bool:
    """Default confirmation: never approve destructive actions."""
    return False


class TaskService:
    """Validates commands and gates destructive ones before reaching the store.

    confirm is asked a yes/no question before every delete. A decline never
    touches the store and is reported as DeleteResult.CANCELLED.
    """

    def __init__(self, store: TaskStore, confirm: Confirm = deny):
        self.store = store
        self.confirm = confirm

    def add(self, description: str) -> Task:
        return self.store.create(clean_description(description))

    def get(self, task_id: int) -> Task:
        return self.store.read(check_id(task_id))

    def list(self, include_completed: bool = False) -> Iterator[Task]:
        return self.store.read_all(include_completed=include_completed)

    def done(self, task_id: int) -> Task:
        return self.store.complete(check_id(task_id))

    def edit(self, task_id: int, description: str) -> Task:
        check_id(task_id)
        return self.store.update(task_id, clean_description(description))

    def delete(self, task_id: int) -> DeleteResult:
        check_id(task_id)
        if not self.confirm(f"Delete task {task_id}?"):
            logger.info(f"Delete of task {task_id} cancelled")
            return DeleteResult.CANCELLED
        self.store.delete(task_id)
        return DeleteResult.DELETED

    def check(self) -> int:
        """Verify the database file and return the number of stored tasks."""
        self.store.check_integrity()
        return self.store.count()
