class TaskmanError(Exception):
    """Base exception for taskman domain errors."""

    exit_code = 1


class ValidationError(TaskmanError):
    """Raised when input is empty or malformed. Nothing is written."""

    exit_code = 1


class NotFoundError(TaskmanError):
    """Raised when a referenced task id does not exist."""

    exit_code = 3

    def __init__(self, task_id: int):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class LockTimeoutError(TaskmanError):
    """Raised when exclusive access could not be acquired within the retry budget."""

    exit_code = 4


class IntegrityError(TaskmanError):
    """Raised when the backing database file is structurally corrupt."""

    exit_code = 5
