from dataclasses import dataclass
from enum import Enum


class DeleteResult(str, Enum):
    DELETED = "deleted"
    CANCELLED = "cancelled"


@dataclass
class Task:
    id: int
    description: str
    completed: bool = False
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def status(self) -> str:
        return "done" if self.completed else "open"
