"""Task formatting for CLI display."""

from collections.abc import Iterable
from dataclasses import asdict

from taskman.models import Task


def format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    return f"[{task.id}] [{mark}] {task.description}"


def format_task_list(tasks: Iterable[Task]) -> str:
    """Format tasks for display, one line per task.

    Returns "No tasks" when the iterable is empty.
    """
    lines = [format_task(task) for task in tasks]
    if not lines:
        return "No tasks"
    return "\n".join(lines)


def format_task_detail(task: Task) -> str:
    """Format full task details."""
    lines = [
        f"ID: {task.id}",
        f"Status: {task.status}",
        f"Created: {task.created_at}",
        f"Updated: {task.updated_at}",
        f"\n{task.description}",
    ]
    return "\n".join(lines)


def task_to_dict(task: Task) -> dict:
    return asdict(task)
