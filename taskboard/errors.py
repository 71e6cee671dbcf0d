# taskboard/errors.py
"""Exceptions raised by the task store and service."""

from typing import Optional


class TaskboardError(Exception):
    """Base class for recoverable taskboard errors."""


class ValidationError(TaskboardError):
    """Input was missing or malformed (for example, an empty title)."""


class NotFoundError(TaskboardError):
    """An operation referenced a task id that does not exist."""

    def __init__(self, task_id: Optional[int] = None, message: Optional[str] = None) -> None:
        self.task_id = task_id
        if message is None:
            message = "Task not found" if task_id is None else f"Task {task_id} not found"
        super().__init__(message)


class StorageUnavailable(TaskboardError):
    """The durable backend could not be reached or failed mid-operation."""
