# taskboard/service.py
"""Validation and orchestration between the HTTP layer and the task store."""

import logging
from typing import Optional

from fastapi import Request

from taskboard.errors import NotFoundError, ValidationError
from taskboard.models import Task, TaskPriority, User
from taskboard.store import TaskStore

logger = logging.getLogger(__name__)


def normalize_priority(value: Optional[str]) -> TaskPriority:
    """Map raw input to a priority, falling back to ``normal``."""
    if isinstance(value, TaskPriority):
        return value
    if isinstance(value, str):
        try:
            return TaskPriority(value.strip().lower())
        except ValueError:
            pass
    if value is not None:
        logger.debug("Unrecognized priority %r, defaulting to normal", value)
    return TaskPriority.normal


class TaskService:
    """Maps request payloads to store calls.

    Raises :class:`ValidationError` for bad input and :class:`NotFoundError`
    for unknown ids; the store itself only ever returns None/False.
    """

    def __init__(self, store: TaskStore) -> None:
        self.store = store

    def list_tasks(self) -> list[Task]:
        return self.store.list_all()

    def get_task(self, task_id: int) -> Task:
        task = self.store.get(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def submit_new_task(
        self,
        title: Optional[str],
        description: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> Task:
        """Create a task.

        The title is trimmed and must not be empty. Validation happens
        before the store is touched, so a rejected task never consumes an id.
        """
        if not isinstance(title, str) or not title.strip():
            logger.info("Rejected task with empty title")
            raise ValidationError("Task title is required")
        if description is not None and not isinstance(description, str):
            raise ValidationError("Task description must be text")

        task = self.store.create(
            title=title.strip(),
            description=description,
            priority=normalize_priority(priority),
        )
        logger.info("Created task %s (priority=%s)", task.id, task.priority.value)
        return task

    def set_completion(self, task_id: int, completed: bool) -> Task:
        if not isinstance(completed, bool):
            raise ValidationError("'completed' must be a boolean")
        task = self.store.update(task_id, completed)
        if task is None:
            logger.info("Completion change for missing task %s", task_id)
            raise NotFoundError(task_id)
        logger.info("Task %s completed=%s", task_id, task.completed)
        return task

    def remove_task(self, task_id: int) -> None:
        if not self.store.delete(task_id):
            logger.info("Delete of missing task %s", task_id)
            raise NotFoundError(task_id)
        logger.info("Deleted task %s", task_id)

    def register_user(self, username: str, password: str) -> User:
        if not username or not username.strip():
            raise ValidationError("Username is required")
        return self.store.create_user(username.strip(), password)


def get_service(request: Request) -> TaskService:
    """Return the service built at startup, for FastAPI dependency injection."""
    return request.app.state.task_service
