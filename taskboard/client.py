# taskboard/client.py
"""HTTP client and list view helpers for the taskboard API.

The view splits the server's ordered list into the pending and completed
sections a task list screen shows, plus the counters shown above them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

import httpx

from taskboard.errors import NotFoundError, StorageUnavailable, ValidationError
from taskboard.models import TaskRead

logger = logging.getLogger(__name__)

TASKS_PATH = "/api/tasks/"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class TaskStats:
    total: int
    pending: int
    completed: int


@dataclass(frozen=True)
class TaskBoard:
    """Tasks split into the two sections of the list view."""
    pending: list[TaskRead] = field(default_factory=list)
    completed: list[TaskRead] = field(default_factory=list)

    @property
    def stats(self) -> TaskStats:
        return TaskStats(
            total=len(self.pending) + len(self.completed),
            pending=len(self.pending),
            completed=len(self.completed),
        )


def partition_tasks(tasks: Iterable[TaskRead]) -> TaskBoard:
    """Split tasks into pending and completed sections.

    Pending tasks keep the order they arrive in. Completed tasks are
    re-sorted newest ``completed_at`` first; any without a timestamp go last.
    """
    pending: list[TaskRead] = []
    completed: list[TaskRead] = []
    for task in tasks:
        (completed if task.completed else pending).append(task)
    completed.sort(key=lambda t: t.completed_at or _EPOCH, reverse=True)
    return TaskBoard(pending=pending, completed=completed)


class TaskClient:
    """Thin wrapper over the task endpoints.

    Takes any ``httpx.Client`` (including FastAPI's ``TestClient``) whose
    base URL points at the API.
    """

    def __init__(self, http: httpx.Client) -> None:
        self._http = http

    def _check(self, response: httpx.Response) -> httpx.Response:
        if response.is_success:
            return response
        detail = _detail(response)
        if response.status_code == 404:
            raise NotFoundError(message=detail)
        if response.status_code in (400, 422):
            raise ValidationError(detail)
        if response.status_code == 503:
            raise StorageUnavailable(detail)
        logger.warning("Unexpected API response %s: %s", response.status_code, detail)
        response.raise_for_status()
        return response

    def list_tasks(self) -> list[TaskRead]:
        response = self._check(self._http.get(TASKS_PATH))
        return [TaskRead.model_validate(item) for item in response.json()]

    def board(self) -> TaskBoard:
        return partition_tasks(self.list_tasks())

    def get_task(self, task_id: int) -> TaskRead:
        response = self._check(self._http.get(f"{TASKS_PATH}{task_id}"))
        return TaskRead.model_validate(response.json())

    def create_task(
        self,
        title: str,
        description: Optional[str] = None,
        priority: str = "normal",
    ) -> TaskRead:
        payload = {"title": title, "description": description, "priority": priority}
        response = self._check(self._http.post(TASKS_PATH, json=payload))
        return TaskRead.model_validate(response.json())

    def set_completion(self, task_id: int, completed: bool) -> TaskRead:
        response = self._check(
            self._http.patch(f"{TASKS_PATH}{task_id}", json={"completed": completed})
        )
        return TaskRead.model_validate(response.json())

    def toggle(self, task: TaskRead) -> TaskRead:
        """Flip a task between pending and completed."""
        return self.set_completion(task.id, not task.completed)

    def delete_task(self, task_id: int) -> None:
        self._check(self._http.delete(f"{TASKS_PATH}{task_id}"))


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return response.text
