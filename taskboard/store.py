# taskboard/store.py
"""Task store interface and the in-memory implementation.

Both the in-memory store here and :class:`taskboard.database.DatabaseTaskStore`
satisfy :class:`TaskStore`, and both must produce the same ordering and
completion-timestamp behaviour.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Optional, Protocol, runtime_checkable

from taskboard.errors import ValidationError
from taskboard.models import Task, TaskPriority, User, utcnow
from taskboard.ordering import order_tasks

Clock = Callable[[], datetime]


@runtime_checkable
class TaskStore(Protocol):
    """Capability set shared by every task store backend."""

    def list_all(self) -> list[Task]:
        """Return every task in display order."""

    def get(self, task_id: int) -> Optional[Task]:
        """Return the task with this id, or None."""

    def create(
        self,
        title: str,
        description: Optional[str] = None,
        priority: TaskPriority = TaskPriority.normal,
    ) -> Task:
        """Store a new pending task and return it with its assigned id."""

    def update(self, task_id: int, completed: bool) -> Optional[Task]:
        """Set the completion flag; return None for an unknown id."""

    def delete(self, task_id: int) -> bool:
        """Remove a task; return whether one was removed."""

    def create_user(self, username: str, password: str) -> User:
        """Store a new user."""

    def get_user(self, user_id: int) -> Optional[User]:
        """Return the user with this id, or None."""

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Return the user with this username, or None."""


def apply_completion(task: Task, completed: bool, now: datetime) -> bool:
    """Apply a completion change to ``task`` in place.

    Returns False (and leaves the task untouched) when the flag already
    has the requested value.
    """
    if task.completed == completed:
        return False
    task.completed = completed
    task.completed_at = now if completed else None
    return True


def _clone(row):
    """Return a detached copy of a Task or User row."""
    return type(row)(**row.model_dump())


class InMemoryTaskStore:
    """Task store backed by an ordered dict keyed by id.

    Internal state:
        _tasks: OrderedDict mapping id -> Task, in creation order
        _next_id: next id to hand out; never decreases
        _lock: serializes mutations and snapshots

    Tasks are copied on the way in and out so callers cannot change
    stored state by mutating a returned object.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._tasks: OrderedDict[int, Task] = OrderedDict()
        self._users: dict[int, User] = {}
        self._next_id = 1
        self._next_user_id = 1
        self._clock = clock
        self._lock = threading.Lock()

    # -- tasks ---------------------------------------------------------------

    def list_all(self) -> list[Task]:
        with self._lock:
            snapshot = [_clone(task) for task in self._tasks.values()]
        return order_tasks(snapshot)

    def get(self, task_id: int) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            return _clone(task) if task is not None else None

    def create(
        self,
        title: str,
        description: Optional[str] = None,
        priority: TaskPriority = TaskPriority.normal,
    ) -> Task:
        with self._lock:
            task = Task(
                id=self._next_id,
                title=title,
                description=description,
                priority=priority,
                completed=False,
                created_at=self._clock(),
                completed_at=None,
            )
            self._tasks[task.id] = task
            self._next_id += 1
            return _clone(task)

    def update(self, task_id: int, completed: bool) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            apply_completion(task, completed, self._clock())
            return _clone(task)

    def delete(self, task_id: int) -> bool:
        with self._lock:
            return self._tasks.pop(task_id, None) is not None

    # -- users ---------------------------------------------------------------

    def create_user(self, username: str, password: str) -> User:
        with self._lock:
            if any(u.username == username for u in self._users.values()):
                raise ValidationError(f"Username already taken: {username}")
            user = User(id=self._next_user_id, username=username, password=password)
            self._users[user.id] = user
            self._next_user_id += 1
            return _clone(user)

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return _clone(user) if user is not None else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return _clone(user)
        return None
