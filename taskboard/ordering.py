# taskboard/ordering.py
"""Sort policy for the task list.

The order is derived on every read and never stored:

1. pending tasks before completed tasks;
2. pending tasks: ``high`` priority first (``normal`` and ``low`` rank
   equal), then newest ``created_at`` first;
3. completed tasks: newest ``completed_at`` first.

Remaining ties go to the newer ``created_at``, then the higher id.
:class:`taskboard.database.DatabaseTaskStore` expresses the same order as
an SQL ``ORDER BY``; keep the two in step.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from taskboard.models import Task, TaskPriority


def _epoch(value: Optional[datetime]) -> float:
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def sort_key(task: Task) -> tuple:
    """Key for :func:`sorted` that implements the task list order."""
    if task.completed:
        rank = 1
    else:
        rank = 0 if task.priority == TaskPriority.high else 1
    return (
        int(task.completed),
        rank,
        -_epoch(task.completed_at),
        -_epoch(task.created_at),
        -(task.id or 0),
    )


def order_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Return the tasks as a new list in display order."""
    return sorted(tasks, key=sort_key)
