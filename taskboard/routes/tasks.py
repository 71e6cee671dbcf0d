# taskboard/routes/tasks.py
"""CRUD endpoints for tasks."""

from fastapi import APIRouter, Depends, HTTPException

from taskboard.errors import NotFoundError, StorageUnavailable, ValidationError
from taskboard.models import TaskCreate, TaskRead, TaskUpdate
from taskboard.service import TaskService, get_service

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail="Task not found")
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=503, detail="Task storage unavailable")


@router.get("/", response_model=list[TaskRead])
def list_tasks(service: TaskService = Depends(get_service)):
    """List all tasks: pending first (high priority, then newest), then completed."""
    try:
        return service.list_tasks()
    except StorageUnavailable as exc:
        raise _http_error(exc) from exc


@router.get("/{task_id}", response_model=TaskRead)
def get_task(task_id: int, service: TaskService = Depends(get_service)):
    """Get a single task by ID."""
    try:
        return service.get_task(task_id)
    except (NotFoundError, StorageUnavailable) as exc:
        raise _http_error(exc) from exc


@router.post("/", status_code=201, response_model=TaskRead)
def create_task(body: TaskCreate, service: TaskService = Depends(get_service)):
    """Create a new pending task."""
    try:
        return service.submit_new_task(body.title, body.description, body.priority)
    except (ValidationError, StorageUnavailable) as exc:
        raise _http_error(exc) from exc


@router.patch("/{task_id}", response_model=TaskRead)
def update_task(
    task_id: int, body: TaskUpdate, service: TaskService = Depends(get_service)
):
    """Mark a task completed or pending. Completion is the only mutable field."""
    try:
        return service.set_completion(task_id, body.completed)
    except (NotFoundError, ValidationError, StorageUnavailable) as exc:
        raise _http_error(exc) from exc


@router.delete("/{task_id}", status_code=204)
def delete_task(task_id: int, service: TaskService = Depends(get_service)) -> None:
    """Delete a task by ID."""
    try:
        service.remove_task(task_id)
    except (NotFoundError, StorageUnavailable) as exc:
        raise _http_error(exc) from exc
