# taskboard/main.py
"""FastAPI application for the taskboard backend."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskboard.database import (
    DATABASE_URL,
    DatabaseTaskStore,
    create_db_and_tables,
    make_engine,
)
from taskboard.routes.tasks import router as tasks_router
from taskboard.service import TaskService
from taskboard.store import InMemoryTaskStore, TaskStore

logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:5173,http://localhost:8000",
).split(",")
STORAGE_BACKEND = os.getenv("TASKBOARD_STORAGE", "database")
LOG_LEVEL = os.getenv("TASKBOARD_LOG_LEVEL", "INFO")

def resolve_log_level(name: str) -> int:
    """Map a level name like ``debug`` to its number; unknown names fall back to INFO."""
    level = logging.getLevelName(name.strip().upper())
    if isinstance(level, int):
        return level
    logger.warning("Unknown TASKBOARD_LOG_LEVEL %r, using INFO", name)
    return logging.INFO


logging.getLogger("taskboard").setLevel(resolve_log_level(LOG_LEVEL))


def build_store(backend: str = STORAGE_BACKEND) -> TaskStore:
    """Build the task store selected by ``TASKBOARD_STORAGE``."""
    if backend == "memory":
        return InMemoryTaskStore()
    if backend == "database":
        engine = make_engine(DATABASE_URL)
        create_db_and_tables(engine)
        return DatabaseTaskStore(engine)
    raise ValueError(f"Unknown TASKBOARD_STORAGE backend: {backend!r}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the store once at startup and share it through app.state."""
    app.state.task_service = TaskService(build_store(STORAGE_BACKEND))
    logger.info("Task storage backend: %s", STORAGE_BACKEND)
    yield


app = FastAPI(title="Taskboard", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type"],
)

app.include_router(tasks_router)


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "taskboard-api"}
