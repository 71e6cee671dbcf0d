# taskboard/models.py
"""Task and user models for the taskboard API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import StrictBool
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime column that always round-trips as timezone-aware UTC.

    SQLite has no native timezone support and hands values back naive,
    so naive values read from the database are assumed to be UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class TaskPriority(str, Enum):
    low = "low"
    normal = "normal"
    high = "high"


class TaskBase(SQLModel):
    """Fields supplied by the caller at creation."""
    title: str
    description: Optional[str] = Field(default=None)
    priority: TaskPriority = Field(default=TaskPriority.normal)


class Task(TaskBase, table=True):
    """Task database table."""
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    completed: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class TaskRead(TaskBase):
    """Response shape for a task."""
    id: int
    completed: bool
    created_at: datetime
    completed_at: Optional[datetime] = None


class TaskCreate(SQLModel):
    """Payload for creating a task.

    Deliberately loose: the service trims and rejects the title and
    falls back to ``normal`` for a missing or unknown priority.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None


class TaskUpdate(SQLModel):
    """Payload for changing a task's completion flag."""
    completed: StrictBool


class User(SQLModel, table=True):
    """User table. Present for parity with the schema; tasks do not use it."""
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)
    password: str


class UserCreate(SQLModel):
    username: str
    password: str
