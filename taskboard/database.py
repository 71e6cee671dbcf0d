# taskboard/database.py
"""Database engine, schema migration, and the SQLModel-backed task store."""

import logging
import os
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, and_, case, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlmodel import Session, SQLModel, create_engine, select

from taskboard.errors import StorageUnavailable, ValidationError
from taskboard.models import Task, TaskPriority, User, utcnow
from taskboard.store import Clock, apply_completion

logger = logging.getLogger(__name__)

DB_PATH = Path(__file__).parent / "data.db"
DATABASE_URL = os.getenv("TASKBOARD_DATABASE_URL", f"sqlite:///{DB_PATH}")


def make_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine; SQLite connections may be shared across request threads."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


def _column_ddl_type(column: Column, engine: Engine) -> str:
    return column.type.compile(dialect=engine.dialect)


def _column_default(column: Column, engine: Engine) -> str:
    """DEFAULT clause for a NOT NULL column added to a table that has rows.

    Returns an empty string for nullable columns.
    """
    if column.nullable:
        return ""

    if column.default is not None and column.default.is_scalar:
        value = column.default.arg
        if isinstance(value, Enum):
            value = value.name
        if isinstance(value, bool):
            return f" DEFAULT {int(value)}"
        if isinstance(value, (int, float)):
            return f" DEFAULT {value}"
        escaped = str(value).replace("'", "''")
        return f" DEFAULT '{escaped}'"

    type_str = _column_ddl_type(column, engine).upper()
    if "INT" in type_str or "BOOL" in type_str:
        return " DEFAULT 0"
    if "FLOAT" in type_str or "REAL" in type_str or "NUMERIC" in type_str:
        return " DEFAULT 0.0"
    if "DATE" in type_str or "TIME" in type_str:
        return " DEFAULT '1970-01-01 00:00:00'"
    return " DEFAULT ''"


def migrate_schema(engine: Engine) -> list[str]:
    """Add model columns missing from existing tables.

    Completed tasks that gain a ``completed_at`` column are backfilled
    from ``created_at``. Removed or retyped columns are logged and left
    alone; nothing is dropped. Returns the ALTER statements that were
    executed.
    """
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    executed: list[str] = []

    for table_name, table in SQLModel.metadata.tables.items():
        if table_name not in existing_tables:
            continue

        db_columns = {col["name"]: col for col in inspector.get_columns(table_name)}
        model_columns = {col.name: col for col in table.columns}

        added = [name for name in model_columns if name not in db_columns]
        removed = sorted(set(db_columns) - set(model_columns))
        retyped = sorted(
            name
            for name in set(db_columns) & set(model_columns)
            if str(db_columns[name]["type"]).upper()
            != _column_ddl_type(model_columns[name], engine).upper()
        )

        if removed or retyped:
            logger.warning(
                "Schema drift on '%s' not migrated: removed=%s retyped=%s",
                table_name, removed, retyped,
            )

        if not added:
            continue

        logger.info("Adding columns to '%s': %s", table_name, added)
        with engine.begin() as conn:
            for col_name in added:
                col = model_columns[col_name]
                nullable = "" if col.nullable else " NOT NULL"
                stmt = (
                    f'ALTER TABLE "{table_name}" ADD COLUMN "{col_name}" '
                    f"{_column_ddl_type(col, engine)}{nullable}{_column_default(col, engine)}"
                )
                logger.info("  %s", stmt)
                conn.execute(text(stmt))
                executed.append(stmt)

            if table_name == Task.__table__.name and "completed_at" in added:
                # completed implies completed_at; created_at is the only bound known.
                backfilled = conn.execute(text(
                    f'UPDATE "{table_name}" SET completed_at = created_at '
                    "WHERE completed AND completed_at IS NULL"
                )).rowcount
                if backfilled:
                    logger.warning(
                        "Backfilled completed_at from created_at on %d completed task(s)",
                        backfilled,
                    )

    return executed


def create_db_and_tables(engine: Engine) -> None:
    """Create all tables from SQLModel metadata, then migrate schema diffs."""
    SQLModel.metadata.create_all(engine)
    migrate_schema(engine)


class DatabaseTaskStore:
    """Task store persisted through SQLModel.

    Each call runs in its own session. Mutations are serialized with a
    lock so concurrent toggles and deletes on one id cannot interleave.
    Driver connectivity failures surface as :class:`StorageUnavailable`.
    """

    def __init__(self, engine: Engine, clock: Clock = utcnow) -> None:
        self._engine = engine
        self._clock = clock
        self._lock = threading.Lock()

    @contextmanager
    def _session(self):
        try:
            with Session(self._engine) as session:
                yield session
        except (OperationalError, InterfaceError) as exc:
            logger.error("Task storage unavailable: %s", exc)
            raise StorageUnavailable(str(exc)) from exc

    # -- tasks ---------------------------------------------------------------

    def list_all(self) -> list[Task]:
        pending_rank = case(
            (and_(Task.completed.is_(False), Task.priority == TaskPriority.high), 0),
            else_=1,
        )
        statement = select(Task).order_by(
            Task.completed,
            pending_rank,
            Task.completed_at.desc(),
            Task.created_at.desc(),
            Task.id.desc(),
        )
        with self._session() as session:
            return list(session.exec(statement).all())

    def get(self, task_id: int) -> Optional[Task]:
        with self._session() as session:
            return session.get(Task, task_id)

    def create(
        self,
        title: str,
        description: Optional[str] = None,
        priority: TaskPriority = TaskPriority.normal,
    ) -> Task:
        task = Task(
            title=title,
            description=description,
            priority=priority,
            completed=False,
            completed_at=None,
        )
        with self._lock, self._session() as session:
            task.created_at = self._clock()
            session.add(task)
            session.commit()
            session.refresh(task)
            return task

    def update(self, task_id: int, completed: bool) -> Optional[Task]:
        with self._lock, self._session() as session:
            task = session.get(Task, task_id)
            if task is None:
                return None
            if apply_completion(task, completed, self._clock()):
                session.add(task)
                session.commit()
                session.refresh(task)
            return task

    def delete(self, task_id: int) -> bool:
        with self._lock, self._session() as session:
            task = session.get(Task, task_id)
            if task is None:
                return False
            session.delete(task)
            session.commit()
            return True

    # -- users ---------------------------------------------------------------

    def create_user(self, username: str, password: str) -> User:
        user = User(username=username, password=password)
        with self._lock, self._session() as session:
            session.add(user)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ValidationError(f"Username already taken: {username}") from exc
            session.refresh(user)
            return user

    def get_user(self, user_id: int) -> Optional[User]:
        with self._session() as session:
            return session.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._session() as session:
            return session.exec(select(User).where(User.username == username)).first()
