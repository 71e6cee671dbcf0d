"""Tests for the durable store: schema migration, timestamps, and failure mapping."""

import logging
from datetime import datetime, timezone

import pytest
from sqlalchemy import inspect, text
from sqlmodel import create_engine
from sqlmodel.pool import StaticPool

from taskboard.database import (
    DatabaseTaskStore,
    create_db_and_tables,
    make_engine,
    migrate_schema,
)
from taskboard.errors import StorageUnavailable
from taskboard.main import build_store, resolve_log_level
from taskboard.models import TaskPriority
from taskboard.store import InMemoryTaskStore


@pytest.fixture(name="bare_engine")
def bare_engine_fixture():
    """In-memory SQLite with no tables created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


def _create_legacy_task_table(engine):
    with engine.begin() as conn:
        conn.execute(text(
            'CREATE TABLE "task" ('
            "id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT, "
            "title VARCHAR NOT NULL, "
            "description VARCHAR, "
            "completed BOOLEAN NOT NULL, "
            "created_at DATETIME NOT NULL)"
        ))
        conn.execute(text(
            "INSERT INTO task (title, description, completed, created_at) "
            "VALUES ('Legacy', NULL, 0, '2023-05-01 08:30:00')"
        ))


class TestMigrateSchema:
    def test_adds_missing_columns_and_keeps_rows(self, bare_engine):
        _create_legacy_task_table(bare_engine)
        create_db_and_tables(bare_engine)

        columns = {c["name"] for c in inspect(bare_engine).get_columns("task")}
        assert {"priority", "completed_at"} <= columns

        [task] = DatabaseTaskStore(bare_engine).list_all()
        assert task.title == "Legacy"
        assert task.priority == TaskPriority.normal
        assert task.completed_at is None
        assert task.created_at == datetime(2023, 5, 1, 8, 30, tzinfo=timezone.utc)

    def test_completed_legacy_rows_get_completed_at(self, bare_engine):
        """Completed rows from before completed_at existed keep the completion invariant."""
        _create_legacy_task_table(bare_engine)
        with bare_engine.begin() as conn:
            conn.execute(text(
                "INSERT INTO task (title, description, completed, created_at) "
                "VALUES ('Legacy done', NULL, 1, '2023-05-02 10:00:00')"
            ))
        create_db_and_tables(bare_engine)

        tasks = {t.title: t for t in DatabaseTaskStore(bare_engine).list_all()}
        assert tasks["Legacy done"].completed is True
        assert tasks["Legacy done"].completed_at == datetime(2023, 5, 2, 10, 0, tzinfo=timezone.utc)
        assert tasks["Legacy"].completed_at is None
        for task in tasks.values():
            assert task.completed == (task.completed_at is not None)

    def test_not_null_column_gets_scalar_default(self, bare_engine):
        _create_legacy_task_table(bare_engine)
        statements = migrate_schema(bare_engine)
        priority_stmt = next(s for s in statements if '"priority"' in s)
        assert "NOT NULL DEFAULT 'normal'" in priority_stmt
        completed_at_stmt = next(s for s in statements if '"completed_at"' in s)
        assert "NOT NULL" not in completed_at_stmt

    def test_up_to_date_schema_is_untouched(self, engine):
        assert migrate_schema(engine) == []

    def test_drift_is_logged_not_dropped(self, bare_engine, caplog):
        _create_legacy_task_table(bare_engine)
        with bare_engine.begin() as conn:
            conn.execute(text('ALTER TABLE "task" ADD COLUMN "assignee" VARCHAR'))
        with caplog.at_level(logging.WARNING, logger="taskboard.database"):
            create_db_and_tables(bare_engine)
        assert "assignee" in caplog.text
        columns = {c["name"] for c in inspect(bare_engine).get_columns("task")}
        assert "assignee" in columns

    def test_tables_missing_from_database_are_skipped(self, bare_engine):
        assert migrate_schema(bare_engine) == []


class TestDatabaseTaskStore:
    def test_timestamps_round_trip_as_utc(self, engine):
        stamp = datetime(2024, 6, 1, 14, 15, 16, 123456, tzinfo=timezone.utc)
        store = DatabaseTaskStore(engine, clock=lambda: stamp)
        task = store.create("Stamp")
        fetched = store.get(task.id)
        assert fetched.created_at == stamp
        assert fetched.created_at.tzinfo is not None
        assert store.update(task.id, True).completed_at == stamp

    def test_ids_not_reused_after_deleting_newest(self, engine):
        store = DatabaseTaskStore(engine)
        first = store.create("one")
        second = store.create("two")
        store.delete(second.id)
        third = store.create("three")
        assert third.id > second.id > first.id

    def test_returned_rows_are_detached(self, engine):
        store = DatabaseTaskStore(engine)
        task = store.create("Original")
        task.title = "Changed locally"
        assert store.get(task.id).title == "Original"

    def test_unreachable_database_raises_storage_unavailable(self, tmp_path):
        engine = make_engine(f"sqlite:///{tmp_path / 'no-such-dir' / 'tasks.db'}")
        store = DatabaseTaskStore(engine)
        with pytest.raises(StorageUnavailable):
            store.list_all()
        with pytest.raises(StorageUnavailable):
            store.create("never stored")
        with pytest.raises(StorageUnavailable):
            store.update(1, True)


class TestBuildStore:
    def test_database_backend_creates_tables(self, tmp_path, monkeypatch):
        url = f"sqlite:///{tmp_path / 'tasks.db'}"
        monkeypatch.setattr("taskboard.main.DATABASE_URL", url)
        store = build_store("database")
        assert isinstance(store, DatabaseTaskStore)
        assert store.create("persisted").id == 1
        assert (tmp_path / "tasks.db").exists()

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="redis"):
            build_store("redis")

    def test_memory_backend(self):
        """Test the memory backend gives a fresh, empty in-memory store."""
        store = build_store("memory")
        assert isinstance(store, InMemoryTaskStore)
        assert store.list_all() == []
        assert store.create("first").id == 1


class TestResolveLogLevel:
    @pytest.mark.parametrize(
        "name, expected",
        [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), ("info", logging.INFO)],
    )
    def test_known_levels(self, name, expected):
        """Test level names are matched case-insensitively."""
        assert resolve_log_level(name) == expected

    @pytest.mark.parametrize("name", ["verbose", "", "Level 5"])
    def test_unknown_level_falls_back_to_info(self, name, caplog):
        """Test an unknown level name is logged and replaced with INFO."""
        with caplog.at_level(logging.WARNING, logger="taskboard.main"):
            assert resolve_log_level(name) == logging.INFO
        assert "TASKBOARD_LOG_LEVEL" in caplog.text
