"""Tests for the database engine and session management module."""

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import inspect

import maintenance_tasks.core.database as db_module
from maintenance_tasks.core.database import (
    create_tables,
    dispose_engine,
    get_engine,
    get_session_factory,
    init_engine,
    session_scope,
)
from maintenance_tasks.models.task_run import TaskRun


@pytest.fixture(autouse=True)
def _reset_database_state() -> Iterator[None]:
    yield
    db_module._engine = None
    db_module._session_factory = None


class TestGetEngine:
    """Tests for get_engine."""

    def test_raises_when_not_initialized(self) -> None:
        # Save and clear module state
        original_engine = db_module._engine
        db_module._engine = None
        try:
            with pytest.raises(RuntimeError, match="Database engine not initialized"):
                get_engine()
        finally:
            db_module._engine = original_engine

    @pytest.mark.asyncio
    async def test_returns_engine_when_initialized(self) -> None:
        engine = init_engine("sqlite+aiosqlite:///:memory:")
        try:
            assert get_engine() is engine
        finally:
            await dispose_engine()


class TestGetSessionFactory:
    """Tests for get_session_factory."""

    def test_raises_when_not_initialized(self) -> None:
        original_factory = db_module._session_factory
        db_module._session_factory = None
        try:
            with pytest.raises(RuntimeError, match="Session factory not initialized"):
                get_session_factory()
        finally:
            db_module._session_factory = original_factory


class TestInitEngine:
    """Tests for init_engine."""

    def test_postgres_gets_pool_defaults(self) -> None:
        with patch("maintenance_tasks.core.database.create_async_engine", return_value=MagicMock()) as mock_create:
            init_engine("postgresql+asyncpg://localhost/db", echo=False)
            mock_create.assert_called_once_with(
                "postgresql+asyncpg://localhost/db", echo=False, pool_size=5, max_overflow=5
            )

    def test_sqlite_skips_pool_defaults(self) -> None:
        with patch("maintenance_tasks.core.database.create_async_engine", return_value=MagicMock()) as mock_create:
            init_engine("sqlite+aiosqlite:///:memory:")
            mock_create.assert_called_once_with("sqlite+aiosqlite:///:memory:")

    def test_init_engine_with_schema(self) -> None:
        """init_engine with schema sets the asyncpg search_path."""
        with patch("maintenance_tasks.core.database.create_async_engine", return_value=MagicMock()) as mock_create:
            init_engine("postgresql+asyncpg://localhost/db", schema="pr_42")
            _, kwargs = mock_create.call_args
            assert kwargs["connect_args"] == {"server_settings": {"search_path": "pr_42,public"}}

    def test_connect_args_must_be_dict(self) -> None:
        with pytest.raises(TypeError, match="connect_args"):
            init_engine("postgresql+asyncpg://localhost/db", schema="pr_42", connect_args="bad")


class TestCreateTables:
    """Tests for create_tables."""

    @pytest.mark.asyncio
    async def test_creates_task_runs_table(self) -> None:
        init_engine("sqlite+aiosqlite:///:memory:")
        try:
            await create_tables()
            async with get_engine().connect() as conn:
                tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
            assert "task_runs" in tables
        finally:
            await dispose_engine()


class TestSessionScope:
    """Tests for session_scope."""

    @pytest.mark.asyncio
    async def test_yields_session_and_disposes(self) -> None:
        async with session_scope("sqlite+aiosqlite:///:memory:") as session:
            session.add(TaskRun(task_name="Maintenance.BackfillTask"))
            await session.commit()
            assert db_module._engine is not None

        assert db_module._engine is None
        assert db_module._session_factory is None


class TestDisposeEngine:
    """Tests for dispose_engine."""

    @pytest.mark.asyncio
    async def test_disposes_engine(self) -> None:
        init_engine("sqlite+aiosqlite:///:memory:")
        await dispose_engine()
        assert db_module._engine is None
        assert db_module._session_factory is None

    @pytest.mark.asyncio
    async def test_dispose_when_no_engine(self) -> None:
        original = db_module._engine
        db_module._engine = None
        try:
            await dispose_engine()  # Should not raise
        finally:
            db_module._engine = original
