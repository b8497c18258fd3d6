"""Tests for the database migration system."""

import datetime as dt
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


class TestMigrationSystem:
    """Tests for the migration module."""

    @pytest.fixture
    def mock_cursor(self):
        cur = MagicMock()
        cur.fetchone = AsyncMock(return_value=(0,))
        return cur

    @pytest.fixture
    def mock_connection(self, mock_cursor):
        """Create a mock psycopg connection."""
        conn = MagicMock()
        conn.execute = AsyncMock(return_value=mock_cursor)
        tx = MagicMock()
        tx.__aenter__ = AsyncMock(return_value=None)
        tx.__aexit__ = AsyncMock(return_value=None)
        conn.transaction = MagicMock(return_value=tx)
        return conn

    @pytest.fixture
    def mock_get_connection(self, mock_connection):
        """Create a mock context manager for _get_connection."""
        cm = MagicMock()
        cm.__aenter__ = AsyncMock(return_value=mock_connection)
        cm.__aexit__ = AsyncMock(return_value=None)
        return cm

    @pytest.mark.asyncio
    async def test_get_current_version_creates_table(self, mock_get_connection, mock_connection):
        """Test that get_current_version creates the migrations table."""
        with patch("schedsync.db.migrations._get_connection", return_value=mock_get_connection):
            from schedsync.db.migrations import get_current_version

            version = await get_current_version()

            create_call = mock_connection.execute.call_args_list[0]
            assert "CREATE TABLE IF NOT EXISTS schema_migrations" in create_call[0][0]
            assert version == 0

    @pytest.mark.asyncio
    async def test_get_current_version_returns_max(self, mock_get_connection, mock_cursor):
        mock_cursor.fetchone = AsyncMock(return_value=(5,))

        with patch("schedsync.db.migrations._get_connection", return_value=mock_get_connection):
            from schedsync.db.migrations import get_current_version

            assert await get_current_version() == 5

    @pytest.mark.asyncio
    async def test_apply_migration_skips_if_already_applied(self, mock_get_connection, mock_cursor):
        mock_cursor.fetchone = AsyncMock(return_value=(5,))

        with patch("schedsync.db.migrations._get_connection", return_value=mock_get_connection):
            from schedsync.db.migrations import apply_migration

            assert await apply_migration(3, "SELECT 1;", "test") is False

    @pytest.mark.asyncio
    async def test_apply_migration_applies_new_migration(self, mock_get_connection, mock_connection, mock_cursor):
        mock_cursor.fetchone = AsyncMock(return_value=(2,))

        with patch("schedsync.db.migrations._get_connection", return_value=mock_get_connection):
            from schedsync.db.migrations import apply_migration

            result = await apply_migration(3, "CREATE TABLE test (id INT);", "test migration")

            assert result is True
            executed = [call[0][0] for call in mock_connection.execute.call_args_list]
            assert any("CREATE TABLE test" in sql for sql in executed)
            insert = mock_connection.execute.call_args_list[-1]
            assert "INSERT INTO schema_migrations" in insert[0][0]
            assert insert[0][1] == (3, "test migration")
            mock_connection.transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_pending_migrations_finds_sql_files(self, mock_get_connection):
        with patch("schedsync.db.migrations._get_connection", return_value=mock_get_connection):
            from schedsync.db.migrations import get_pending_migrations

            pending = await get_pending_migrations()

            assert [m["version"] for m in pending][:1] == [1]
            assert pending[0]["description"] == "initial"

    @pytest.mark.asyncio
    async def test_get_pending_migrations_excludes_applied(self, mock_get_connection, mock_cursor):
        mock_cursor.fetchone = AsyncMock(return_value=(1,))

        with patch("schedsync.db.migrations._get_connection", return_value=mock_get_connection):
            from schedsync.db.migrations import get_pending_migrations

            pending = await get_pending_migrations()
            assert 1 not in [m["version"] for m in pending]

    @pytest.mark.asyncio
    async def test_run_migrations_applies_pending(self, mock_get_connection):
        with patch("schedsync.db.migrations._get_connection", return_value=mock_get_connection):
            from schedsync.db.migrations import run_migrations

            assert await run_migrations() >= 1

    @pytest.mark.asyncio
    async def test_get_migration_history_returns_list(self, mock_get_connection, mock_cursor):
        mock_cursor.__aiter__.return_value = [
            (1, dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc), "initial"),
        ]

        with patch("schedsync.db.migrations._get_connection", return_value=mock_get_connection):
            from schedsync.db.migrations import get_migration_history

            history = await get_migration_history()

            assert history == [
                {"version": 1, "applied_at": "2024-01-01T00:00:00+00:00", "description": "initial"},
            ]


class TestDiscoverMigrations:
    def test_skips_badly_named_files(self, tmp_path):
        from schedsync.db.migrations import discover_migrations

        (tmp_path / "002_add_index.sql").write_text("SELECT 1;")
        (tmp_path / "001_initial.sql").write_text("SELECT 1;")
        (tmp_path / "notes.sql").write_text("SELECT 1;")

        found = discover_migrations(tmp_path)
        assert [(m["version"], m["description"]) for m in found] == [(1, "initial"), (2, "add_index")]

    def test_initial_migration_creates_tables(self):
        from schedsync.db.migrations import MIGRATIONS_DIR

        sql = (MIGRATIONS_DIR / "001_initial.sql").read_text()
        for table in ("schedule_events", "profiles", "availability"):
            assert f"CREATE TABLE IF NOT EXISTS {table}" in sql


class TestSchemaModule:
    """Tests for the schema module."""

    @pytest.mark.asyncio
    async def test_ensure_schema_runs_migrations(self):
        with patch("schedsync.db.schema.get_current_version", new_callable=AsyncMock) as mock_version, \
             patch("schedsync.db.schema.run_migrations", new_callable=AsyncMock) as mock_run:
            mock_version.return_value = 0
            mock_run.return_value = 1

            from schedsync.db.schema import _ensure_schema

            await _ensure_schema()

            mock_version.assert_called()
            mock_run.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_schema_info_returns_dict(self):
        with patch("schedsync.db.schema.get_current_version", new_callable=AsyncMock) as mock_version, \
             patch("schedsync.db.schema.get_migration_history", new_callable=AsyncMock) as mock_history:
            mock_version.return_value = 1
            mock_history.return_value = [{"version": 1}]

            from schedsync.db.schema import get_schema_info

            info = await get_schema_info()

            assert info["current_version"] == 1
            assert len(info["migration_history"]) == 1
