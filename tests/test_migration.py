"""Tests for store schema migration."""

import sqlite3

import pytest

from adbackup.errors import MissingVersionRecord, NoMigrationFunction, UnknownDatabaseVersion
from adbackup.store.connection import create_connection
from adbackup.store.migration import (
    CURRENT_VERSION,
    DATA_TABLE,
    VERSION_TABLE,
    DatabaseMigrator,
    upgrade_to_one_from_none,
)


def _tables(conn):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name").fetchall()
    return [row[0] for row in rows]


@pytest.fixture
def conn(tmp_path):
    connection = create_connection(tmp_path / "migration.db")
    yield connection
    connection.close()


class TestDatabaseVersion:
    """Test reading the schema version."""
    
    def test_fresh_store_is_version_zero(self, conn):
        """A store without version table reports version 0."""
        assert DatabaseMigrator().get_database_version(conn) == 0
    
    def test_version_after_migration(self, conn):
        """The version table reports the current version once migrated."""
        migrator = DatabaseMigrator()
        migrator.migrate(conn, 0)
        
        assert migrator.get_database_version(conn) == CURRENT_VERSION
    
    def test_empty_version_table(self, conn):
        """An existing but empty version table is an error, not version 0."""
        conn.execute(f"CREATE TABLE {VERSION_TABLE} (version INTEGER NOT NULL)")
        
        with pytest.raises(MissingVersionRecord):
            DatabaseMigrator().get_database_version(conn)
    
    def test_read_failure_propagates(self, conn):
        """Failures other than a missing table are not treated as version 0."""
        conn.close()
        
        with pytest.raises(sqlite3.ProgrammingError):
            DatabaseMigrator().get_database_version(conn)


class TestDatabaseMigrator:
    """Test applying migration steps."""
    
    def test_migration_one_from_zero(self, conn):
        """Migrating from 0 creates both tables and seeds the version row."""
        assert DatabaseMigrator().migrate(conn, 0) == CURRENT_VERSION
        
        assert _tables(conn) == sorted([VERSION_TABLE, DATA_TABLE])
        assert conn.execute(f"SELECT COUNT(*) FROM {VERSION_TABLE}").fetchone()[0] == 1
        assert conn.execute(f"SELECT COUNT(*) FROM {DATA_TABLE}").fetchone()[0] == 0
    
    def test_migration_is_idempotent(self, conn):
        """Migrating an already current store changes nothing."""
        migrator = DatabaseMigrator()
        migrator.migrate(conn, 0)
        
        assert migrator.upgrade(conn) == CURRENT_VERSION
        assert migrator.migrate(conn, CURRENT_VERSION) == CURRENT_VERSION
        assert conn.execute(f"SELECT COUNT(*) FROM {VERSION_TABLE}").fetchone()[0] == 1
    
    def test_migration_unknown_version(self, conn):
        """A store newer than this build is rejected without changes."""
        with pytest.raises(UnknownDatabaseVersion) as exc_info:
            DatabaseMigrator().migrate(conn, CURRENT_VERSION + 1)
        
        assert str(exc_info.value) == f"unknown database version: {CURRENT_VERSION + 1}"
        assert exc_info.value.version == CURRENT_VERSION + 1
        assert _tables(conn) == []
    
    def test_missing_migration_function(self, conn):
        """A gap in the step registry is reported."""
        migrator = DatabaseMigrator(steps={}, current_version=1)
        
        with pytest.raises(NoMigrationFunction) as exc_info:
            migrator.migrate(conn, 0)
        
        assert exc_info.value.version == 0
    
    def test_steps_applied_in_order(self, conn):
        """Every step up to the current version runs and bumps the version."""
        def add_label_column(connection):
            connection.execute(f"ALTER TABLE {DATA_TABLE} ADD COLUMN label TEXT")
        
        migrator = DatabaseMigrator(
            steps={0: upgrade_to_one_from_none, 1: add_label_column},
            current_version=2
        )
        
        assert migrator.upgrade(conn) == 2
        assert migrator.get_database_version(conn) == 2
        
        columns = [row[1] for row in conn.execute(f"PRAGMA table_info({DATA_TABLE})")]
        assert "label" in columns
    
    def test_failed_step_is_rolled_back(self, conn):
        """A step that fails leaves no partial schema behind."""
        def broken_step(connection):
            connection.execute("CREATE TABLE half_done (a INTEGER)")
            raise RuntimeError("boom")
        
        migrator = DatabaseMigrator(steps={0: broken_step}, current_version=1)
        
        with pytest.raises(RuntimeError):
            migrator.migrate(conn, 0)
        
        assert _tables(conn) == []
