"""Store schema versioning and migration.

The schema version lives in a single-row table. Every known version below
``CURRENT_VERSION`` has exactly one registered upgrade step which brings the
schema to the next version; ``migrate`` applies them in order.
"""

import sqlite3
from typing import Callable, Dict, Optional

from ..errors import MissingVersionRecord, NoMigrationFunction, UnknownDatabaseVersion
from ..util.logging import get_logger
from .connection import transaction

logger = get_logger(__name__)

CURRENT_VERSION = 1

VERSION_TABLE = "adbackup_system"
DATA_TABLE = "device_data"

MigrationStep = Callable[[sqlite3.Connection], None]


def upgrade_to_one_from_none(conn: sqlite3.Connection) -> None:
    """Create the initial schema: version table and blob table."""
    conn.execute(f"CREATE TABLE {VERSION_TABLE} (version INTEGER NOT NULL)")
    conn.execute(f"INSERT INTO {VERSION_TABLE} (version) VALUES (1)")
    conn.execute(f"""
        CREATE TABLE {DATA_TABLE} (
            content_hash    TEXT NOT NULL,
            version         INTEGER NOT NULL,
            data            BLOB,
            created_at      TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY(content_hash, version)
        )
    """)


class DatabaseMigrator:
    """Brings a store's schema up to ``CURRENT_VERSION``."""
    
    def __init__(self, steps: Optional[Dict[int, MigrationStep]] = None, current_version: int = CURRENT_VERSION):
        """Initialize the migrator.
        
        Args:
            steps: Upgrade step per source version; defaults to the built-in registry
            current_version: Version this build expects
        """
        self.steps = dict(MIGRATIONS if steps is None else steps)
        self.current_version = current_version
    
    def get_database_version(self, conn: sqlite3.Connection) -> int:
        """Read the schema version of a store.
        
        Returns 0 only when the version table does not exist, i.e. for a
        fresh store. Any other failure propagates.
        
        Raises:
            MissingVersionRecord: If the version table exists but is empty
            sqlite3.Error: If the store cannot be read
        """
        exists = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (VERSION_TABLE,),
        ).fetchone()
        if exists is None:
            return 0
        
        row = conn.execute(f"SELECT version FROM {VERSION_TABLE}").fetchone()
        if row is None:
            raise MissingVersionRecord()
        
        return int(row[0])
    
    def migrate(self, conn: sqlite3.Connection, from_version: int) -> int:
        """Upgrade the schema from ``from_version`` to the current version.
        
        Each step runs in its own transaction together with the version
        bump, so an interrupted migration resumes at the failed step.
        
        Returns:
            The resulting schema version
            
        Raises:
            UnknownDatabaseVersion: If the store is newer than this build
            NoMigrationFunction: If a step is missing from the registry
        """
        if from_version > self.current_version:
            raise UnknownDatabaseVersion(from_version)
        
        version = from_version
        while version < self.current_version:
            step = self.steps.get(version)
            if step is None:
                raise NoMigrationFunction(version)
            
            logger.info(f"Migrating store schema from version {version} to {version + 1}")
            with transaction(conn):
                step(conn)
                conn.execute(f"UPDATE {VERSION_TABLE} SET version = ?", (version + 1,))
            
            version += 1
        
        return version
    
    def upgrade(self, conn: sqlite3.Connection) -> int:
        """Read the store's version and migrate it to the current one."""
        return self.migrate(conn, self.get_database_version(conn))


MIGRATIONS: Dict[int, MigrationStep] = {
    0: upgrade_to_one_from_none,
}
