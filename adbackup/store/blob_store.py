"""Versioned storage of backup containers.

Every device gets its own SQLite file. Each stored backup is a new row whose
version number is one more than the number of rows already present, so
versions run 1, 2, 3, ... without gaps and nothing is ever overwritten.
"""

import sqlite3
from pathlib import Path
from typing import Callable, List, Optional, Union

from pydantic import BaseModel, Field

from ..errors import EmptyStore, StoreNotFound, VersionNotFound
from ..util.hashing import calculate_bytes_hash
from ..util.logging import get_logger
from ..util.paths import ensure_directory, format_size, with_suffix_once
from ..util.timeutil import now_iso
from .connection import create_connection
from .migration import DATA_TABLE, DatabaseMigrator

logger = get_logger(__name__)

STORE_SUFFIX = ".db"

# Stands in for content addressing until incremental backups exist
PLACEHOLDER_CONTENT_HASH = "full-backup"

ContentHasher = Callable[[bytes], str]


def placeholder_content_hash(data: bytes) -> str:
    """Return the constant hash used for full backups."""
    return PLACEHOLDER_CONTENT_HASH


def sha256_content_hash(data: bytes) -> str:
    """Hash backup contents with SHA256."""
    return calculate_bytes_hash(data, "sha256")


class BlobRecord(BaseModel):
    """Metadata of one stored backup."""

    content_hash: str = Field(description="Content identity of the backup")
    version: int = Field(description="Version number within the store, starting at 1")
    size: int = Field(description="Size of the stored container in bytes")
    created_at: str = Field(description="Insertion timestamp")


class BlobStore:
    """An open, migrated backup store."""

    def __init__(
        self,
        path: Path,
        connection: sqlite3.Connection,
        content_hash: Optional[ContentHasher] = None
    ):
        self.path = path
        self.connection = connection
        self.content_hash = content_hash or placeholder_content_hash

    @staticmethod
    def path_for(name: Union[str, Path], directory: Optional[Path] = None) -> Path:
        """Location of the store called ``name``, with ``.db`` appended if missing."""
        path = with_suffix_once(name, STORE_SUFFIX)
        if directory is not None:
            path = Path(directory) / path
        return path

    @classmethod
    def open(
        cls,
        name: Union[str, Path],
        directory: Optional[Path] = None,
        content_hash: Optional[ContentHasher] = None,
        migrator: Optional[DatabaseMigrator] = None
    ) -> "BlobStore":
        """Open or create the store ``<name>.db`` and migrate its schema.

        Args:
            name: Store name, usually the device id; ``.db`` is appended if missing
            directory: Directory holding the store (relative names resolve against the CWD)
            content_hash: Hash function for stored backups
            migrator: Schema migrator to use
        """
        path = cls.path_for(name, directory)
        ensure_directory(path.parent)

        conn = create_connection(path)
        try:
            version = (migrator or DatabaseMigrator()).upgrade(conn)
        except BaseException:
            conn.close()
            raise

        logger.debug(f"Opened store {path} at schema version {version}")
        return cls(path, conn, content_hash)

    def __enter__(self) -> "BlobStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self.connection.close()

    def _ensure_exists(self) -> None:
        if not self.path.exists():
            raise StoreNotFound(self.path)

    def count(self) -> int:
        """Number of stored backups."""
        self._ensure_exists()
        return self.connection.execute(f"SELECT COUNT(*) FROM {DATA_TABLE}").fetchone()[0]

    def insert(self, input_file: Union[str, Path]) -> int:
        """Store the contents of ``input_file`` as a new version.

        Returns:
            The version number assigned to the backup

        Raises:
            StoreNotFound: If the store file has been removed
        """
        self._ensure_exists()

        data = Path(input_file).read_bytes()

        # Counting and inserting in one statement keeps the numbering gap-free
        cursor = self.connection.execute(
            f"""
            INSERT INTO {DATA_TABLE} (content_hash, version, data, created_at)
            VALUES (?, (SELECT COUNT(*) FROM {DATA_TABLE}) + 1, ?, ?)
            """,
            (self.content_hash(data), sqlite3.Binary(data), now_iso()),
        )
        version = self.connection.execute(
            f"SELECT version FROM {DATA_TABLE} WHERE rowid = ?", (cursor.lastrowid,)
        ).fetchone()[0]

        logger.info(f"Stored {input_file} ({format_size(len(data))}) as version {version}")
        return version

    def retrieve_latest(self, output_file: Union[str, Path]) -> int:
        """Write the most recent backup to ``output_file``.

        Returns:
            The version that was written

        Raises:
            StoreNotFound: If the store file has been removed
            EmptyStore: If no backup has been stored yet
        """
        self._ensure_exists()

        row = self.connection.execute(
            f"SELECT version, data FROM {DATA_TABLE} ORDER BY version DESC LIMIT 1"
        ).fetchone()
        if row is None:
            raise EmptyStore(self.path)

        self._write(row[1], Path(output_file))
        logger.info(f"Retrieved version {row[0]} into {output_file}")
        return row[0]

    def retrieve_version(self, version: int, output_file: Union[str, Path]) -> None:
        """Write a specific backup version to ``output_file``.

        Raises:
            StoreNotFound: If the store file has been removed
            VersionNotFound: If the version does not exist
        """
        self._ensure_exists()

        row = self.connection.execute(
            f"SELECT data FROM {DATA_TABLE} WHERE version = ?", (version,)
        ).fetchone()
        if row is None:
            raise VersionNotFound(version)

        self._write(row[0], Path(output_file))
        logger.info(f"Retrieved version {version} into {output_file}")

    def list_versions(self) -> List[BlobRecord]:
        """List stored backups, oldest first, without loading their data."""
        self._ensure_exists()

        rows = self.connection.execute(
            f"SELECT content_hash, version, length(data), created_at FROM {DATA_TABLE} ORDER BY version"
        ).fetchall()

        return [
            BlobRecord(content_hash=h, version=v, size=size or 0, created_at=str(created))
            for h, v, size, created in rows
        ]

    def _write(self, data: Optional[bytes], output_file: Path) -> None:
        ensure_directory(output_file.parent)
        output_file.write_bytes(bytes(data or b""))
