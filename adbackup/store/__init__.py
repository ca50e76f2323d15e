"""Versioned backup store."""

from .blob_store import (
    PLACEHOLDER_CONTENT_HASH,
    STORE_SUFFIX,
    BlobRecord,
    BlobStore,
    placeholder_content_hash,
    sha256_content_hash,
)
from .connection import create_connection, transaction
from .migration import CURRENT_VERSION, MIGRATIONS, DatabaseMigrator

__all__ = [
    # blob_store
    "BlobRecord",
    "BlobStore",
    "PLACEHOLDER_CONTENT_HASH",
    "STORE_SUFFIX",
    "placeholder_content_hash",
    "sha256_content_hash",
    # connection
    "create_connection",
    "transaction",
    # migration
    "CURRENT_VERSION",
    "MIGRATIONS",
    "DatabaseMigrator",
]
