"""Backup module initialization."""

from .executor import CONTAINER_SUFFIX, BackupExecutor, BackupResult
from .options import BackupOptions

__all__ = [
    # executor
    "BackupExecutor",
    "BackupResult",
    "CONTAINER_SUFFIX",
    # options
    "BackupOptions",
]
