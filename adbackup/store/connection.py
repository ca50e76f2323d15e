"""SQLite connection handling for backup stores."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from ..util.logging import get_logger

logger = get_logger(__name__)


def create_connection(db_path: Union[str, Path]) -> sqlite3.Connection:
    """Open (or create) a store file with manual transaction control."""
    logger.debug(f"Opening store {db_path}")
    return sqlite3.connect(str(db_path), isolation_level=None)


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements in one IMMEDIATE transaction.
    
    Commits on success, rolls back and re-raises on any exception.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
