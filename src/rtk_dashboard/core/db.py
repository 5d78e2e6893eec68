# Core Module - SQLite Session Helper
#
# Each key-value scope is its own SQLite file. Every operation runs one
# short session from a worker thread:
#
#   open (WAL journal, busy_timeout) -> work -> commit or rollback -> close
#
# Closing the last connection checkpoints the WAL, so no -wal/-shm files
# outlive a session.

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

BUSY_TIMEOUT_MS = 5000


@contextmanager
def session(db_path: Union[str, Path], *, row_factory: bool = False) -> Iterator[sqlite3.Connection]:
    """Open a connection for one unit of work and always close it.

    Commits when the block exits normally, rolls back if it raises.
    """
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        if row_factory:
            conn.row_factory = sqlite3.Row
        with conn:
            yield conn
    finally:
        conn.close()
