# Core - SQLite Connection Helper
#
# The vault database is always opened through `connect()`:
#
#   - WAL journal mode (readers never see a half-committed write)
#   - busy_timeout to avoid SQLITE_BUSY when two processes share a vault
#   - synchronous=FULL so a committed catalog survives a power loss

import sqlite3
from pathlib import Path
from typing import Union


def connect(db_path: Union[str, Path], timeout: float = 10.0) -> sqlite3.Connection:
    """Open a SQLite connection with the vault PRAGMAs applied."""
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    conn.execute("PRAGMA synchronous=FULL")
    return conn
