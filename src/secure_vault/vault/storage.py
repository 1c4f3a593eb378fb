# Vault - Durable Key/Value Storage
#
# One SQLite table holds every small vault record under a fixed key:
#   vault_items  → catalog (list of VaultItem dicts)
#   vault_state  → lock-state record
#   vault_config → categories
#
# Each write is a single transaction, so a record is either fully replaced
# or left untouched.

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Union

from ..core.db import connect
from .exceptions import VaultIOError


ITEMS_KEY = "vault_items"
STATE_KEY = "vault_state"
CONFIG_KEY = "vault_config"

DB_FILENAME = "secure_vault.db"


class VaultStorage:
    """JSON values in a SQLite key/value table."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_database()
        except (OSError, sqlite3.Error) as e:
            raise VaultIOError(f"Cannot open vault storage at {self.db_path}", cause=e) from e

    @contextmanager
    def _connect(self):
        """Open a connection; commit on success, roll back on error."""
        conn = connect(self.db_path)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS vault_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded value stored under key, or default."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM vault_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise VaultIOError(f"Failed to read '{key}'", cause=e) from e

        if row is None:
            return default
        try:
            return json.loads(row[0])
        except ValueError as e:
            raise VaultIOError(f"Stored value for '{key}' is corrupted", cause=e) from e

    def set(self, key: str, value: Any) -> None:
        """Replace the value stored under key in one transaction."""
        encoded = json.dumps(value)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO vault_store (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, encoded, datetime.now(timezone.utc).isoformat()),
                )
        except sqlite3.Error as e:
            raise VaultIOError(f"Failed to write '{key}'", cause=e) from e
