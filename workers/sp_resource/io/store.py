"""
Store — persistent storage for encoded secure resources.

The resource only needs two calls:
    load(key) -> bytes | None
    save(key, data) -> bool

Two implementations:
  - MemoryStore: dict-backed, used by tests and ephemeral runs.
  - SqliteStore: one key/blob table in a SQLite file, the device's
    secure virtual database.
"""
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class SecureStore(Protocol):
    def load(self, key: str) -> Optional[bytes]:
        ...

    def save(self, key: str, data: bytes) -> bool:
        ...


class MemoryStore:
    """In-process store.  ``fail_writes`` makes every save report failure."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._records: Dict[str, bytes] = dict(initial or {})
        self.fail_writes = False
        self.save_count = 0

    def load(self, key: str) -> Optional[bytes]:
        return self._records.get(key)

    def save(self, key: str, data: bytes) -> bool:
        if self.fail_writes:
            logger.error("MemoryStore refusing write of %s", key)
            return False
        self._records[key] = bytes(data)
        self.save_count += 1
        return True


class SqliteStore:
    """SQLite-backed secure resource store."""

    def __init__(self, db_path: Path):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
        return self._local.conn

    @contextmanager
    def _cursor(self):
        """Context manager for database cursor with auto-commit."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def _init_db(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with self._cursor() as cursor:
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS secure_resources (
                        name TEXT PRIMARY KEY,
                        payload BLOB NOT NULL,
                        size_bytes INTEGER NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """)
        except sqlite3.Error as e:
            # load/save report the failure; startup falls back to the default
            logger.error("Failed to initialise %s: %s", self.db_path, e)

    def load(self, key: str) -> Optional[bytes]:
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    "SELECT payload FROM secure_resources WHERE name = ?",
                    (key,),
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to load %s from %s: %s", key, self.db_path, e)
            return None
        if row is None:
            return None
        return bytes(row[0])

    def save(self, key: str, data: bytes) -> bool:
        try:
            with self._cursor() as cursor:
                cursor.execute("""
                    INSERT INTO secure_resources (name, payload, size_bytes, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET
                        payload = excluded.payload,
                        size_bytes = excluded.size_bytes,
                        updated_at = excluded.updated_at
                """, (
                    key,
                    sqlite3.Binary(data),
                    len(data),
                    datetime.now(timezone.utc).isoformat(),
                ))
        except sqlite3.Error as e:
            logger.error("Failed to persist %s to %s: %s", key, self.db_path, e, exc_info=True)
            return False
        return True

    def close(self) -> None:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None
