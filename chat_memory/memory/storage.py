"""
Key-value persistence backends.

The memory store keeps its whole state under a handful of fixed keys.
Values are anything JSON can represent.
"""

import copy
import json
import logging
import os
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ..errors import StorageError


logger = logging.getLogger(__name__)


# Well-known keys
ENTRIES_KEY = "memory/entries"
ENABLED_KEY = "memory/enabled"
EMBED_PROVIDER_KEY = "memory/embed-provider"
EMBED_MODEL_KEY = "memory/embed-model"
# Reserved for a future non-embedding memory provider/model
PROVIDER_KEY = "memory/provider"
MODEL_KEY = "memory/model"


class KeyValueStore(ABC):
    """Abstract base class for durable key-value storage."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Read a value.

        Args:
            key: The key to read
            default: Returned when the key is absent

        Returns:
            A copy of the stored value, or ``default``
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Write a value, replacing any previous one.

        Args:
            key: The key to write
            value: JSON-serializable value
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """List stored keys."""
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """
    Process-local store.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        return True

    def keys(self) -> List[str]:
        return list(self._data)


class JSONFileKeyValueStore(KeyValueStore):
    """
    Store backed by a single JSON document.

    The file is read once on construction and rewritten atomically on
    every change.
    """

    DEFAULT_PATH = ".chat_memory/memory.json"

    def __init__(self, path: Optional[str] = None):
        """
        Initialize JSON file storage.

        Args:
            path: Path to the JSON file. If None, uses ~/.chat_memory/memory.json.
        """
        if path is None:
            path = str(Path.home() / self.DEFAULT_PATH)

        self.path = Path(path)
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read memory file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Memory file {self.path} does not contain a JSON object")
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent),
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self._flush()

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        self._flush()
        return True

    def keys(self) -> List[str]:
        return list(self._data)


class SQLiteKeyValueStore(KeyValueStore):
    """
    SQLite-based key-value storage.

    Each key is one row holding a JSON-encoded value.
    Uses one connection per thread.
    """

    # Default database location
    DEFAULT_DB_PATH = ".chat_memory/memory.db"

    # Schema version for migrations
    SCHEMA_VERSION = 1

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize SQLite storage.

        Args:
            db_path: Path to the database file. If None, uses default.
        """
        if db_path is None:
            db_path = str(Path.home() / self.DEFAULT_DB_PATH)

        self.db_path = db_path
        self._local = threading.local()

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @property
    def _conn(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "conn", None) is None:
            self._local.conn = sqlite3.connect(self.db_path)
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Context manager for database transactions."""
        cursor = self._conn.cursor()
        try:
            yield cursor
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        finally:
            cursor.close()

    def _ensure_schema(self):
        """Create the database schema if needed."""
        with self._transaction() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()
            current_version = row["version"] if row else 0

            if current_version < self.SCHEMA_VERSION:
                self._apply_migrations(cursor, current_version)

    def _apply_migrations(self, cursor: sqlite3.Cursor, from_version: int):
        """Apply schema migrations."""
        if from_version < 1:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            cursor.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,)
            )

    def get(self, key: str, default: Any = None) -> Any:
        with self._transaction() as cursor:
            cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()

        if row is None:
            return default

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt value stored under '{key}': {e}") from e

    def set(self, key: str, value: Any) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                (key, json.dumps(value, ensure_ascii=False)),
            )

    def delete(self, key: str) -> bool:
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def keys(self) -> List[str]:
        with self._transaction() as cursor:
            cursor.execute("SELECT key FROM kv_store ORDER BY key")
            return [row["key"] for row in cursor.fetchall()]

    def close(self):
        """Close the database connection."""
        if getattr(self._local, "conn", None) is not None:
            self._local.conn.close()
            self._local.conn = None
