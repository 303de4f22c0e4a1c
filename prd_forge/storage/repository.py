"""
Key/value store access.

Provides the string-keyed store that holds session and generation records,
a SQLite implementation, an in-memory one, and a wrapper that falls back to a
local store when the primary store is unavailable.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .db import get_connection
from .models import GENERATION_PREFIX, SESSION_PREFIX

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a store read, write, delete or list fails."""


@dataclass(frozen=True)
class StoredValue:
    """A value returned from the store together with its key."""
    key: str
    value: str


class KeyValueStore(ABC):
    """Namespaced, string-keyed store of serialized text values."""

    @abstractmethod
    def get(self, key: str) -> Optional[StoredValue]:
        """Return the stored value for key, or None when absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is not an error."""

    @abstractmethod
    def list(self, prefix: str = "") -> List[str]:
        """Return all keys starting with prefix, in insertion order."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store for tests and local fallback."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[StoredValue]:
        if key not in self._data:
            return None
        return StoredValue(key=key, value=self._data[key])

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def list(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]


class SqliteKeyValueStore(KeyValueStore):
    """Key/value store persisted in a single SQLite table.

    Every operation opens its own connection and wraps sqlite3 failures
    in StorageError.
    """

    def __init__(self, db_path: str = ".prd-forge.db"):
        """Initialize the store with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._initialized = False

    def initialize_schema(self) -> None:
        """Create the kv_store table if it doesn't exist."""
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        key TEXT NOT NULL UNIQUE,
                        value TEXT NOT NULL
                    )
                """)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize store {self.db_path}: {e}") from e
        self._initialized = True

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self.initialize_schema()
        return get_connection(self.db_path)

    def get(self, key: str) -> Optional[StoredValue]:
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT key, value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        if row is None:
            return None
        return StoredValue(key=row[0], value=row[1])

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute("""
                    INSERT INTO kv_store (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """, (key, value))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

    def list(self, prefix: str = "") -> List[str]:
        # Escape LIKE wildcards so prefixes are matched literally
        pattern = (
            prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        )
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    "SELECT key FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY id",
                    (pattern,)
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list keys with prefix {prefix!r}: {e}") from e
        return [row[0] for row in rows]


class FallbackKeyValueStore(KeyValueStore):
    """Store that uses a fallback whenever the primary store fails.

    Once the primary store raises StorageError, every later call goes to the
    fallback store for the lifetime of this object.
    """

    def __init__(self, primary: KeyValueStore, fallback: KeyValueStore):
        self.primary = primary
        self.fallback = fallback
        self.using_fallback = False

    def _call(self, operation: str, *args):
        if not self.using_fallback:
            try:
                return getattr(self.primary, operation)(*args)
            except StorageError as e:
                logger.warning("Primary store unavailable, using local store: %s", e)
                self.using_fallback = True
        return getattr(self.fallback, operation)(*args)

    def get(self, key: str) -> Optional[StoredValue]:
        return self._call("get", key)

    def set(self, key: str, value: str) -> None:
        self._call("set", key, value)

    def delete(self, key: str) -> None:
        self._call("delete", key)

    def list(self, prefix: str = "") -> List[str]:
        return self._call("list", prefix)


def load_values(store: KeyValueStore, prefix: str) -> List[str]:
    """Fetch the raw values of every key under prefix.

    Keys that disappear between listing and reading are skipped.
    Storage errors propagate to the caller.

    Args:
        store: Store to read from
        prefix: Key namespace, e.g. "session:"

    Returns:
        List of stored JSON strings in listing order
    """
    values = []
    for key in store.list(prefix):
        stored = store.get(key)
        if stored is not None:
            values.append(stored.value)
    return values


def reset_all_data(store: KeyValueStore) -> int:
    """Delete every session and generation record.

    Args:
        store: Shared analytics store

    Returns:
        Number of deleted keys
    """
    deleted = 0
    for prefix in (SESSION_PREFIX, GENERATION_PREFIX):
        for key in store.list(prefix):
            store.delete(key)
            deleted += 1
    logger.info("Deleted %d analytics records", deleted)
    return deleted


# Store instances by (database path, fallback path)
_stores: Dict[Tuple[str, Optional[str]], KeyValueStore] = {}


def get_store(db_path: str = ".prd-forge.db", fallback_path: Optional[str] = None) -> KeyValueStore:
    """Get the shared analytics store.

    One instance is kept per path pair. When the shared SQLite file is
    unusable, records go to the local SQLite file at fallback_path, or to
    memory when no fallback path is given.

    Args:
        db_path: Path to shared SQLite database file
        fallback_path: Path to the per-installation SQLite file

    Returns:
        Process-wide KeyValueStore instance
    """
    cache_key = (db_path, fallback_path)
    if cache_key not in _stores:
        if fallback_path is None:
            fallback: KeyValueStore = InMemoryKeyValueStore()
        else:
            fallback = SqliteKeyValueStore(fallback_path)
        _stores[cache_key] = FallbackKeyValueStore(
            primary=SqliteKeyValueStore(db_path),
            fallback=fallback
        )
    return _stores[cache_key]
