"""Local key-value persistence for the library collections.

Each collection is stored as one JSON blob under a namespaced key, e.g.
``quotevault.saved_books``. Saving overwrites the previous blob; loading a
missing or unreadable blob yields an empty list.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

BOOKS_KEY = "saved_books"
QUOTES_KEY = "saved_quotes"
DEFAULT_NAMESPACE = "quotevault"


class PersistenceError(Exception):
    """Raised when a collection cannot be encoded or written to storage."""


def encode_collection(entities: Iterable[Any]) -> bytes:
    """Serialize entities (objects with ``to_dict`` or plain dicts) to a JSON blob."""
    records = [e.to_dict() if hasattr(e, "to_dict") else e for e in entities]
    try:
        return json.dumps(records, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Could not encode collection: {e}") from e


def decode_collection(blob: bytes) -> List[Dict[str, Any]]:
    data = json.loads(blob.decode("utf-8"))
    if not isinstance(data, list):
        raise ValueError("Stored collection is not a list")
    return [item for item in data if isinstance(item, dict)]


class _BlobStore:
    """Shared save/load logic; subclasses provide raw blob access."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.namespace = namespace

    def _make_key(self, collection_name: str) -> str:
        return f"{self.namespace}.{collection_name}"

    def get_raw(self, collection_name: str) -> Optional[bytes]:
        raise NotImplementedError

    def set_raw(self, collection_name: str, blob: bytes) -> None:
        raise NotImplementedError

    def save(self, collection_name: str, entities: Iterable[Any]) -> None:
        self.set_raw(collection_name, encode_collection(entities))

    def load(self, collection_name: str) -> List[Dict[str, Any]]:
        try:
            blob = self.get_raw(collection_name)
        except PersistenceError as e:
            logger.warning(f"Could not read {collection_name}: {e}")
            return []
        if blob is None:
            return []
        try:
            return decode_collection(blob)
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Discarding unreadable {collection_name} blob: {e}")
            return []


class KeyValueStore(_BlobStore):
    """SQLite file holding one row per collection blob."""

    def __init__(self, db_file: str, namespace: str = DEFAULT_NAMESPACE) -> None:
        super().__init__(namespace)
        self.db_file = db_file
        self.create_tables()

    def get_db_connection(self) -> sqlite3.Connection:
        """Open a connection to the SQLite file; callers close it."""
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        return conn

    def create_tables(self) -> None:
        """Create the key-value table if it does not exist."""
        try:
            conn = self.get_db_connection()
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value BLOB NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not open {self.db_file}: {e}") from e

    def get_raw(self, collection_name: str) -> Optional[bytes]:
        try:
            conn = self.get_db_connection()
            try:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?",
                    (self._make_key(collection_name),)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e
        return bytes(row["value"]) if row else None

    def set_raw(self, collection_name: str, blob: bytes) -> None:
        try:
            conn = self.get_db_connection()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)",
                    (self._make_key(collection_name), sqlite3.Binary(blob))
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not write {collection_name}: {e}") from e

    def delete(self, collection_name: str) -> bool:
        try:
            conn = self.get_db_connection()
            try:
                cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (self._make_key(collection_name),))
                conn.commit()
                return cursor.rowcount > 0
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not delete {collection_name}: {e}") from e

    def keys(self) -> List[str]:
        """Collection names stored under this namespace."""
        prefix = f"{self.namespace}."
        try:
            conn = self.get_db_connection()
            try:
                rows = conn.execute(
                    "SELECT key FROM kv_store WHERE key LIKE ? ORDER BY key", (f"{prefix}%",)
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not list keys: {e}") from e
        return [row["key"][len(prefix):] for row in rows]


class MemoryStore(_BlobStore):
    """In-process blob store with the same contract as ``KeyValueStore``."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE) -> None:
        super().__init__(namespace)
        self.blobs: Dict[str, bytes] = {}

    def get_raw(self, collection_name: str) -> Optional[bytes]:
        return self.blobs.get(self._make_key(collection_name))

    def set_raw(self, collection_name: str, blob: bytes) -> None:
        self.blobs[self._make_key(collection_name)] = blob

    def delete(self, collection_name: str) -> bool:
        return self.blobs.pop(self._make_key(collection_name), None) is not None

    def keys(self) -> List[str]:
        prefix = f"{self.namespace}."
        return sorted(k[len(prefix):] for k in self.blobs if k.startswith(prefix))
