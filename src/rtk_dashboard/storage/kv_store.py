# Storage - Asynchronous Key-Value Store
#
# The secret store only sees an opaque async key-value interface with two
# visibility scopes:
#   sync  - credentials and preferences (roams across devices)
#   local - the installation salt (must never sync)
#
# Values are JSON-serialisable. No transactions: a multi-key set() is
# applied key by key.

import asyncio
import copy
import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Union, runtime_checkable

from ..core.db import session as db_session
from ..exceptions import StorageFailure

logger = logging.getLogger(__name__)

Keys = Union[str, Iterable[str]]


def _normalize_keys(keys: Keys) -> list:
    if isinstance(keys, str):
        return [keys]
    return list(keys)


@runtime_checkable
class KeyValueStore(Protocol):
    """Async key-value store contract."""

    async def get(self, keys: Keys) -> Dict[str, Any]:
        """Return a mapping of the requested keys that are present."""
        ...

    async def set(self, items: Mapping[str, Any]) -> None:
        ...

    async def remove(self, keys: Keys) -> None:
        ...


class InMemoryKeyValueStore:
    """Process-local store. Values are copied in and out, as a real
    transport would serialise them."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = {}
        if initial:
            for key, value in initial.items():
                self._data[key] = self._encode(value)

    @staticmethod
    def _encode(value: Any) -> Any:
        try:
            return json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            raise StorageFailure(f"Value is not serialisable: {type(value).__name__}") from e

    async def get(self, keys: Keys) -> Dict[str, Any]:
        return {
            key: copy.deepcopy(self._data[key])
            for key in _normalize_keys(keys)
            if key in self._data
        }

    async def set(self, items: Mapping[str, Any]) -> None:
        encoded = {key: self._encode(value) for key, value in items.items()}
        self._data.update(encoded)

    async def remove(self, keys: Keys) -> None:
        for key in _normalize_keys(keys):
            self._data.pop(key, None)

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the full contents (for inspection in tests and the CLI)."""
        return copy.deepcopy(self._data)


class SQLiteKeyValueStore:
    """SQLite-backed key/value scope.

    Args:
        db_path: Path to SQLite file. Parent directories are created.

    Each call opens a fresh connection inside a worker thread so the event
    loop never blocks on disk I/O.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self):
        try:
            with db_session(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
        except sqlite3.Error as e:
            raise StorageFailure(f"Failed to open key-value store: {e}") from e

    def _get_sync(self, keys: list) -> Dict[str, Any]:
        if not keys:
            return {}
        placeholders = ", ".join("?" for _ in keys)
        with db_session(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})",
                tuple(keys),
            ).fetchall()
        return {row["key"]: json.loads(row["value"]) for row in rows}

    def _set_sync(self, items: Dict[str, str]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with db_session(self.db_path) as conn:
            for key, value in items.items():
                conn.execute(
                    """INSERT INTO kv_store (key, value, updated_at)
                       VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                           value = excluded.value,
                           updated_at = excluded.updated_at""",
                    (key, value, now),
                )
                # one commit per key: a multi-key set is not atomic
                conn.commit()

    def _remove_sync(self, keys: list) -> None:
        with db_session(self.db_path) as conn:
            conn.executemany("DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys])

    async def get(self, keys: Keys) -> Dict[str, Any]:
        try:
            return await asyncio.to_thread(self._get_sync, _normalize_keys(keys))
        except (sqlite3.Error, ValueError) as e:
            raise StorageFailure(f"Key-value read failed: {e}") from e

    async def set(self, items: Mapping[str, Any]) -> None:
        try:
            encoded = {key: json.dumps(value) for key, value in items.items()}
        except (TypeError, ValueError) as e:
            raise StorageFailure("Value is not serialisable") from e
        try:
            await asyncio.to_thread(self._set_sync, encoded)
        except sqlite3.Error as e:
            raise StorageFailure(f"Key-value write failed: {e}") from e

    async def remove(self, keys: Keys) -> None:
        try:
            await asyncio.to_thread(self._remove_sync, _normalize_keys(keys))
        except sqlite3.Error as e:
            raise StorageFailure(f"Key-value remove failed: {e}") from e


@dataclass
class ExtensionStorage:
    """The two storage scopes consumed by the secret store."""
    sync: KeyValueStore
    local: KeyValueStore

    @classmethod
    def in_memory(cls) -> "ExtensionStorage":
        return cls(sync=InMemoryKeyValueStore(), local=InMemoryKeyValueStore())

    @classmethod
    def sqlite(cls, sync_path: Union[str, Path], local_path: Union[str, Path]) -> "ExtensionStorage":
        if Path(sync_path).resolve() == Path(local_path).resolve():
            raise ValueError("sync and local scopes must use separate databases")
        logger.debug("Opening key-value scopes at %s and %s", sync_path, local_path)
        return cls(sync=SQLiteKeyValueStore(sync_path), local=SQLiteKeyValueStore(local_path))
