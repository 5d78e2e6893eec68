# Storage Module - Opaque async key-value scopes (sync + local)

from .kv_store import (
    ExtensionStorage,
    InMemoryKeyValueStore,
    KeyValueStore,
    SQLiteKeyValueStore,
)

__all__ = [
    "ExtensionStorage",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "SQLiteKeyValueStore",
]
