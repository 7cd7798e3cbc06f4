"""Storage module for otpsync."""

from .db import (
    SessionFactory,
    StorageRuntime,
    build_sqlite_url,
    create_session_factory,
    create_storage_runtime,
    dispose_storage_runtime,
    ensure_schema,
)
from .kv_store import (
    AUTH_NAMESPACE,
    PUSH_NAMESPACE,
    JSONValue,
    KeyValueDecodeError,
    KeyValueEncodeError,
    KeyValueStore,
    KeyValueStoreError,
)

__all__ = [
    "AUTH_NAMESPACE",
    "PUSH_NAMESPACE",
    "JSONValue",
    "KeyValueDecodeError",
    "KeyValueEncodeError",
    "KeyValueStore",
    "KeyValueStoreError",
    "SessionFactory",
    "StorageRuntime",
    "build_sqlite_url",
    "create_session_factory",
    "create_storage_runtime",
    "dispose_storage_runtime",
    "ensure_schema",
]
