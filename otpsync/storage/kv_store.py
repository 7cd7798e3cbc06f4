"""Namespaced key-value storage backed by the `kv_entries` table."""

from __future__ import annotations

import json
import math
from json import JSONDecodeError
from typing import TYPE_CHECKING, cast

from sqlalchemy import text

if TYPE_CHECKING:
    from collections.abc import Mapping

    from otpsync.storage.db import SessionFactory

type JSONScalar = str | int | float | bool | None
type JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

PUSH_NAMESPACE = "push"
AUTH_NAMESPACE = "auth"


class KeyValueStoreError(RuntimeError):
    """Base exception for key-value store operations."""


class KeyValueEncodeError(KeyValueStoreError):
    """Raised when a value cannot be encoded into JSON."""

    @classmethod
    def for_key(cls, namespace: str, key: str, *, details: str) -> KeyValueEncodeError:
        """Build deterministic encode error with key-localized context."""
        message = (
            f"Value for '{namespace}.{key}' is not JSON-serializable: {details}"
        )
        return cls(message)


class KeyValueDecodeError(KeyValueStoreError):
    """Raised when stored value_json cannot be decoded."""

    @classmethod
    def for_key(cls, namespace: str, key: str, *, details: str) -> KeyValueDecodeError:
        """Build deterministic decode error with key-localized context."""
        message = f"Stored value for '{namespace}.{key}' is not valid JSON: {details}"
        return cls(message)


class KeyValueStore:
    """Read and write JSON values under one namespace."""

    _namespace: str
    _session_factory: SessionFactory

    def __init__(self, *, namespace: str, session_factory: SessionFactory) -> None:
        """Bind the store to a namespace and session factory."""
        self._namespace = namespace
        self._session_factory = session_factory

    @property
    def namespace(self) -> str:
        """Return the namespace this store reads and writes."""
        return self._namespace

    async def get(self, key: str) -> JSONValue:
        """Return the stored value, or None when the key is absent."""
        statement = text(
            """
            SELECT value_json
            FROM kv_entries
            WHERE namespace = :namespace AND key = :key
            """,
        )
        async with self._session_factory() as session:
            result = await session.execute(
                statement,
                {"namespace": self._namespace, "key": key},
            )
            row = result.mappings().one_or_none()
        if row is None:
            return None
        row_map = cast("Mapping[str, object]", cast("object", row))
        return self._decode(key=key, value_json=row_map.get("value_json"))

    async def get_all(self) -> dict[str, JSONValue]:
        """Return every key in the namespace."""
        statement = text(
            """
            SELECT key, value_json
            FROM kv_entries
            WHERE namespace = :namespace
            ORDER BY key
            """,
        )
        async with self._session_factory() as session:
            result = await session.execute(statement, {"namespace": self._namespace})
            rows = result.mappings().all()
        values: dict[str, JSONValue] = {}
        for row in rows:
            row_map = cast("Mapping[str, object]", cast("object", row))
            key = str(row_map.get("key"))
            values[key] = self._decode(key=key, value_json=row_map.get("value_json"))
        return values

    async def put(self, key: str, value: JSONValue) -> None:
        """Store one value, replacing any previous value."""
        await self.put_many({key: value})

    async def put_many(self, values: Mapping[str, JSONValue]) -> None:
        """Store several values in one transaction."""
        params = [
            {
                "namespace": self._namespace,
                "key": key,
                "value_json": self._encode(key=key, value=value),
            }
            for key, value in values.items()
        ]
        if not params:
            return
        statement = text(
            """
            INSERT INTO kv_entries (namespace, key, value_json)
            VALUES (:namespace, :key, :value_json)
            ON CONFLICT (namespace, key) DO UPDATE
            SET value_json = excluded.value_json,
                updated_at = CURRENT_TIMESTAMP
            """,
        )
        async with self._session_factory() as session:
            _ = await session.execute(statement, params)
            await session.commit()

    async def clear(self) -> int:
        """Delete every key in the namespace and return the removed count."""
        statement = text(
            """
            DELETE FROM kv_entries
            WHERE namespace = :namespace
            RETURNING key
            """,
        )
        async with self._session_factory() as session:
            result = await session.execute(statement, {"namespace": self._namespace})
            removed = len(result.mappings().all())
            await session.commit()
        return removed

    def _encode(self, *, key: str, value: JSONValue) -> str:
        try:
            return json.dumps(value, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise KeyValueEncodeError.for_key(
                self._namespace,
                key,
                details=str(exc),
            ) from exc

    def _decode(self, *, key: str, value_json: object) -> JSONValue:
        if not isinstance(value_json, str):
            raise KeyValueDecodeError.for_key(
                self._namespace,
                key,
                details="missing `value_json` text.",
            )
        try:
            decoded = cast("object", json.loads(value_json))
        except JSONDecodeError as exc:
            raise KeyValueDecodeError.for_key(
                self._namespace,
                key,
                details=str(exc),
            ) from exc
        if not _is_json_value(decoded):
            raise KeyValueDecodeError.for_key(
                self._namespace,
                key,
                details="decoded payload contains non-finite number",
            )
        return cast("JSONValue", decoded)


def _is_json_value(value: object) -> bool:
    """Recursively verify decoded value belongs to JSON type domain."""
    if value is None or isinstance(value, (str, bool, int)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, list):
        items = cast("list[object]", value)
        return all(_is_json_value(item) for item in items)
    if isinstance(value, dict):
        entries = cast("dict[object, object]", value)
        return all(
            isinstance(key, str) and _is_json_value(val) for key, val in entries.items()
        )
    return False
