"""Async SQLAlchemy engine wiring for the device-local SQLite store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Protocol

    class _DBAPICursor(Protocol):
        def execute(self, statement: str) -> object: ...

        def close(self) -> None: ...

    class _DBAPIConnection(Protocol):
        def cursor(self) -> _DBAPICursor: ...


SQLITE_PRAGMA_STATEMENTS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA busy_timeout=5000;",
)

KV_SCHEMA_STATEMENT = """
CREATE TABLE IF NOT EXISTS kv_entries (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value_json TEXT NOT NULL,
    updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (namespace, key)
)
"""

SessionFactory = async_sessionmaker[AsyncSession]


@dataclass(slots=True)
class StorageRuntime:
    """Engine and session factory for the local key-value database."""

    engine: AsyncEngine
    session_factory: SessionFactory


def build_sqlite_url(db_path: Path) -> str:
    """Build SQLAlchemy async SQLite URL from configured db path."""
    normalized_path = db_path.expanduser()
    return f"sqlite+aiosqlite:///{normalized_path.as_posix()}"


def create_session_factory(engine: AsyncEngine) -> SessionFactory:
    """Create typed async session factory for the supplied engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def create_storage_runtime(db_path: Path) -> StorageRuntime:
    """Create the engine and session factory for the given SQLite file."""
    db_path.expanduser().parent.mkdir(parents=True, exist_ok=True)
    engine = create_async_engine(
        build_sqlite_url(db_path),
        pool_pre_ping=True,
    )
    _install_sqlite_pragma_handler(engine)
    return StorageRuntime(
        engine=engine,
        session_factory=create_session_factory(engine),
    )


async def ensure_schema(runtime: StorageRuntime) -> None:
    """Create the key-value table when it does not exist yet."""
    async with runtime.engine.begin() as connection:
        _ = await connection.exec_driver_sql(KV_SCHEMA_STATEMENT)


async def dispose_storage_runtime(runtime: StorageRuntime) -> None:
    """Dispose the engine for fixture teardown and app shutdown."""
    await runtime.engine.dispose()


def _install_sqlite_pragma_handler(engine: AsyncEngine) -> None:
    """Apply SQLite PRAGMAs on each fresh connection."""

    def _set_sqlite_pragmas(
        dbapi_connection: object,
        connection_record: object,
    ) -> None:
        _ = connection_record
        connection = cast("_DBAPIConnection", dbapi_connection)
        cursor = connection.cursor()
        try:
            for statement in SQLITE_PRAGMA_STATEMENTS:
                _ = cursor.execute(statement)
        finally:
            cursor.close()

    event.listen(engine.sync_engine, "connect", _set_sqlite_pragmas)
