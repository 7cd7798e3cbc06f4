"""Shared pytest fixtures for local storage, auth and sync tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from otpsync.auth import PhoneAuthClient, SessionStore
from otpsync.push import PushTokenStore
from otpsync.storage import (
    AUTH_NAMESPACE,
    PUSH_NAMESPACE,
    KeyValueStore,
    StorageRuntime,
    create_storage_runtime,
    dispose_storage_runtime,
    ensure_schema,
)
from otpsync.tasks import BackgroundTasks
from tests.mocks.mock_phone_auth_provider import MockPhoneAuthProvider

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


@pytest.fixture
def sqlite_db_path(tmp_path: Path) -> Path:
    """Provide a per-test SQLite file path for storage tests."""
    return tmp_path / "otpsync-test.sqlite3"


@pytest.fixture
async def storage_runtime(sqlite_db_path: Path) -> AsyncIterator[StorageRuntime]:
    """Create an isolated key-value database with its schema applied."""
    runtime = create_storage_runtime(sqlite_db_path)
    await ensure_schema(runtime)
    try:
        yield runtime
    finally:
        await dispose_storage_runtime(runtime)


@pytest.fixture
def auth_store(storage_runtime: StorageRuntime) -> KeyValueStore:
    """Key-value store bound to the `auth` namespace."""
    return KeyValueStore(
        namespace=AUTH_NAMESPACE,
        session_factory=storage_runtime.session_factory,
    )


@pytest.fixture
def push_store(storage_runtime: StorageRuntime) -> KeyValueStore:
    """Key-value store bound to the `push` namespace."""
    return KeyValueStore(
        namespace=PUSH_NAMESPACE,
        session_factory=storage_runtime.session_factory,
    )


@pytest.fixture
async def background_tasks() -> AsyncIterator[BackgroundTasks]:
    """Background task set drained at teardown."""
    tasks = BackgroundTasks()
    try:
        yield tasks
    finally:
        await tasks.close()


@pytest.fixture
def mock_provider() -> MockPhoneAuthProvider:
    """Fresh scriptable phone auth provider."""
    return MockPhoneAuthProvider()


@pytest.fixture
def phone_auth_client(
    mock_provider: MockPhoneAuthProvider,
    background_tasks: BackgroundTasks,
) -> PhoneAuthClient:
    """Phone auth client wired to the mock provider."""
    return PhoneAuthClient(provider=mock_provider, tasks=background_tasks)


@pytest.fixture
def session_store(
    auth_store: KeyValueStore,
    phone_auth_client: PhoneAuthClient,
) -> SessionStore:
    """Session store reading identity from the phone auth client."""
    return SessionStore(store=auth_store, identity_source=phone_auth_client)


@pytest.fixture
def push_tokens(push_store: KeyValueStore) -> PushTokenStore:
    """Push token store on the `push` namespace."""
    return PushTokenStore(store=push_store)
