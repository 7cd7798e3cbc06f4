"""Assembly of the shell components behind the HTTP bridge."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import httpx

from otpsync.auth import (
    IdentityToolkitProvider,
    PhoneAuthClient,
    PhoneAuthProvider,
    SessionStore,
)
from otpsync.bridge import BridgeEventEmitter, QueuedEventSink, ShellBridge
from otpsync.push import NotificationInbox, PushTokenStore, StoredDeviceTokenProvider
from otpsync.storage import (
    AUTH_NAMESPACE,
    PUSH_NAMESPACE,
    KeyValueStore,
    StorageRuntime,
    create_storage_runtime,
    dispose_storage_runtime,
    ensure_schema,
)
from otpsync.sync import BackendEndpoints, ProfileSyncClient
from otpsync.tasks import BackgroundTasks

if TYPE_CHECKING:
    from otpsync.config import AppSettings

logger = logging.getLogger(__name__)


class ShellRuntimeError(RuntimeError):
    """Raised when the shell cannot be assembled from settings."""

    @classmethod
    def missing_provider_key(cls) -> ShellRuntimeError:
        """Build error for a missing Firebase API key."""
        message = (
            "Missing OTPSYNC_FIREBASE_API_KEY: required for the default phone "
            "auth provider."
        )
        return cls(message)


class PhoneAuthProviderFactory(Protocol):
    """Builds the phone auth provider for one runtime."""

    def __call__(
        self,
        settings: AppSettings,
        client: httpx.AsyncClient,
    ) -> PhoneAuthProvider:
        """Create a provider that shares the runtime HTTP client."""
        ...


@dataclass(slots=True)
class ShellRuntime:
    """Everything the bridge routes need, plus what must be closed on exit."""

    storage: StorageRuntime
    http_client: httpx.AsyncClient
    tasks: BackgroundTasks
    events: QueuedEventSink
    bridge: ShellBridge


def identity_toolkit_provider_factory(
    settings: AppSettings,
    client: httpx.AsyncClient,
) -> PhoneAuthProvider:
    """Default factory: Firebase Authentication over REST."""
    if settings.firebase_api_key is None:
        raise ShellRuntimeError.missing_provider_key()
    return IdentityToolkitProvider(
        client=client,
        api_key=settings.firebase_api_key,
        recaptcha_token=settings.recaptcha_token,
    )


async def open_shell_runtime(
    settings: AppSettings,
    *,
    provider_factory: PhoneAuthProviderFactory = identity_toolkit_provider_factory,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ShellRuntime:
    """Create storage, HTTP client, clients and bridge for one process."""
    storage = create_storage_runtime(settings.db_path)
    http_client = httpx.AsyncClient(
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )
    try:
        await ensure_schema(storage)
        provider = provider_factory(settings, http_client)
    except BaseException:
        await http_client.aclose()
        await dispose_storage_runtime(storage)
        raise

    tasks = BackgroundTasks()
    auth_store = KeyValueStore(
        namespace=AUTH_NAMESPACE,
        session_factory=storage.session_factory,
    )
    push_store = KeyValueStore(
        namespace=PUSH_NAMESPACE,
        session_factory=storage.session_factory,
    )
    tokens = PushTokenStore(store=push_store)
    token_provider = StoredDeviceTokenProvider(tokens=tokens)
    auth = PhoneAuthClient(
        provider=provider,
        tasks=tasks,
        timeout_seconds=settings.verification_timeout_seconds,
    )
    sessions = SessionStore(store=auth_store, identity_source=auth)
    sync = ProfileSyncClient(
        client=http_client,
        endpoints=BackendEndpoints(
            base_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
        ),
        sessions=sessions,
        token_provider=token_provider,
        tasks=tasks,
    )
    event_sink = QueuedEventSink()
    bridge = ShellBridge(
        auth=auth,
        sync=sync,
        sessions=sessions,
        tokens=tokens,
        token_provider=token_provider,
        inbox=NotificationInbox(),
        emitter=BridgeEventEmitter(sink=event_sink),
    )
    return ShellRuntime(
        storage=storage,
        http_client=http_client,
        tasks=tasks,
        events=event_sink,
        bridge=bridge,
    )


async def close_shell_runtime(runtime: ShellRuntime) -> None:
    """Drain background work, then release HTTP and storage resources."""
    await runtime.tasks.close()
    await runtime.http_client.aclose()
    await dispose_storage_runtime(runtime.storage)
