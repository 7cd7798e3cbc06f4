"""Push registration token storage and lookup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from otpsync.config.logging import mask_token

if TYPE_CHECKING:
    from otpsync.storage import KeyValueStore

logger = logging.getLogger(__name__)

PUSH_TOKEN_KEY = "fcm_token"  # noqa: S105


class TokenFetchError(RuntimeError):
    """Raised when no push token can be obtained; callers treat it as non-fatal."""

    @classmethod
    def missing(cls) -> TokenFetchError:
        """Build error for a platform that has not delivered a token yet."""
        return cls("Fetching push registration token failed: no token delivered.")


class DeviceTokenProvider(Protocol):
    """Source of the current push registration token."""

    async def get_token(self) -> str:
        """Return the current token or raise TokenFetchError."""
        ...


class PushTokenStore:
    """Latest push token in the `push` key-value namespace."""

    _store: KeyValueStore

    def __init__(self, *, store: KeyValueStore) -> None:
        """Bind to the push namespace store."""
        self._store = store

    async def save(self, token: str) -> None:
        """Replace the stored token; the newest delivery always wins."""
        await self._store.put(PUSH_TOKEN_KEY, token)
        logger.debug("Stored push token %s", mask_token(token))

    async def load(self) -> str | None:
        """Return the stored token, or None if the platform sent none yet."""
        value = await self._store.get(PUSH_TOKEN_KEY)
        if isinstance(value, str) and value:
            return value
        return None


class StoredDeviceTokenProvider:
    """`DeviceTokenProvider` that serves whatever the platform last delivered."""

    _tokens: PushTokenStore

    def __init__(self, *, tokens: PushTokenStore) -> None:
        """Read tokens from the given store."""
        self._tokens = tokens

    async def get_token(self) -> str:
        """Return the stored token or raise TokenFetchError."""
        token = await self._tokens.load()
        if token is None:
            raise TokenFetchError.missing()
        return token
