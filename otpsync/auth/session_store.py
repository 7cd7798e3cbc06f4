"""Local signed-in cache kept in the `auth` key-value namespace."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from otpsync.storage import JSONValue, KeyValueStore

    from .types import Identity

logger = logging.getLogger(__name__)

IS_LOGGED_IN_KEY = "is_logged_in"
FIREBASE_UID_KEY = "firebase_uid"
PHONE_NUMBER_KEY = "phone_number"
FCM_TOKEN_KEY = "fcm_token"  # noqa: S105


class IdentitySource(Protocol):
    """Anything that can report the provider's live identity."""

    def current_identity(self) -> Identity | None:
        """Return the live provider identity, if any."""
        ...


@dataclass(frozen=True, slots=True)
class Session:
    """Snapshot of the local flag, cached fields and provider identity."""

    logged_in_flag: bool
    provider_identity: Identity | None
    firebase_uid: str | None
    phone_number: str | None
    fcm_token: str | None

    @property
    def signed_in(self) -> bool:
        """Signed in only when the flag is set for the provider's live uid."""
        if not self.logged_in_flag or self.provider_identity is None:
            return False
        return self.firebase_uid == self.provider_identity.uid


class SessionStore:
    """Read and write the cached session.

    The flag is written only after a confirmed remote profile sync, so it
    trails provider auth rather than mirroring it.
    """

    _store: KeyValueStore
    _identity_source: IdentitySource

    def __init__(
        self,
        *,
        store: KeyValueStore,
        identity_source: IdentitySource,
    ) -> None:
        """Bind the session to its namespace and provider identity source."""
        self._store = store
        self._identity_source = identity_source

    async def load(self) -> Session:
        """Read the cached session and the live provider identity."""
        values = await self._store.get_all()
        return Session(
            logged_in_flag=values.get(IS_LOGGED_IN_KEY) is True,
            provider_identity=self._identity_source.current_identity(),
            firebase_uid=_optional_str(values.get(FIREBASE_UID_KEY)),
            phone_number=_optional_str(values.get(PHONE_NUMBER_KEY)),
            fcm_token=_optional_str(values.get(FCM_TOKEN_KEY)),
        )

    async def is_signed_in(self) -> bool:
        """Return True iff the flag was set for the live provider identity."""
        if self._identity_source.current_identity() is None:
            return False
        session = await self.load()
        return session.signed_in

    async def save(self, identity: Identity, fcm_token: str | None) -> bool:
        """Cache identity and token and set the signed-in flag.

        Returns False without writing when the provider no longer holds
        `identity`, e.g. after a sign-out that raced the profile sync.
        """
        live = self._identity_source.current_identity()
        if live is None or live.uid != identity.uid:
            logger.warning(
                "Not saving session for uid=%s; provider identity changed",
                identity.uid,
            )
            return False
        await self._store.put_many(
            {
                FIREBASE_UID_KEY: identity.uid,
                PHONE_NUMBER_KEY: identity.phone_number,
                FCM_TOKEN_KEY: fcm_token,
                IS_LOGGED_IN_KEY: True,
            },
        )
        return True

    async def clear(self) -> None:
        """Wipe the flag and cached fields; provider sign-out is separate."""
        removed = await self._store.clear()
        logger.debug("Cleared local session (%s keys)", removed)


def _optional_str(value: JSONValue) -> str | None:
    if isinstance(value, str):
        return value
    return None
