"""Upsert signed-in users into the hosted profile store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from otpsync.config.logging import mask_token
from otpsync.push import TokenFetchError
from otpsync.tasks import BackgroundTasksClosedError

if TYPE_CHECKING:
    from otpsync.auth import Identity, SessionStore
    from otpsync.push import DeviceTokenProvider
    from otpsync.tasks import BackgroundTasks

logger = logging.getLogger(__name__)

USER_PROFILES_PATH = "/rest/v1/user_profiles"
SYNC_FIREBASE_USER_PATH = "/functions/v1/sync-firebase-user"
PROFILE_CONFLICT_COLUMN = "firebase_uid"
MERGE_DUPLICATES_PREFERENCE = "resolution=merge-duplicates"
_ERROR_BODY_PREVIEW_CHARS = 200


class SyncError(RuntimeError):
    """Raised when the profile store does not confirm a write."""

    status_code: int | None

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Keep the HTTP status when the server answered at all."""
        super().__init__(message)
        self.status_code = status_code

    @classmethod
    def for_status(cls, status_code: int, body: str) -> SyncError:
        """Build error for non-2xx responses."""
        preview = body[:_ERROR_BODY_PREVIEW_CHARS]
        message = f"Profile sync rejected with HTTP {status_code}: {preview}"
        return cls(message, status_code=status_code)

    @classmethod
    def transport(cls, exc: httpx.HTTPError) -> SyncError:
        """Build error for requests that never got a response."""
        return cls(f"Profile sync request failed: {exc}")


@dataclass(frozen=True, slots=True)
class BackendEndpoints:
    """Base URL and anon key of the hosted backend."""

    base_url: str
    anon_key: str

    @property
    def user_profiles_url(self) -> str:
        """REST table endpoint for profile upserts."""
        return f"{self.base_url.rstrip('/')}{USER_PROFILES_PATH}"

    @property
    def sync_firebase_user_url(self) -> str:
        """Edge function endpoint for token-only refreshes."""
        return f"{self.base_url.rstrip('/')}{SYNC_FIREBASE_USER_PATH}"

    def headers(self) -> dict[str, str]:
        """Auth and content headers shared by both endpoints."""
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Content-Type": "application/json",
        }


class ProfileSyncClient:
    """Write the profile record and, on confirmation, the local session."""

    _client: httpx.AsyncClient
    _endpoints: BackendEndpoints
    _sessions: SessionStore
    _token_provider: DeviceTokenProvider
    _tasks: BackgroundTasks

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        endpoints: BackendEndpoints,
        sessions: SessionStore,
        token_provider: DeviceTokenProvider,
        tasks: BackgroundTasks,
    ) -> None:
        """Create a sync client from injected collaborators."""
        self._client = client
        self._endpoints = endpoints
        self._sessions = sessions
        self._token_provider = token_provider
        self._tasks = tasks

    async def sync_after_auth(self, identity: Identity) -> None:
        """Drop any earlier session, then upsert the profile.

        The local flag only comes back once this sign-in is confirmed remotely,
        so a failed upsert never leaves a previous session standing.
        """
        await self._sessions.clear()
        token: str | None
        try:
            token = await self._token_provider.get_token()
        except TokenFetchError as exc:
            logger.warning("Continuing profile sync without push token: %s", exc)
            token = None
        await self.upsert_profile(identity, token)

    async def upsert_profile(self, identity: Identity, token: str | None) -> None:
        """POST the profile with merge-on-conflict; mark signed in on 2xx only."""
        payload: dict[str, str] = {
            "firebase_uid": identity.uid,
            "phone": identity.phone_number,
        }
        if token is not None:
            payload["fcm_token"] = token

        headers = self._endpoints.headers()
        headers["Prefer"] = MERGE_DUPLICATES_PREFERENCE
        try:
            response = await self._client.post(
                self._endpoints.user_profiles_url,
                params={"on_conflict": PROFILE_CONFLICT_COLUMN},
                json=payload,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.exception("Error syncing profile for uid=%s", identity.uid)
            raise SyncError.transport(exc) from exc

        logger.info("Profile sync response code: %s", response.status_code)
        if not response.is_success:
            logger.error(
                "Failed to sync profile for uid=%s (status=%s)",
                identity.uid,
                response.status_code,
            )
            raise SyncError.for_status(response.status_code, response.text)

        if await self._sessions.save(identity, token):
            logger.info("Profile synced for uid=%s", identity.uid)

    def sync_token_only(self, identity: Identity, token: str) -> None:
        """Refresh just the push token in the background; never raises."""
        try:
            _ = self._tasks.spawn(
                self._post_token_refresh(identity, token),
                name=f"push-token-sync-{identity.uid}",
            )
        except BackgroundTasksClosedError:
            logger.warning("Skipping push token sync during shutdown")

    async def _post_token_refresh(self, identity: Identity, token: str) -> None:
        payload = {
            "firebase_uid": identity.uid,
            "phone_number": identity.phone_number,
            "fcm_token": token,
        }
        try:
            response = await self._client.post(
                self._endpoints.sync_firebase_user_url,
                json=payload,
                headers=self._endpoints.headers(),
            )
        except httpx.HTTPError:
            logger.exception("Error syncing push token %s", mask_token(token))
            return
        if response.is_success:
            logger.info("Push token sync response: %s", response.status_code)
        else:
            logger.warning("Push token sync rejected: %s", response.status_code)
