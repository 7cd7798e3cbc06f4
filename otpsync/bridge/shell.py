"""Calls the hosted web app makes into the shell, plus host lifecycle hooks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from otpsync.auth import AuthError, SignedIn
from otpsync.config.logging import mask_token
from otpsync.push import TokenFetchError
from otpsync.sync import SyncError

from . import events

if TYPE_CHECKING:
    from collections.abc import Mapping

    from otpsync.auth import Identity, PhoneAuthClient, SessionStore, SignInOutcome
    from otpsync.push import DeviceTokenProvider, NotificationInbox, PushTokenStore
    from otpsync.storage import JSONValue
    from otpsync.sync import ProfileSyncClient

    from .events import BridgeEventEmitter

logger = logging.getLogger(__name__)

OTP_SENT_MESSAGE = "OTP sent successfully"
SIGN_IN_SYNCED_MESSAGE = "Authentication successful! User data synced."
SYNC_FAILED_PREFIX = (
    "Verification succeeded but syncing user data with the server failed"
)


class ShellBridge:
    """Everything the web app can ask of the native shell.

    Outcomes of OTP calls arrive as bridge events rather than return values.
    Typed codes and provider auto-verification both end in `_finish_sign_in`.
    """

    _auth: PhoneAuthClient
    _sync: ProfileSyncClient
    _sessions: SessionStore
    _tokens: PushTokenStore
    _token_provider: DeviceTokenProvider
    _inbox: NotificationInbox
    _emitter: BridgeEventEmitter

    def __init__(  # noqa: PLR0913
        self,
        *,
        auth: PhoneAuthClient,
        sync: ProfileSyncClient,
        sessions: SessionStore,
        tokens: PushTokenStore,
        token_provider: DeviceTokenProvider,
        inbox: NotificationInbox,
        emitter: BridgeEventEmitter,
    ) -> None:
        """Wire the bridge and register for auto-verification outcomes."""
        self._auth = auth
        self._sync = sync
        self._sessions = sessions
        self._tokens = tokens
        self._token_provider = token_provider
        self._inbox = inbox
        self._emitter = emitter
        auth.set_sign_in_listener(self._on_sign_in_outcome)

    async def start(self) -> None:
        """Publish the push token and the restored sign-in state on app start."""
        signed_in = await self._sessions.is_signed_in()
        try:
            token = await self._token_provider.get_token()
        except TokenFetchError as exc:
            logger.warning("Fetching push registration token failed: %s", exc)
        else:
            logger.debug("Push registration token: %s", mask_token(token))
            await self._tokens.save(token)
            self._emitter.emit(events.FCM_TOKEN_READY, token)
            if signed_in:
                logger.debug("User already logged in, syncing push token")
                self._sync_token_for_current_user(token)

        if signed_in:
            logger.info("User is already logged in")
            self._emitter.emit(events.USER_ALREADY_LOGGED_IN, True)  # noqa: FBT003

    async def on_new_token(self, token: str) -> None:
        """Handle a rotated push token from the platform."""
        logger.info("Refreshed push token: %s", mask_token(token))
        await self._tokens.save(token)
        self._emitter.emit(events.FCM_TOKEN_UPDATED, token)
        if await self._sessions.is_signed_in():
            self._sync_token_for_current_user(token)

    def on_notification_intent(self, extras: Mapping[str, object]) -> None:
        """Record a notification tap and tell the web app about it."""
        payload = self._inbox.record_tap(extras)
        if payload is None:
            return
        detail: dict[str, JSONValue] = dict(payload)
        self._emitter.emit(events.NOTIFICATION_TAPPED, detail)

    async def send_otp(self, phone_number: str) -> None:
        """Request an OTP; the result arrives as `otpSent` or `otpError`."""
        logger.info("Sending OTP")
        try:
            _ = await self._auth.request_code(phone_number)
        except AuthError as exc:
            logger.error("OTP sending failed: %s", exc)
            self._emitter.emit(events.OTP_ERROR, str(exc))
            return
        self._emitter.emit(events.OTP_SENT, OTP_SENT_MESSAGE)

    async def verify_otp(self, code: str) -> None:
        """Submit the code; the result arrives as `otpVerified` or an error."""
        logger.info("Verifying OTP")
        try:
            identity = await self._auth.submit_code(code)
        except AuthError as exc:
            logger.error("OTP verification failed: %s", exc)
            self._emitter.emit(events.OTP_VERIFICATION_ERROR, str(exc))
            return
        await self._finish_sign_in(identity)

    async def is_user_logged_in(self) -> bool:
        """Return the derived signed-in state."""
        return await self._sessions.is_signed_in()

    async def sign_out(self) -> None:
        """Sign out of the provider, wipe the local session, notify the web app."""
        await self._auth.sign_out()
        await self._sessions.clear()
        logger.info("User signed out successfully")
        self._emitter.emit(events.USER_SIGNED_OUT, True)  # noqa: FBT003

    def get_current_user_uid(self) -> str | None:
        """Return the provider uid of the live identity."""
        identity = self._auth.current_identity()
        return identity.uid if identity is not None else None

    async def get_fcm_token(self) -> str | None:
        """Return the stored push token."""
        token = await self._tokens.load()
        logger.debug("Web app requested push token: %s", mask_token(token))
        return token

    def get_notification_data(self) -> str | None:
        """Return the pending notification payload as JSON text."""
        return self._inbox.pending()

    def clear_notification_data(self) -> None:
        """Forget the pending notification payload."""
        self._inbox.clear()

    def log(self, message: str) -> None:
        """Forward a web app log line to the shell log."""
        logger.info("WebView log: %s", message)

    async def _on_sign_in_outcome(self, outcome: SignInOutcome) -> None:
        if isinstance(outcome, SignedIn):
            logger.info("Verification completed automatically")
            await self._finish_sign_in(outcome.identity)
            return
        logger.error("Automatic verification failed: %s", outcome.error)
        self._emitter.emit(events.OTP_VERIFICATION_ERROR, str(outcome.error))

    async def _finish_sign_in(self, identity: Identity) -> None:
        try:
            await self._sync.sync_after_auth(identity)
        except SyncError as exc:
            self._emitter.emit(
                events.OTP_VERIFICATION_ERROR,
                f"{SYNC_FAILED_PREFIX}: {exc}",
            )
            return
        self._emitter.emit(events.OTP_VERIFIED, SIGN_IN_SYNCED_MESSAGE)

    def _sync_token_for_current_user(self, token: str) -> None:
        identity = self._auth.current_identity()
        if identity is None:
            return
        self._sync.sync_token_only(identity, token)
