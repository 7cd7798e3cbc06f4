"""Phone-number OTP sign-in on top of a vendor auth provider."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING

from .errors import AuthError, AuthErrorReason, PhoneAuthProviderError
from .types import PhoneCredential, SignedIn, SignInFailed
from .verification_state import (
    NO_PENDING_VERIFICATION,
    AwaitingCode,
    VerificationState,
    resend_token_for,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from otpsync.tasks import BackgroundTasks

    from .types import Identity, PhoneAuthProvider, SignInListener, SignInOutcome

logger = logging.getLogger(__name__)

DEFAULT_VERIFICATION_TIMEOUT_SECONDS = 60
_STEP_LABEL = "OTP verification"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class PhoneAuthClient:
    """Send OTPs and exchange codes for a signed-in identity.

    Every `request_code` call starts a new attempt and replaces the pending
    verification wholesale. Provider auto-verification is honoured only for
    the newest attempt; completions for older attempts are dropped.
    """

    _provider: PhoneAuthProvider
    _tasks: BackgroundTasks
    _timeout_seconds: int
    _clock: Callable[[], datetime]
    _state: VerificationState
    _attempt: int
    _completed_attempt: int
    _sign_in_listener: SignInListener | None

    def __init__(
        self,
        *,
        provider: PhoneAuthProvider,
        tasks: BackgroundTasks,
        timeout_seconds: int = DEFAULT_VERIFICATION_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Create a client bound to one provider and background task set."""
        self._provider = provider
        self._tasks = tasks
        self._timeout_seconds = timeout_seconds
        self._clock = clock
        self._state = NO_PENDING_VERIFICATION
        self._attempt = 0
        self._completed_attempt = 0
        self._sign_in_listener = None

    @property
    def state(self) -> VerificationState:
        """Return the current pending-verification state."""
        return self._state

    @property
    def attempt(self) -> int:
        """Return the number of the newest attempt."""
        return self._attempt

    def set_sign_in_listener(self, listener: SignInListener | None) -> None:
        """Register the receiver for auto-verification outcomes."""
        self._sign_in_listener = listener

    def current_identity(self) -> Identity | None:
        """Return the provider's live identity, if any."""
        return self._provider.current_identity()

    async def request_code(self, phone_number: str) -> AwaitingCode:
        """Ask the provider to send an OTP and remember the verification id."""
        resend_token = resend_token_for(self._state, phone_number)
        self._attempt += 1
        attempt = self._attempt
        self._state = NO_PENDING_VERIFICATION

        try:
            dispatch = await self._provider.send_verification_code(
                phone_number,
                timeout_seconds=self._timeout_seconds,
                resend_token=resend_token,
                on_auto_verified=partial(self._on_auto_verified, attempt=attempt),
            )
        except PhoneAuthProviderError as exc:
            logger.warning(
                "OTP request failed (attempt=%s, reason=%s): %s",
                attempt,
                exc.reason,
                exc,
            )
            raise AuthError.from_provider(exc, step=_STEP_LABEL) from exc

        pending = AwaitingCode(
            verification_id=dispatch.verification_id,
            phone_number=phone_number,
            issued_at=self._clock(),
            attempt=attempt,
            resend_token=dispatch.resend_token,
        )
        if attempt == self._attempt and attempt != self._completed_attempt:
            self._state = pending
            logger.info("OTP sent (attempt=%s)", attempt)
        else:
            logger.info(
                "OTP sent for superseded attempt=%s; newest attempt=%s",
                attempt,
                self._attempt,
            )
        return pending

    async def submit_code(self, code: str) -> Identity:
        """Exchange the code for the pending verification and sign in."""
        state = self._state
        if not isinstance(state, AwaitingCode):
            raise AuthError.no_pending_verification()

        credential = PhoneCredential(verification_id=state.verification_id, code=code)
        return await self._complete_sign_in(credential, attempt=state.attempt)

    async def sign_out(self) -> None:
        """Sign out of the provider and drop any pending verification."""
        await self._provider.sign_out()
        self._attempt += 1
        self._state = NO_PENDING_VERIFICATION

    async def _complete_sign_in(
        self,
        credential: PhoneCredential,
        *,
        attempt: int,
    ) -> Identity:
        """Single sign-in path shared by typed codes and auto-verification."""
        try:
            identity = await self._provider.sign_in(credential)
        except PhoneAuthProviderError as exc:
            if exc.reason is AuthErrorReason.EXPIRED:
                self._reset_if_current(attempt)
            logger.warning(
                "Provider sign-in failed (attempt=%s, reason=%s): %s",
                attempt,
                exc.reason,
                exc,
            )
            raise AuthError.from_provider(exc, step=_STEP_LABEL) from exc

        if identity is None:
            self._reset_if_current(attempt)
            raise AuthError.user_missing()
        self._completed_attempt = max(self._completed_attempt, attempt)
        self._reset_if_current(attempt)
        logger.info("Provider sign-in succeeded (attempt=%s)", attempt)
        return identity

    def _on_auto_verified(self, credential: PhoneCredential, *, attempt: int) -> None:
        if attempt != self._attempt:
            logger.info(
                "Ignoring auto-verification for superseded attempt=%s",
                attempt,
            )
            return
        _ = self._tasks.spawn(
            self._complete_auto_verification(credential, attempt=attempt),
            name=f"auto-verification-{attempt}",
        )

    async def _complete_auto_verification(
        self,
        credential: PhoneCredential,
        *,
        attempt: int,
    ) -> None:
        if attempt != self._attempt:
            logger.info(
                "Ignoring auto-verification for superseded attempt=%s",
                attempt,
            )
            return
        outcome: SignInOutcome
        try:
            identity = await self._complete_sign_in(credential, attempt=attempt)
        except AuthError as exc:
            outcome = SignInFailed(error=exc)
        else:
            outcome = SignedIn(identity=identity)

        listener = self._sign_in_listener
        if listener is None:
            logger.warning("Auto-verification finished with no listener registered")
            return
        await listener(outcome)

    def _reset_if_current(self, attempt: int) -> None:
        if isinstance(self._state, AwaitingCode) and self._state.attempt == attempt:
            self._state = NO_PENDING_VERIFICATION
