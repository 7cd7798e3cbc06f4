"""Value types exchanged between the phone auth client and its provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from .errors import AuthError


@dataclass(frozen=True, slots=True)
class Identity:
    """Signed-in provider user."""

    uid: str
    phone_number: str


@dataclass(frozen=True, slots=True)
class PhoneCredential:
    """Verification id plus SMS code, ready to exchange for an identity."""

    verification_id: str
    code: str


@dataclass(frozen=True, slots=True)
class CodeDispatch:
    """Provider acknowledgement that an OTP was sent."""

    verification_id: str
    resend_token: str | None = None


@dataclass(frozen=True, slots=True)
class SignedIn:
    """Successful sign-in outcome."""

    identity: Identity


@dataclass(frozen=True, slots=True)
class SignInFailed:
    """Failed sign-in outcome."""

    error: AuthError


SignInOutcome = SignedIn | SignInFailed


class AutoVerificationHandler(Protocol):
    """Callback the provider invokes when it verifies a number by itself."""

    def __call__(self, credential: PhoneCredential) -> None:
        """Accept an instant-verification credential."""
        ...


class SignInListener(Protocol):
    """Receives outcomes of sign-ins that no caller awaited."""

    def __call__(self, outcome: SignInOutcome) -> Awaitable[None]:
        """Handle one sign-in outcome."""
        ...


class PhoneAuthProvider(Protocol):
    """Minimum vendor surface for phone-number sign-in."""

    async def send_verification_code(
        self,
        phone_number: str,
        *,
        timeout_seconds: int,
        resend_token: str | None,
        on_auto_verified: AutoVerificationHandler,
    ) -> CodeDispatch:
        """Ask the provider to send an OTP to the phone number."""
        ...

    async def sign_in(self, credential: PhoneCredential) -> Identity | None:
        """Exchange a credential for the signed-in identity."""
        ...

    def current_identity(self) -> Identity | None:
        """Return the live provider identity, if any."""
        ...

    async def sign_out(self) -> None:
        """End the provider session."""
        ...
