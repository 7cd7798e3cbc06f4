"""Explicit pending-verification state for one phone auth client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class NoPendingVerification:
    """No OTP has been requested, or the last one was consumed or dropped."""


@dataclass(frozen=True, slots=True)
class AwaitingCode:
    """An OTP was sent for `attempt` and the client is waiting for the code."""

    verification_id: str
    phone_number: str
    issued_at: datetime
    attempt: int
    resend_token: str | None = None


VerificationState = NoPendingVerification | AwaitingCode

NO_PENDING_VERIFICATION = NoPendingVerification()


def resend_token_for(state: VerificationState, phone_number: str) -> str | None:
    """Return the resend token when re-requesting the same number."""
    if isinstance(state, AwaitingCode) and state.phone_number == phone_number:
        return state.resend_token
    return None
