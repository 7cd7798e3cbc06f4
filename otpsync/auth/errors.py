"""Auth failure taxonomy shared by the client and provider adapters."""

from __future__ import annotations

from enum import StrEnum


class AuthErrorReason(StrEnum):
    """Why a phone auth step failed."""

    NO_PENDING_VERIFICATION = "no_pending_verification"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    INVALID_PHONE_NUMBER = "invalid_phone_number"
    QUOTA_EXCEEDED = "quota_exceeded"
    NETWORK = "network"
    USER_MISSING = "user_missing"
    UNKNOWN = "unknown"


class PhoneAuthProviderError(RuntimeError):
    """Raised by provider adapters when the vendor rejects a request."""

    reason: AuthErrorReason

    def __init__(self, message: str, *, reason: AuthErrorReason) -> None:
        """Keep the vendor message and the mapped failure reason."""
        super().__init__(message)
        self.reason = reason

    @classmethod
    def network(cls, details: str) -> PhoneAuthProviderError:
        """Build error for transport failures talking to the provider."""
        return cls(f"Network error: {details}", reason=AuthErrorReason.NETWORK)


class AuthError(RuntimeError):
    """Raised to callers when a phone auth step does not succeed."""

    reason: AuthErrorReason

    def __init__(self, message: str, *, reason: AuthErrorReason) -> None:
        """Keep a caller-facing message and the failure reason."""
        super().__init__(message)
        self.reason = reason

    @classmethod
    def no_pending_verification(cls) -> AuthError:
        """Build error for code submission without a requested OTP."""
        return cls(
            "Verification ID not found. Please request OTP again.",
            reason=AuthErrorReason.NO_PENDING_VERIFICATION,
        )

    @classmethod
    def user_missing(cls) -> AuthError:
        """Build error for a provider sign-in that returned no user."""
        return cls(
            "User not found after authentication",
            reason=AuthErrorReason.USER_MISSING,
        )

    @classmethod
    def from_provider(
        cls,
        error: PhoneAuthProviderError,
        *,
        step: str,
    ) -> AuthError:
        """Wrap a provider error, keeping its message verbatim."""
        return cls(f"{step} failed: {error}", reason=error.reason)
