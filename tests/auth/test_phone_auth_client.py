"""Tests for OTP request/submit flow and auto-verification ordering."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from otpsync.auth import (
    AuthError,
    AuthErrorReason,
    AwaitingCode,
    NoPendingVerification,
    PhoneAuthProviderError,
    PhoneCredential,
    SignedIn,
    SignInFailed,
)

if TYPE_CHECKING:
    from otpsync.auth import PhoneAuthClient, SignInOutcome
    from otpsync.tasks import BackgroundTasks
    from tests.mocks.mock_phone_auth_provider import MockPhoneAuthProvider

PHONE_NUMBER = "+15550001111"
OTHER_PHONE_NUMBER = "+15550002222"


class RecordingListener:
    """Collects auto-verification outcomes."""

    def __init__(self) -> None:
        """Start with no outcomes."""
        self.outcomes: list[SignInOutcome] = []

    async def __call__(self, outcome: SignInOutcome) -> None:
        """Record one outcome."""
        self.outcomes.append(outcome)


async def test_request_code_sets_awaiting_state(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure a successful request stores the verification id for the attempt."""
    pending = await phone_auth_client.request_code(PHONE_NUMBER)

    state = phone_auth_client.state
    if not isinstance(state, AwaitingCode):
        raise AssertionError
    if state != pending:
        raise AssertionError
    if state.verification_id != "verification-1":
        raise AssertionError
    if state.attempt != 1:
        raise AssertionError
    if mock_provider.sent_requests != [(PHONE_NUMBER, None)]:
        raise AssertionError


async def test_submit_code_without_request_raises_without_provider_call(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure code submission with nothing pending never reaches the provider."""
    with pytest.raises(AuthError) as exc_info:
        _ = await phone_auth_client.submit_code("123456")

    if exc_info.value.reason is not AuthErrorReason.NO_PENDING_VERIFICATION:
        raise AssertionError
    if str(exc_info.value) != "Verification ID not found. Please request OTP again.":
        raise AssertionError
    if mock_provider.call_counts.get("sign_in", 0) != 0:
        raise AssertionError


async def test_second_request_supersedes_first(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure the newest request's verification id is the one used for sign-in."""
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    _ = await phone_auth_client.request_code(PHONE_NUMBER)

    identity = await phone_auth_client.submit_code("123456")

    if identity != mock_provider.identity:
        raise AssertionError
    if mock_provider.credentials != [
        PhoneCredential(verification_id="verification-2", code="123456"),
    ]:
        raise AssertionError
    if not isinstance(phone_auth_client.state, NoPendingVerification):
        raise AssertionError


async def test_resend_token_forwarded_only_for_same_number(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure resend tokens follow the phone number they were issued for."""
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    _ = await phone_auth_client.request_code(OTHER_PHONE_NUMBER)

    if mock_provider.sent_requests != [
        (PHONE_NUMBER, None),
        (PHONE_NUMBER, "resend-1"),
        (OTHER_PHONE_NUMBER, None),
    ]:
        raise AssertionError


async def test_request_code_failure_maps_provider_reason(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure provider rejections surface as AuthError with the vendor message."""
    mock_provider.responses["send_verification_code"] = PhoneAuthProviderError(
        "INVALID_PHONE_NUMBER",
        reason=AuthErrorReason.INVALID_PHONE_NUMBER,
    )

    with pytest.raises(AuthError) as exc_info:
        _ = await phone_auth_client.request_code("not-a-number")

    if exc_info.value.reason is not AuthErrorReason.INVALID_PHONE_NUMBER:
        raise AssertionError
    if "INVALID_PHONE_NUMBER" not in str(exc_info.value):
        raise AssertionError
    if not isinstance(phone_auth_client.state, NoPendingVerification):
        raise AssertionError


async def test_invalid_code_keeps_pending_verification(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure a wrong code can be retried against the same verification."""
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    mock_provider.responses["sign_in"] = PhoneAuthProviderError(
        "INVALID_CODE",
        reason=AuthErrorReason.INVALID_CODE,
    )

    with pytest.raises(AuthError) as exc_info:
        _ = await phone_auth_client.submit_code("000000")

    if exc_info.value.reason is not AuthErrorReason.INVALID_CODE:
        raise AssertionError
    if not isinstance(phone_auth_client.state, AwaitingCode):
        raise AssertionError


async def test_expired_verification_clears_pending_state(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure an expired verification must be requested again."""
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    mock_provider.responses["sign_in"] = PhoneAuthProviderError(
        "SESSION_EXPIRED",
        reason=AuthErrorReason.EXPIRED,
    )

    with pytest.raises(AuthError):
        _ = await phone_auth_client.submit_code("123456")

    if not isinstance(phone_auth_client.state, NoPendingVerification):
        raise AssertionError


async def test_provider_returning_no_user_raises_user_missing(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure a sign-in without a user is reported, not treated as success."""
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    mock_provider.responses["sign_in"] = None

    with pytest.raises(AuthError) as exc_info:
        _ = await phone_auth_client.submit_code("123456")

    if exc_info.value.reason is not AuthErrorReason.USER_MISSING:
        raise AssertionError
    if not isinstance(phone_auth_client.state, NoPendingVerification):
        raise AssertionError


async def test_auto_verification_notifies_listener(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
    background_tasks: BackgroundTasks,
) -> None:
    """Ensure instant verification signs in and reports through the listener."""
    listener = RecordingListener()
    phone_auth_client.set_sign_in_listener(listener)
    _ = await phone_auth_client.request_code(PHONE_NUMBER)

    mock_provider.trigger_auto_verification()
    await background_tasks.join()

    if listener.outcomes != [SignedIn(identity=mock_provider.identity)]:
        raise AssertionError
    if not isinstance(phone_auth_client.state, NoPendingVerification):
        raise AssertionError
    if phone_auth_client.current_identity() != mock_provider.identity:
        raise AssertionError


async def test_auto_verification_during_send_leaves_no_stale_state(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
    background_tasks: BackgroundTasks,
) -> None:
    """Ensure verification completed inside the send call ends with no pending."""
    listener = RecordingListener()
    phone_auth_client.set_sign_in_listener(listener)
    mock_provider.auto_verify_during_send = PhoneCredential(
        verification_id="instant",
        code="111111",
    )

    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    await background_tasks.join()

    if len(listener.outcomes) != 1:
        raise AssertionError
    if not isinstance(listener.outcomes[0], SignedIn):
        raise AssertionError
    if not isinstance(phone_auth_client.state, NoPendingVerification):
        raise AssertionError


async def test_auto_verification_for_superseded_attempt_is_ignored(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
    background_tasks: BackgroundTasks,
) -> None:
    """Ensure a late completion for an older request does not sign in."""
    listener = RecordingListener()
    phone_auth_client.set_sign_in_listener(listener)
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    _ = await phone_auth_client.request_code(PHONE_NUMBER)

    mock_provider.trigger_auto_verification(request_index=0)
    await background_tasks.join()

    if listener.outcomes:
        raise AssertionError
    if mock_provider.call_counts.get("sign_in", 0) != 0:
        raise AssertionError
    state = phone_auth_client.state
    if not isinstance(state, AwaitingCode) or state.attempt != 2:
        raise AssertionError


async def test_auto_verification_failure_reported_as_failed_outcome(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
    background_tasks: BackgroundTasks,
) -> None:
    """Ensure provider errors during auto-verification reach the listener."""
    listener = RecordingListener()
    phone_auth_client.set_sign_in_listener(listener)
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    mock_provider.responses["sign_in"] = PhoneAuthProviderError(
        "Network error: timed out",
        reason=AuthErrorReason.NETWORK,
    )

    mock_provider.trigger_auto_verification()
    await background_tasks.join()

    if len(listener.outcomes) != 1:
        raise AssertionError
    outcome = listener.outcomes[0]
    if not isinstance(outcome, SignInFailed):
        raise AssertionError
    if outcome.error.reason is not AuthErrorReason.NETWORK:
        raise AssertionError


async def test_sign_out_drops_pending_verification(
    phone_auth_client: PhoneAuthClient,
    mock_provider: MockPhoneAuthProvider,
) -> None:
    """Ensure sign-out ends the provider session and any pending OTP."""
    _ = await phone_auth_client.request_code(PHONE_NUMBER)
    mock_provider.sign_in_directly()

    await phone_auth_client.sign_out()

    if phone_auth_client.current_identity() is not None:
        raise AssertionError
    if not isinstance(phone_auth_client.state, NoPendingVerification):
        raise AssertionError
    with pytest.raises(AuthError):
        _ = await phone_auth_client.submit_code("123456")
