"""Firebase Authentication phone sign-in over the Identity Toolkit REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

import httpx

from .errors import AuthErrorReason, PhoneAuthProviderError
from .types import CodeDispatch, Identity

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .types import AutoVerificationHandler, PhoneCredential

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_BASE_URL = "https://identitytoolkit.googleapis.com/v1"
SEND_VERIFICATION_CODE_PATH = "/accounts:sendVerificationCode"
SIGN_IN_WITH_PHONE_NUMBER_PATH = "/accounts:signInWithPhoneNumber"

_ERROR_REASONS: dict[str, AuthErrorReason] = {
    "INVALID_CODE": AuthErrorReason.INVALID_CODE,
    "INVALID_SESSION_INFO": AuthErrorReason.EXPIRED,
    "SESSION_EXPIRED": AuthErrorReason.EXPIRED,
    "CODE_EXPIRED": AuthErrorReason.EXPIRED,
    "INVALID_PHONE_NUMBER": AuthErrorReason.INVALID_PHONE_NUMBER,
    "MISSING_PHONE_NUMBER": AuthErrorReason.INVALID_PHONE_NUMBER,
    "QUOTA_EXCEEDED": AuthErrorReason.QUOTA_EXCEEDED,
    "TOO_MANY_ATTEMPTS_TRY_LATER": AuthErrorReason.QUOTA_EXCEEDED,
}


@dataclass(frozen=True, slots=True)
class ProviderUser:
    """Signed-in user as returned by `signInWithPhoneNumber`."""

    identity: Identity
    id_token: str
    refresh_token: str


class IdentityToolkitProvider:
    """`PhoneAuthProvider` backed by Firebase's public REST endpoints.

    The REST flow has no SMS auto-retrieval, so `on_auto_verified` is never
    called. The signed-in user lives in memory for the process lifetime.
    """

    _client: httpx.AsyncClient
    _api_key: str
    _recaptcha_token: str | None
    _base_url: str
    _current_user: ProviderUser | None
    _requested_numbers: dict[str, str]

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        api_key: str,
        recaptcha_token: str | None = None,
        base_url: str = IDENTITY_TOOLKIT_BASE_URL,
    ) -> None:
        """Create a provider that reuses the caller-owned HTTP client."""
        self._client = client
        self._api_key = api_key
        self._recaptcha_token = recaptcha_token
        self._base_url = base_url.rstrip("/")
        self._current_user = None
        self._requested_numbers = {}

    @property
    def current_user(self) -> ProviderUser | None:
        """Return the signed-in user including provider tokens."""
        return self._current_user

    async def send_verification_code(
        self,
        phone_number: str,
        *,
        timeout_seconds: int,
        resend_token: str | None,
        on_auto_verified: AutoVerificationHandler,
    ) -> CodeDispatch:
        """Request an SMS code; the returned session info is the verification id."""
        _ = (timeout_seconds, resend_token, on_auto_verified)
        payload: dict[str, object] = {"phoneNumber": phone_number}
        if self._recaptcha_token is not None:
            payload["recaptchaToken"] = self._recaptcha_token

        body = await self._post(SEND_VERIFICATION_CODE_PATH, payload)
        session_info = body.get("sessionInfo")
        if not isinstance(session_info, str) or not session_info:
            message = "Provider response is missing sessionInfo."
            raise PhoneAuthProviderError(message, reason=AuthErrorReason.UNKNOWN)
        self._requested_numbers[session_info] = phone_number
        return CodeDispatch(verification_id=session_info)

    async def sign_in(self, credential: PhoneCredential) -> Identity | None:
        """Exchange session info and code for a Firebase user."""
        body = await self._post(
            SIGN_IN_WITH_PHONE_NUMBER_PATH,
            {"sessionInfo": credential.verification_id, "code": credential.code},
        )
        uid = body.get("localId")
        if not isinstance(uid, str) or not uid:
            return None
        requested = self._requested_numbers.get(credential.verification_id, "")
        phone_number = _string_field(body, "phoneNumber") or requested
        if not phone_number:
            logger.warning("Sign-in response for uid=%s has no phone number", uid)
            return None
        _ = self._requested_numbers.pop(credential.verification_id, None)
        user = ProviderUser(
            identity=Identity(uid=uid, phone_number=phone_number),
            id_token=_string_field(body, "idToken"),
            refresh_token=_string_field(body, "refreshToken"),
        )
        self._current_user = user
        return user.identity

    def current_identity(self) -> Identity | None:
        """Return the identity of the in-memory signed-in user."""
        if self._current_user is None:
            return None
        return self._current_user.identity

    async def sign_out(self) -> None:
        """Forget the signed-in user."""
        self._current_user = None

    async def _post(
        self,
        path: str,
        payload: Mapping[str, object],
    ) -> dict[str, object]:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.post(
                url,
                params={"key": self._api_key},
                json=dict(payload),
            )
        except httpx.HTTPError as exc:
            raise PhoneAuthProviderError.network(str(exc)) from exc

        body = _decode_body(response)
        if response.is_success:
            return body
        raise _provider_error(response.status_code, body)


def _decode_body(response: httpx.Response) -> dict[str, object]:
    try:
        decoded = cast("object", response.json())
    except ValueError:
        return {}
    if isinstance(decoded, dict):
        return cast("dict[str, object]", decoded)
    return {}


def _provider_error(
    status_code: int,
    body: Mapping[str, object],
) -> PhoneAuthProviderError:
    error_obj = body.get("error")
    code = ""
    if isinstance(error_obj, dict):
        message_obj = cast("dict[str, object]", error_obj).get("message")
        if isinstance(message_obj, str):
            code = message_obj
    # Codes may carry a suffix, e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : ...".
    code_key = code.split(":", 1)[0].strip()
    reason = _ERROR_REASONS.get(code_key, AuthErrorReason.UNKNOWN)
    logger.debug(
        "Identity Toolkit rejected request (status=%s, code=%s)",
        status_code,
        code,
    )
    return PhoneAuthProviderError(code or f"HTTP {status_code}", reason=reason)


def _string_field(body: Mapping[str, object], name: str) -> str:
    value = body.get(name)
    if isinstance(value, str):
        return value
    return ""
