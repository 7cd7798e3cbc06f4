"""Phone-number authentication module for otpsync."""

from .errors import AuthError, AuthErrorReason, PhoneAuthProviderError
from .identity_toolkit import (
    IDENTITY_TOOLKIT_BASE_URL,
    IdentityToolkitProvider,
    ProviderUser,
)
from .phone_auth import DEFAULT_VERIFICATION_TIMEOUT_SECONDS, PhoneAuthClient
from .session_store import (
    FCM_TOKEN_KEY,
    FIREBASE_UID_KEY,
    IS_LOGGED_IN_KEY,
    PHONE_NUMBER_KEY,
    IdentitySource,
    Session,
    SessionStore,
)
from .types import (
    AutoVerificationHandler,
    CodeDispatch,
    Identity,
    PhoneAuthProvider,
    PhoneCredential,
    SignedIn,
    SignInFailed,
    SignInListener,
    SignInOutcome,
)
from .verification_state import (
    NO_PENDING_VERIFICATION,
    AwaitingCode,
    NoPendingVerification,
    VerificationState,
)

__all__ = [
    "DEFAULT_VERIFICATION_TIMEOUT_SECONDS",
    "FCM_TOKEN_KEY",
    "FIREBASE_UID_KEY",
    "IDENTITY_TOOLKIT_BASE_URL",
    "IS_LOGGED_IN_KEY",
    "NO_PENDING_VERIFICATION",
    "PHONE_NUMBER_KEY",
    "AuthError",
    "AuthErrorReason",
    "AutoVerificationHandler",
    "AwaitingCode",
    "CodeDispatch",
    "Identity",
    "IdentitySource",
    "IdentityToolkitProvider",
    "NoPendingVerification",
    "PhoneAuthClient",
    "PhoneAuthProvider",
    "PhoneAuthProviderError",
    "PhoneCredential",
    "ProviderUser",
    "Session",
    "SessionStore",
    "SignInFailed",
    "SignInListener",
    "SignInOutcome",
    "SignedIn",
    "VerificationState",
]
