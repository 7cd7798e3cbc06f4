"""Web app bridge module for otpsync."""

from .events import (
    BRIDGE_EVENT_NAMES,
    FCM_TOKEN_READY,
    FCM_TOKEN_UPDATED,
    NOTIFICATION_TAPPED,
    OTP_ERROR,
    OTP_SENT,
    OTP_VERIFICATION_ERROR,
    OTP_VERIFIED,
    USER_ALREADY_LOGGED_IN,
    USER_SIGNED_OUT,
    BridgeEvent,
    BridgeEventEmitter,
    EventSink,
    QueuedEventSink,
    WebViewEventSink,
    WebViewHost,
)
from .shell import (
    OTP_SENT_MESSAGE,
    SIGN_IN_SYNCED_MESSAGE,
    SYNC_FAILED_PREFIX,
    ShellBridge,
)

__all__ = [
    "BRIDGE_EVENT_NAMES",
    "FCM_TOKEN_READY",
    "FCM_TOKEN_UPDATED",
    "NOTIFICATION_TAPPED",
    "OTP_ERROR",
    "OTP_SENT",
    "OTP_SENT_MESSAGE",
    "OTP_VERIFICATION_ERROR",
    "OTP_VERIFIED",
    "SIGN_IN_SYNCED_MESSAGE",
    "SYNC_FAILED_PREFIX",
    "USER_ALREADY_LOGGED_IN",
    "USER_SIGNED_OUT",
    "BridgeEvent",
    "BridgeEventEmitter",
    "EventSink",
    "QueuedEventSink",
    "ShellBridge",
    "WebViewEventSink",
    "WebViewHost",
]
