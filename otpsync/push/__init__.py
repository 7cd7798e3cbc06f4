"""Push token and notification module for otpsync."""

from .notifications import (
    DEFAULT_NOTIFICATION_BODY,
    DEFAULT_NOTIFICATION_TITLE,
    NotificationContent,
    NotificationInbox,
    NotificationPresenter,
    PushMessage,
    PushMessageHandler,
    resolve_notification_content,
)
from .token_provider import (
    PUSH_TOKEN_KEY,
    DeviceTokenProvider,
    PushTokenStore,
    StoredDeviceTokenProvider,
    TokenFetchError,
)

__all__ = [
    "DEFAULT_NOTIFICATION_BODY",
    "DEFAULT_NOTIFICATION_TITLE",
    "PUSH_TOKEN_KEY",
    "DeviceTokenProvider",
    "NotificationContent",
    "NotificationInbox",
    "NotificationPresenter",
    "PushMessage",
    "PushMessageHandler",
    "PushTokenStore",
    "StoredDeviceTokenProvider",
    "TokenFetchError",
    "resolve_notification_content",
]
