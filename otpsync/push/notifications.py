"""Incoming push messages and notification-tap payloads.

The host messaging service calls `PushMessageHandler.on_message_received`
directly with its own `NotificationPresenter`; nothing in the HTTP bridge
routes push messages. Taps come back through `ShellBridge.on_notification_intent`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE_KEY = "type"
DEFAULT_NOTIFICATION_TITLE = "Livenzo"
DEFAULT_NOTIFICATION_BODY = "New notification"


def _new_data_map() -> dict[str, str]:
    return {}


@dataclass(frozen=True, slots=True)
class PushMessage:
    """Push message as handed over by the platform messaging service."""

    sender: str | None = None
    title: str | None = None
    body: str | None = None
    has_notification: bool = False
    data: dict[str, str] = field(default_factory=_new_data_map)


@dataclass(frozen=True, slots=True)
class NotificationContent:
    """What to show for one push message."""

    title: str
    body: str
    extras: dict[str, str]


class NotificationPresenter(Protocol):
    """Host hook that actually displays a notification."""

    def show(self, content: NotificationContent) -> None:
        """Display the notification; tapping it must deliver `extras` back."""
        ...


def resolve_notification_content(message: PushMessage) -> NotificationContent | None:
    """Pick display text from the notification payload, else from data fields."""
    if message.has_notification:
        title, body = message.title, message.body
    else:
        title = message.data.get("title")
        body = message.data.get("body")
        if title is None and body is None:
            return None
    return NotificationContent(
        title=title if title is not None else DEFAULT_NOTIFICATION_TITLE,
        body=body if body is not None else DEFAULT_NOTIFICATION_BODY,
        extras=dict(message.data),
    )


class PushMessageHandler:
    """Turn incoming push messages into displayed notifications."""

    _presenter: NotificationPresenter

    def __init__(self, *, presenter: NotificationPresenter) -> None:
        """Show notifications through the given host presenter."""
        self._presenter = presenter

    def on_message_received(self, message: PushMessage) -> NotificationContent | None:
        """Display the message when it carries something to show."""
        logger.debug("Push message received (from=%s)", message.sender)
        content = resolve_notification_content(message)
        if content is None:
            logger.debug("Data-only push message without title/body; not displayed")
            return None
        self._presenter.show(content)
        return content


class NotificationInbox:
    """Holds the payload of the notification that opened the app."""

    _pending: str | None

    def __init__(self) -> None:
        """Start with no pending notification."""
        self._pending = None

    def record_tap(self, extras: Mapping[str, object]) -> dict[str, str] | None:
        """Keep tap extras when they describe a notification, else ignore them."""
        if NOTIFICATION_TYPE_KEY not in extras:
            return None
        payload = {
            key: str(value) for key, value in extras.items() if value is not None
        }
        self._pending = json.dumps(payload)
        logger.info("Notification data received (type=%s)", payload.get("type"))
        return payload

    def pending(self) -> str | None:
        """Return the pending notification as JSON text."""
        return self._pending

    def clear(self) -> None:
        """Forget the pending notification."""
        self._pending = None
