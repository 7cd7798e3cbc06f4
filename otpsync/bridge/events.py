"""Named events delivered from the shell into the hosted web app."""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

    from otpsync.storage import JSONValue

logger = logging.getLogger(__name__)

OTP_SENT = "otpSent"
OTP_ERROR = "otpError"
OTP_VERIFIED = "otpVerified"
OTP_VERIFICATION_ERROR = "otpVerificationError"
USER_SIGNED_OUT = "userSignedOut"
FCM_TOKEN_READY = "fcmTokenReady"  # noqa: S105
FCM_TOKEN_UPDATED = "fcmTokenUpdated"  # noqa: S105
USER_ALREADY_LOGGED_IN = "userAlreadyLoggedIn"
NOTIFICATION_TAPPED = "notificationTapped"

BRIDGE_EVENT_NAMES: frozenset[str] = frozenset(
    {
        OTP_SENT,
        OTP_ERROR,
        OTP_VERIFIED,
        OTP_VERIFICATION_ERROR,
        USER_SIGNED_OUT,
        FCM_TOKEN_READY,
        FCM_TOKEN_UPDATED,
        USER_ALREADY_LOGGED_IN,
        NOTIFICATION_TAPPED,
    },
)

DEFAULT_EVENT_QUEUE_SIZE = 256


@dataclass(frozen=True, slots=True)
class BridgeEvent:
    """One event for the web app; `detail` becomes `CustomEvent.detail`."""

    name: str
    detail: JSONValue

    def to_script(self) -> str:
        """Render the event as a `window.dispatchEvent` statement."""
        name_literal = json.dumps(self.name)
        detail_literal = json.dumps(self.detail)
        return (
            f"window.dispatchEvent(new CustomEvent({name_literal}, "
            f"{{ detail: {detail_literal} }}));"
        )


class EventSink(Protocol):
    """Where emitted events go."""

    def deliver(self, event: BridgeEvent) -> None:
        """Hand one event to the web context."""
        ...


class WebViewHost(Protocol):
    """The host UI surface embedding the web app."""

    def post(self, action: Callable[[], None]) -> None:
        """Run `action` on the UI context."""
        ...

    def evaluate_javascript(self, script: str) -> None:
        """Evaluate script in the web page."""
        ...


class WebViewEventSink:
    """Deliver events by evaluating JavaScript on the host UI context."""

    _host: WebViewHost

    def __init__(self, *, host: WebViewHost) -> None:
        """Bind to one embedded web view."""
        self._host = host

    def deliver(self, event: BridgeEvent) -> None:
        """Queue script evaluation onto the UI context."""
        script = event.to_script()
        self._host.post(lambda: self._host.evaluate_javascript(script))


class QueuedEventSink:
    """Buffer events until the web app polls for them.

    The buffer is bounded; when it is full the oldest event is dropped.
    """

    _events: deque[BridgeEvent]
    _max_events: int

    def __init__(self, *, max_events: int = DEFAULT_EVENT_QUEUE_SIZE) -> None:
        """Create an empty buffer holding at most `max_events`."""
        self._events = deque()
        self._max_events = max_events

    def deliver(self, event: BridgeEvent) -> None:
        """Append the event, evicting the oldest one when full."""
        if len(self._events) >= self._max_events:
            dropped = self._events.popleft()
            logger.warning("Event buffer full; dropped %s", dropped.name)
        self._events.append(event)

    def drain(self) -> list[BridgeEvent]:
        """Return and forget every buffered event, oldest first."""
        events = list(self._events)
        self._events.clear()
        return events


class BridgeEventEmitter:
    """Fire-and-forget emitter; a failing sink never reaches the caller."""

    _sink: EventSink

    def __init__(self, *, sink: EventSink) -> None:
        """Emit through the given sink."""
        self._sink = sink

    def emit(self, event_name: str, detail: JSONValue = None) -> None:
        """Deliver one named event at most once."""
        if event_name not in BRIDGE_EVENT_NAMES:
            logger.warning("Emitting unregistered bridge event %s", event_name)
        event = BridgeEvent(name=event_name, detail=detail)
        try:
            self._sink.deliver(event)
        except Exception:  # noqa: BLE001
            logger.exception("Dropping bridge event %s", event_name)
