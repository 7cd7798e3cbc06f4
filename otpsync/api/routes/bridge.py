"""Bridge endpoints the hosted web app calls over loopback HTTP."""

from __future__ import annotations

from typing import Literal, cast

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, Field, JsonValue

from otpsync.api.runtime import ShellRuntime

router = APIRouter(prefix="/bridge", tags=["bridge"])

_ACCEPTED = "accepted"


class AcceptedResponse(BaseModel):
    """Acknowledgement for calls whose outcome arrives as an event."""

    status: Literal["accepted"]


class SendOtpRequest(BaseModel):
    """Payload for requesting an OTP."""

    phone_number: str = Field(min_length=1)


class VerifyOtpRequest(BaseModel):
    """Payload for submitting the received code."""

    code: str = Field(min_length=1)


class SessionResponse(BaseModel):
    """Derived signed-in state and live provider uid."""

    signed_in: bool
    uid: str | None


class PushTokenResponse(BaseModel):
    """Stored push registration token, if any."""

    token: str | None


class PushTokenUpdateRequest(BaseModel):
    """Rotated push registration token delivered by the platform."""

    token: str = Field(min_length=1)


class NotificationResponse(BaseModel):
    """Pending notification payload as JSON text."""

    data: str | None


class NotificationTapRequest(BaseModel):
    """Extras attached to a tapped notification."""

    extras: dict[str, str | int | float | bool | None]


class LogRequest(BaseModel):
    """One log line from the web app."""

    message: str


class BridgeEventResponse(BaseModel):
    """One queued bridge event."""

    name: str
    detail: JsonValue


class EventFeedResponse(BaseModel):
    """Events emitted since the previous poll, oldest first."""

    events: list[BridgeEventResponse]


@router.post(
    "/otp/send",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AcceptedResponse,
)
async def send_otp(payload: SendOtpRequest, request: Request) -> AcceptedResponse:
    """Request an OTP; poll events for `otpSent` or `otpError`."""
    runtime = _resolve_runtime(request)
    await runtime.bridge.send_otp(payload.phone_number)
    return AcceptedResponse(status=_ACCEPTED)


@router.post(
    "/otp/verify",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AcceptedResponse,
)
async def verify_otp(
    payload: VerifyOtpRequest,
    request: Request,
) -> AcceptedResponse:
    """Submit a code; poll events for `otpVerified` or `otpVerificationError`."""
    runtime = _resolve_runtime(request)
    await runtime.bridge.verify_otp(payload.code)
    return AcceptedResponse(status=_ACCEPTED)


@router.get("/session", response_model=SessionResponse)
async def get_session(request: Request) -> SessionResponse:
    """Return whether the user is signed in and the provider uid."""
    bridge = _resolve_runtime(request).bridge
    return SessionResponse(
        signed_in=await bridge.is_user_logged_in(),
        uid=bridge.get_current_user_uid(),
    )


@router.post(
    "/sign-out",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AcceptedResponse,
)
async def sign_out(request: Request) -> AcceptedResponse:
    """Sign out and wipe the local session."""
    await _resolve_runtime(request).bridge.sign_out()
    return AcceptedResponse(status=_ACCEPTED)


@router.get("/push-token", response_model=PushTokenResponse)
async def get_push_token(request: Request) -> PushTokenResponse:
    """Return the stored push token."""
    token = await _resolve_runtime(request).bridge.get_fcm_token()
    return PushTokenResponse(token=token)


@router.post(
    "/push-token",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AcceptedResponse,
)
async def update_push_token(
    payload: PushTokenUpdateRequest,
    request: Request,
) -> AcceptedResponse:
    """Store a rotated token and refresh it remotely when signed in."""
    await _resolve_runtime(request).bridge.on_new_token(payload.token)
    return AcceptedResponse(status=_ACCEPTED)


@router.get("/notification", response_model=NotificationResponse)
async def get_notification(request: Request) -> NotificationResponse:
    """Return the pending notification payload."""
    data = _resolve_runtime(request).bridge.get_notification_data()
    return NotificationResponse(data=data)


@router.post(
    "/notification",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AcceptedResponse,
)
async def record_notification_tap(
    payload: NotificationTapRequest,
    request: Request,
) -> AcceptedResponse:
    """Record a tapped notification delivered by the platform."""
    _resolve_runtime(request).bridge.on_notification_intent(payload.extras)
    return AcceptedResponse(status=_ACCEPTED)


@router.delete("/notification", status_code=status.HTTP_204_NO_CONTENT)
async def clear_notification(request: Request) -> None:
    """Forget the pending notification payload."""
    _resolve_runtime(request).bridge.clear_notification_data()


@router.post("/log", status_code=status.HTTP_204_NO_CONTENT)
async def post_log(payload: LogRequest, request: Request) -> None:
    """Forward one web app log line to the shell log."""
    _resolve_runtime(request).bridge.log(payload.message)


@router.get("/events", response_model=EventFeedResponse)
async def drain_events(request: Request) -> EventFeedResponse:
    """Return and forget all queued bridge events."""
    drained = _resolve_runtime(request).events.drain()
    return EventFeedResponse(
        events=[
            BridgeEventResponse(name=event.name, detail=event.detail)
            for event in drained
        ],
    )


def _resolve_runtime(request: Request) -> ShellRuntime:
    """Load the shell runtime from app state with explicit failure mode."""
    state_obj = cast("object", request.app.state)
    runtime_obj = getattr(state_obj, "shell_runtime", None)
    if not isinstance(runtime_obj, ShellRuntime):
        message = "Missing shell runtime: app.state.shell_runtime."
        raise TypeError(message)
    return runtime_obj
