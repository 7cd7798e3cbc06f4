"""Tests for the HTTP bridge routes, bearer auth and health endpoint."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Protocol, cast, runtime_checkable

import httpx
from fastapi.testclient import TestClient

from otpsync.api.app import CORRELATION_ID_HEADER, create_app
from otpsync.sync import USER_PROFILES_PATH
from tests.mocks.mock_phone_auth_provider import MockPhoneAuthProvider

if TYPE_CHECKING:
    from pathlib import Path

    from fastapi import FastAPI

    from otpsync.auth import PhoneAuthProvider
    from otpsync.config import AppSettings

BRIDGE_TOKEN = "bridge-api-token"  # noqa: S105
AUTH_HEADERS = {"Authorization": f"Bearer {BRIDGE_TOKEN}"}
PHONE_NUMBER = "+15550001111"


class BackendRecorder:
    """Fake backend accepting every request."""

    def __init__(self) -> None:
        """Start with no requests seen."""
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        """Record the path and answer 201."""
        self.paths.append(request.url.path)
        return httpx.Response(201)


def _build_app(
    *,
    tmp_path: Path,
    monkeypatch: object,
    provider: MockPhoneAuthProvider,
    backend: BackendRecorder,
    bridge_token: str | None = BRIDGE_TOKEN,
) -> FastAPI:
    patcher = _as_monkeypatch(monkeypatch)
    patcher.setenv("OTPSYNC_DB_PATH", (tmp_path / "bridge-api.sqlite3").as_posix())
    patcher.setenv("OTPSYNC_SUPABASE_URL", "https://backend.example.test")
    patcher.setenv("OTPSYNC_SUPABASE_ANON_KEY", "anon-key")
    if bridge_token is None:
        patcher.delenv("OTPSYNC_BRIDGE_TOKEN", raising=False)
    else:
        patcher.setenv("OTPSYNC_BRIDGE_TOKEN", bridge_token)

    def _provider_factory(
        settings: AppSettings,
        client: httpx.AsyncClient,
    ) -> PhoneAuthProvider:
        _ = (settings, client)
        return provider

    app = create_app()
    app.state.phone_auth_provider_factory = _provider_factory
    app.state.http_transport = httpx.MockTransport(backend)
    return app


def _event_names(client: TestClient) -> list[str]:
    response = client.get("/bridge/events", headers=AUTH_HEADERS)
    if response.status_code != HTTPStatus.OK:
        raise AssertionError
    payload = cast("dict[str, list[dict[str, object]]]", response.json())
    return [str(event["name"]) for event in payload["events"]]


def test_health_is_public(tmp_path: Path, monkeypatch: object) -> None:
    """Ensure GET /health needs no token and echoes a correlation id."""
    app = _build_app(
        tmp_path=tmp_path,
        monkeypatch=monkeypatch,
        provider=MockPhoneAuthProvider(),
        backend=BackendRecorder(),
    )

    with TestClient(app) as client:
        response = client.get("/health", headers={CORRELATION_ID_HEADER: "corr-1"})

    if response.status_code != HTTPStatus.OK:
        raise AssertionError
    if cast("dict[str, object]", response.json())["status"] != "ok":
        raise AssertionError
    if response.headers.get(CORRELATION_ID_HEADER) != "corr-1":
        raise AssertionError


def test_bridge_routes_reject_missing_and_invalid_tokens(
    tmp_path: Path,
    monkeypatch: object,
) -> None:
    """Ensure bridge routes require the configured bearer token."""
    app = _build_app(
        tmp_path=tmp_path,
        monkeypatch=monkeypatch,
        provider=MockPhoneAuthProvider(),
        backend=BackendRecorder(),
    )

    with TestClient(app) as client:
        missing = client.get("/bridge/session")
        invalid = client.get(
            "/bridge/session",
            headers={"Authorization": "Bearer wrong-token"},
        )
        valid = client.get("/bridge/session", headers=AUTH_HEADERS)

    if missing.status_code != HTTPStatus.UNAUTHORIZED:
        raise AssertionError
    if invalid.status_code != HTTPStatus.UNAUTHORIZED:
        raise AssertionError
    if valid.status_code != HTTPStatus.OK:
        raise AssertionError


def test_unset_bridge_token_denies_everything(
    tmp_path: Path,
    monkeypatch: object,
) -> None:
    """Ensure the bridge is closed when no token is configured."""
    app = _build_app(
        tmp_path=tmp_path,
        monkeypatch=monkeypatch,
        provider=MockPhoneAuthProvider(),
        backend=BackendRecorder(),
        bridge_token=None,
    )

    with TestClient(app) as client:
        response = client.get("/bridge/session", headers=AUTH_HEADERS)

    if response.status_code != HTTPStatus.UNAUTHORIZED:
        raise AssertionError


def test_otp_flow_over_http(tmp_path: Path, monkeypatch: object) -> None:
    """Ensure send, verify, session and sign-out work end to end."""
    provider = MockPhoneAuthProvider()
    backend = BackendRecorder()
    app = _build_app(
        tmp_path=tmp_path,
        monkeypatch=monkeypatch,
        provider=provider,
        backend=backend,
    )

    with TestClient(app) as client:
        sent = client.post(
            "/bridge/otp/send",
            json={"phone_number": PHONE_NUMBER},
            headers=AUTH_HEADERS,
        )
        verified = client.post(
            "/bridge/otp/verify",
            json={"code": "123456"},
            headers=AUTH_HEADERS,
        )
        names_after_verify = _event_names(client)
        session = client.get("/bridge/session", headers=AUTH_HEADERS)
        signed_out = client.post("/bridge/sign-out", headers=AUTH_HEADERS)
        names_after_sign_out = _event_names(client)
        session_after = client.get("/bridge/session", headers=AUTH_HEADERS)

    if sent.status_code != HTTPStatus.ACCEPTED:
        raise AssertionError
    if verified.status_code != HTTPStatus.ACCEPTED:
        raise AssertionError
    if names_after_verify != ["otpSent", "otpVerified"]:
        raise AssertionError
    if session.json() != {"signed_in": True, "uid": provider.identity.uid}:
        raise AssertionError
    if USER_PROFILES_PATH not in backend.paths:
        raise AssertionError
    if signed_out.status_code != HTTPStatus.ACCEPTED:
        raise AssertionError
    if names_after_sign_out != ["userSignedOut"]:
        raise AssertionError
    if session_after.json() != {"signed_in": False, "uid": None}:
        raise AssertionError


def test_push_token_and_notification_routes(
    tmp_path: Path,
    monkeypatch: object,
) -> None:
    """Ensure token delivery and notification payloads round through the bridge."""
    app = _build_app(
        tmp_path=tmp_path,
        monkeypatch=monkeypatch,
        provider=MockPhoneAuthProvider(),
        backend=BackendRecorder(),
    )

    with TestClient(app) as client:
        empty = client.get("/bridge/push-token", headers=AUTH_HEADERS)
        updated = client.post(
            "/bridge/push-token",
            json={"token": "token-1"},
            headers=AUTH_HEADERS,
        )
        stored = client.get("/bridge/push-token", headers=AUTH_HEADERS)
        tapped = client.post(
            "/bridge/notification",
            json={"extras": {"type": "chat", "room": 7}},
            headers=AUTH_HEADERS,
        )
        pending = client.get("/bridge/notification", headers=AUTH_HEADERS)
        cleared = client.delete("/bridge/notification", headers=AUTH_HEADERS)
        after_clear = client.get("/bridge/notification", headers=AUTH_HEADERS)
        logged = client.post(
            "/bridge/log",
            json={"message": "hello from the page"},
            headers=AUTH_HEADERS,
        )
        names = _event_names(client)

    if empty.json() != {"token": None}:
        raise AssertionError
    if updated.status_code != HTTPStatus.ACCEPTED:
        raise AssertionError
    if stored.json() != {"token": "token-1"}:
        raise AssertionError
    if tapped.status_code != HTTPStatus.ACCEPTED:
        raise AssertionError
    if pending.json() != {"data": '{"type": "chat", "room": "7"}'}:
        raise AssertionError
    if cleared.status_code != HTTPStatus.NO_CONTENT:
        raise AssertionError
    if after_clear.json() != {"data": None}:
        raise AssertionError
    if logged.status_code != HTTPStatus.NO_CONTENT:
        raise AssertionError
    if names != ["fcmTokenUpdated", "notificationTapped"]:
        raise AssertionError


def test_startup_publishes_stored_token(tmp_path: Path, monkeypatch: object) -> None:
    """Ensure a relaunch announces the token stored by a previous run."""
    provider = MockPhoneAuthProvider()
    backend = BackendRecorder()
    first = _build_app(
        tmp_path=tmp_path,
        monkeypatch=monkeypatch,
        provider=provider,
        backend=backend,
    )
    with TestClient(first) as client:
        _ = client.post(
            "/bridge/push-token",
            json={"token": "token-1"},
            headers=AUTH_HEADERS,
        )

    second = _build_app(
        tmp_path=tmp_path,
        monkeypatch=monkeypatch,
        provider=MockPhoneAuthProvider(),
        backend=backend,
    )
    with TestClient(second) as client:
        names = _event_names(client)

    if names != ["fcmTokenReady"]:
        raise AssertionError


def _as_monkeypatch(value: object) -> MonkeyPatchLike:
    """Narrow monkeypatch fixture object to setenv-capable helper."""
    if not isinstance(value, MonkeyPatchLike):
        raise TypeError
    return value


@runtime_checkable
class MonkeyPatchLike(Protocol):
    """Runtime-checkable subset of pytest monkeypatch fixture behavior."""

    def setenv(self, name: str, value: str) -> None:
        """Set environment variable for duration of current test."""

    def delenv(self, name: str, *, raising: bool = True) -> None:
        """Remove environment variable for duration of current test."""
