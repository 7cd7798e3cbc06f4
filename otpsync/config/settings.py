"""Typed application settings loaded from static environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from collections.abc import Mapping

LogLevel = str

ENV_DB_PATH = "OTPSYNC_DB_PATH"
ENV_LOG_LEVEL = "OTPSYNC_LOG_LEVEL"
ENV_SUPABASE_URL = "OTPSYNC_SUPABASE_URL"
ENV_SUPABASE_ANON_KEY = "OTPSYNC_SUPABASE_ANON_KEY"
ENV_FIREBASE_API_KEY = "OTPSYNC_FIREBASE_API_KEY"
ENV_RECAPTCHA_TOKEN = "OTPSYNC_RECAPTCHA_TOKEN"  # noqa: S105
ENV_VERIFICATION_TIMEOUT_SECONDS = "OTPSYNC_VERIFICATION_TIMEOUT_SECONDS"
ENV_HTTP_TIMEOUT_SECONDS = "OTPSYNC_HTTP_TIMEOUT_SECONDS"
ENV_BRIDGE_TOKEN = "OTPSYNC_BRIDGE_TOKEN"  # noqa: S105

DEFAULT_DB_PATH = Path("/data/otpsync.db")
DEFAULT_LOG_LEVEL: LogLevel = "INFO"
DEFAULT_VERIFICATION_TIMEOUT_SECONDS = 60
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0

VALID_LOG_LEVELS: frozenset[LogLevel] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
)
VALID_URL_SCHEMES: frozenset[str] = frozenset({"http", "https"})


class SettingsValidationError(ValueError):
    """Raised when static settings env vars contain invalid values."""

    @classmethod
    def for_empty_value(cls, env_var: str) -> SettingsValidationError:
        """Build error for empty non-optional env var values."""
        message = f"Invalid {env_var}: value cannot be empty."
        return cls(message)

    @classmethod
    def for_missing_value(cls, env_var: str) -> SettingsValidationError:
        """Build error for required env vars that are not set."""
        message = f"Missing {env_var}: value is required."
        return cls(message)

    @classmethod
    def for_invalid_choice(
        cls,
        env_var: str,
        value: str,
        allowed_values: str,
    ) -> SettingsValidationError:
        """Build error for enum-like env vars with fixed allowlists."""
        message = f"Invalid {env_var}: {value!r}. Allowed values: {allowed_values}."
        return cls(message)

    @classmethod
    def for_invalid_url(cls, env_var: str, value: str) -> SettingsValidationError:
        """Build error for URL env vars without an http(s) scheme and host."""
        message = f"Invalid {env_var}: {value!r}. Expected an http(s) URL."
        return cls(message)

    @classmethod
    def for_non_positive_number(
        cls,
        env_var: str,
        value: str,
    ) -> SettingsValidationError:
        """Build error for numeric env vars that must be greater than zero."""
        message = f"Invalid {env_var}: {value!r}. Expected a positive number."
        return cls(message)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Resolved static configuration values for process startup."""

    db_path: Path
    log_level: LogLevel
    supabase_url: str
    supabase_anon_key: str
    firebase_api_key: str | None
    recaptcha_token: str | None
    verification_timeout_seconds: int
    http_timeout_seconds: float
    bridge_token: str | None


def load_settings(environ: Mapping[str, str] | None = None) -> AppSettings:
    """Load and validate static settings from process environment."""
    env = os.environ if environ is None else environ

    return AppSettings(
        db_path=_read_db_path(env),
        log_level=_read_log_level(env),
        supabase_url=_read_supabase_url(env),
        supabase_anon_key=_read_required(env, ENV_SUPABASE_ANON_KEY),
        firebase_api_key=_read_optional(env, ENV_FIREBASE_API_KEY),
        recaptcha_token=_read_optional(env, ENV_RECAPTCHA_TOKEN),
        verification_timeout_seconds=_read_verification_timeout(env),
        http_timeout_seconds=_read_http_timeout(env),
        bridge_token=_read_optional(env, ENV_BRIDGE_TOKEN),
    )


def _read_db_path(environ: Mapping[str, str]) -> Path:
    raw = environ.get(ENV_DB_PATH)
    if raw is None:
        return DEFAULT_DB_PATH
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(ENV_DB_PATH)
    return Path(value).expanduser()


def _read_log_level(environ: Mapping[str, str]) -> LogLevel:
    raw = environ.get(ENV_LOG_LEVEL)
    if raw is None:
        return DEFAULT_LOG_LEVEL
    value = raw.strip().upper()
    if value in VALID_LOG_LEVELS:
        return value
    allowed = ", ".join(sorted(VALID_LOG_LEVELS))
    raise SettingsValidationError.for_invalid_choice(ENV_LOG_LEVEL, raw, allowed)


def _read_supabase_url(environ: Mapping[str, str]) -> str:
    value = _read_required(environ, ENV_SUPABASE_URL)
    parts = urlsplit(value)
    if parts.scheme not in VALID_URL_SCHEMES or not parts.netloc:
        raise SettingsValidationError.for_invalid_url(ENV_SUPABASE_URL, value)
    return value.rstrip("/")


def _read_required(environ: Mapping[str, str], env_var: str) -> str:
    raw = environ.get(env_var)
    if raw is None:
        raise SettingsValidationError.for_missing_value(env_var)
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(env_var)
    return value


def _read_optional(environ: Mapping[str, str], env_var: str) -> str | None:
    raw = environ.get(env_var)
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    return value


def _read_verification_timeout(environ: Mapping[str, str]) -> int:
    raw = environ.get(ENV_VERIFICATION_TIMEOUT_SECONDS)
    if raw is None:
        return DEFAULT_VERIFICATION_TIMEOUT_SECONDS
    value = raw.strip()
    if not value.isdigit() or int(value) <= 0:
        raise SettingsValidationError.for_non_positive_number(
            ENV_VERIFICATION_TIMEOUT_SECONDS,
            raw,
        )
    return int(value)


def _read_http_timeout(environ: Mapping[str, str]) -> float:
    raw = environ.get(ENV_HTTP_TIMEOUT_SECONDS)
    if raw is None:
        return DEFAULT_HTTP_TIMEOUT_SECONDS
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise SettingsValidationError.for_non_positive_number(
            ENV_HTTP_TIMEOUT_SECONDS,
            raw,
        ) from exc
    if not value > 0 or value == float("inf"):
        raise SettingsValidationError.for_non_positive_number(
            ENV_HTTP_TIMEOUT_SECONDS,
            raw,
        )
    return value
