"""Configuration module for otpsync."""

from .logging import bind_correlation_id, correlation_id, init_logging, mask_token
from .settings import AppSettings, SettingsValidationError, load_settings

__all__ = [
    "AppSettings",
    "SettingsValidationError",
    "bind_correlation_id",
    "correlation_id",
    "init_logging",
    "load_settings",
    "mask_token",
]
