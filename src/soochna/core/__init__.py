"""Configuration for the Soochna service."""

from soochna.core.config import (
    AuthSettings,
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    NotificationSettings,
    Settings,
    SMTPSettings,
    StorageSettings,
)
from soochna.core.settings import clear_settings_cache, configure_logging, get_settings

__all__ = [
    "AuthSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "Environment",
    "NotificationSettings",
    "SMTPSettings",
    "Settings",
    "StorageSettings",
    "clear_settings_cache",
    "configure_logging",
    "get_settings",
]
