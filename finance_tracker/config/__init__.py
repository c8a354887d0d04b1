"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    CloudinarySettings,
    DropboxSettings,
    GoogleSheetsSettings,
    Settings,
    StreamlitAuthSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CloudinarySettings",
    "DropboxSettings",
    "GoogleSheetsSettings",
    "Settings",
    "StreamlitAuthSettings",
    "get_settings",
    "validate_all_settings",
]
