"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per collection
    transactions_sheet_name: str = Field(
        default="transactions",
        description="Name of the sheet holding the transactions collection"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class DropboxSettings(BaseSettings):
    """Dropbox attachment upload configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DROPBOX_",
        extra="ignore"
    )

    access_token: str = Field(
        ...,
        description="Dropbox OAuth2 bearer token"
    )
    upload_folder: str = Field(
        default="/finance-tracker",
        description="Destination folder for uploaded attachments"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for each Dropbox request"
    )

    @field_validator('upload_folder')
    @classmethod
    def normalize_folder(cls, v: str) -> str:
        """Dropbox paths are absolute and have no trailing slash."""
        v = "/" + v.strip().strip("/")
        return "" if v == "/" else v


class CloudinarySettings(BaseSettings):
    """Cloudinary attachment upload configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        extra="ignore"
    )

    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )
    folder: str = Field(
        default="finance_tracker",
        description="Folder attachments are uploaded into"
    )


class StreamlitAuthSettings(BaseSettings):
    """Streamlit OIDC login configuration (the provider itself lives in secrets.toml)."""

    model_config = SettingsConfigDict(
        env_prefix="STREAMLIT_AUTH_",
        extra="ignore"
    )

    provider: Optional[str] = Field(
        default=None,
        description="Named provider in [auth.<provider>], or None for the default [auth] block"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Backends
    storage_backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Document store backing the transactions collection"
    )
    upload_backend: Literal["none", "dropbox", "cloudinary"] = Field(
        default="none",
        description="Attachment uploader, or 'none' to disable attachments"
    )
    auth_backend: Literal["local", "streamlit"] = Field(
        default="local",
        description="Session provider"
    )
    audit_to_sheets: bool = Field(
        default=False,
        description="Also append audit events to the Google Sheets audit worksheet"
    )

    # Behaviour
    strict_mode: bool = Field(
        default=False,
        description="Raise NotFoundError when editing an unknown transaction"
    )

    # Local session (standalone variant)
    local_user_id: str = Field(
        default="local",
        min_length=1,
        description="Owner id used by the local session provider"
    )
    local_user_name: str = Field(
        default="Me",
        description="Display name used by the local session provider"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=150,
        description="Maximum attachment size in MB"
    )

    # Display
    currency_symbol: str = Field(
        default="₹",
        max_length=5,
        description="Currency symbol shown next to amounts"
    )

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def dropbox(self) -> DropboxSettings:
        return DropboxSettings()

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def streamlit_auth(self) -> StreamlitAuthSettings:
        return StreamlitAuthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<setting_name>_error" entry for each failure.
    Useful for startup checks and the settings panel.
    """
    results = {}
    settings = get_settings()

    for name in ("app", "google_sheets", "dropbox", "cloudinary", "streamlit_auth"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
