"""
Configuration Management for Household Finance

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Timings that the UI depends on (simulated round trips, notification
lifetime) are settings so tests can run them at zero.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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

    # Sheet names within the spreadsheet
    users_sheet_name: str = Field(default="Users")
    expenses_sheet_name: str = Field(default="Expenses")
    budgets_sheet_name: str = Field(default="Budgets")
    audit_sheet_name: str = Field(default="AuditLog")

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

    # Storage
    storage_backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Which store implementation backs the orchestrator"
    )
    seed_demo_data: bool = Field(
        default=True,
        description="Seed the in-memory store with a demo household"
    )

    # Feedback
    notification_ttl_ms: int = Field(
        default=3000,
        ge=0,
        description="How long a success notification stays visible"
    )

    # Simulated round trips
    login_delay_ms: int = Field(default=500, ge=0)
    register_delay_ms: int = Field(default=800, ge=0)
    profile_update_delay_ms: int = Field(default=500, ge=0)

    @property
    def notification_ttl_seconds(self) -> float:
        return self.notification_ttl_ms / 1000

    @property
    def login_delay_seconds(self) -> float:
        return self.login_delay_ms / 1000

    @property
    def register_delay_seconds(self) -> float:
        return self.register_delay_ms / 1000

    @property
    def profile_update_delay_seconds(self) -> float:
        return self.profile_update_delay_ms / 1000


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Google Sheets is only checked when it is the configured backend.
    """
    results = {}

    settings = get_settings()

    try:
        app = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)
        return results

    if app.storage_backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
