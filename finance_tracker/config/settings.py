"""
Settings for the ledger service.

Each group reads its own environment prefix. AppSettings holds the
reporting and validation knobs and also reads a local .env file.
"""

import warnings
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets ledger store configuration."""

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

    # Worksheet titles
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Worksheet holding expense rows"
    )
    bills_sheet_name: str = Field(
        default="Bills",
        description="Worksheet holding bill rows"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Append-only worksheet for audit events"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing key file only warns; secrets are often mounted after import."""
        if not Path(v).exists():
            warnings.warn(
                f"Service account key {v} does not exist yet; "
                "the google_sheets backend will fail to connect without it."
            )
        return v


class ApiSettings(BaseSettings):
    """HTTP API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore"
    )

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    owner_header: str = Field(
        default="X-Owner-Id",
        description="Header carrying the owner id set by the identity provider"
    )


class AppSettings(BaseSettings):
    """Storage backend choice, report defaults and validation limits."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="development, staging or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level"
    )
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Ledger store implementation"
    )

    # Reporting
    trend_threshold_percent: float = Field(
        default=5.0,
        ge=0.0,
        description="Growth percentage beyond which a change counts as a trend"
    )
    upcoming_window_days: int = Field(
        default=7,
        ge=0,
        description="Pending bills due within this many days are 'upcoming'"
    )
    dashboard_upcoming_days: int = Field(
        default=30,
        ge=0,
        description="Horizon of the dashboard's upcoming-bills total"
    )
    dashboard_history_months: int = Field(
        default=6,
        ge=1,
        le=24,
        description="Months of expense history shown on the dashboard"
    )

    # Listing
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    # Sanity limits
    max_entry_amount: float = Field(
        default=1000000.0,
        description="Amounts above this are accepted with a warning"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        description="Expense dates further ahead than this only warn"
    )


class Settings(BaseSettings):
    """Entry point to the settings groups."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Each group is read on access, so the memory backend runs without
    # any Google Sheets variables set.

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings. Tests call get_settings.cache_clear() between runs."""
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Try to load every settings group.

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries for the ones that failed. Useful for startup checks.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    for name in ("app", "api", "google_sheets"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
