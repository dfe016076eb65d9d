"""
Configuration Management for Shop Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: payroll split, report windows,
storage backend selection and the external advice service.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Key-value storage backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    backend: Literal["memory", "local", "google_sheets"] = Field(
        default="local",
        description="Which key-value store holds the ledger"
    )
    data_dir: Path = Field(
        default=Path(".shop_ledger"),
        description="Directory for the local JSON store"
    )


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
    store_sheet_name: str = Field(
        default="LedgerStore",
        description="Name of the sheet holding the key-value blobs"
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


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for business advice."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=512,
        ge=64,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Give up on the advice call after this many seconds"
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
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Structured log renderer"
    )

    currency_symbol: str = Field(
        default="₹",
        description="Currency symbol used in notes, prompts and the UI"
    )

    # Payroll policy
    weekly_paid_now_fraction: Decimal = Field(
        default=Decimal("0.40"),
        ge=0,
        le=1,
        description="Share of weekly base pay handed over immediately"
    )
    weekly_held_fraction: Decimal = Field(
        default=Decimal("0.60"),
        ge=0,
        le=1,
        description="Share of weekly base pay held until month end"
    )

    # Reports
    trend_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="Number of calendar days in the daily trend"
    )
    advice_min_transactions: int = Field(
        default=3,
        ge=0,
        description="Ask for advice only once this many transactions exist"
    )
    advice_recent_count: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many recent transactions go into the advice prompt"
    )

    # Sanity cap for a single entry
    max_transaction_amount: Decimal = Field(
        default=Decimal("10000000"),
        gt=0,
        description="Largest amount accepted for one transaction"
    )

    @model_validator(mode='after')
    def validate_payroll_split(self) -> 'AppSettings':
        """The paid-now and held shares must cover the whole weekly pay."""
        if self.weekly_paid_now_fraction + self.weekly_held_fraction != 1:
            raise ValueError(
                "weekly_paid_now_fraction and weekly_held_fraction must sum to 1"
            )
        return self


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

    # Sub-settings are built lazily so a missing Gemini key or Sheets
    # credentials do not stop the ledger itself from starting.

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries describing what is wrong. Useful for startup checks.
    """
    results: dict = {}

    settings = get_settings()

    for name in ("app", "storage", "google_sheets", "gemini"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results


def optional_gemini_settings() -> Optional[GeminiSettings]:
    """Gemini settings, or None when no API key is configured."""
    try:
        return get_settings().gemini
    except ValueError:
        return None
