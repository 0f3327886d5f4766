"""
Configuration Management for Ledger Sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_EXPENSE_CATEGORIES = (
    "Food & Dining,Groceries,Housing,Utilities,Transportation,"
    "Health,Entertainment,Shopping,Subscriptions,Other"
)
DEFAULT_EXPENSE_SOURCE_TYPES = "Credit Card,Debit Card,Cash,Bank Transfer"


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class FirebaseSettings(BaseSettings):
    """Firebase Realtime Database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        extra="ignore"
    )

    database_url: str = Field(
        ...,
        description="Database URL, e.g. https://my-app-default-rtdb.firebaseio.com"
    )
    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for single REST requests"
    )
    stream_read_timeout_seconds: float = Field(
        default=90.0,
        gt=0,
        description="Read timeout for change streams (keep-alives arrive every 30s)"
    )

    @field_validator('database_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Firebase credentials file not found at {v}. "
                "Make sure it exists before connecting."
            )
        return v


class SyncSettings(BaseSettings):
    """Reconciliation behaviour and default taxonomies."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    quiet_window_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Debounce window for the expense change stream"
    )
    default_categories: str = Field(
        default=DEFAULT_EXPENSE_CATEGORIES,
        description="Comma-separated default expense categories"
    )
    default_source_types: str = Field(
        default=DEFAULT_EXPENSE_SOURCE_TYPES,
        description="Comma-separated default expense source types"
    )
    notification_duration_ms: int = Field(
        default=2000,
        ge=0,
        description="Duration hint passed to the notifier"
    )

    @property
    def default_categories_list(self) -> list[str]:
        """Get default categories as a list."""
        return _split_csv(self.default_categories)

    @property
    def default_source_types_list(self) -> list[str]:
        """Get default source types as a list."""
        return _split_csv(self.default_source_types)


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def firebase(self) -> FirebaseSettings:
        return FirebaseSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("firebase", "sync", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
