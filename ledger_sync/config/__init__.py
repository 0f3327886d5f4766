"""Configuration package."""

from ledger_sync.config.settings import (
    AppSettings,
    FirebaseSettings,
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FirebaseSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
