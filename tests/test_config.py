"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from ledger_sync.config import (
    AppSettings,
    FirebaseSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestFirebaseSettings:
    """Tests for FirebaseSettings."""

    def test_reads_prefixed_env(self, monkeypatch, tmp_path):
        credentials = tmp_path / "service-account.json"
        credentials.write_text("{}")
        monkeypatch.setenv("FIREBASE_DATABASE_URL", "https://ledger-default-rtdb.firebaseio.com/")
        monkeypatch.setenv("FIREBASE_CREDENTIALS_PATH", str(credentials))

        settings = FirebaseSettings()
        assert settings.database_url == "https://ledger-default-rtdb.firebaseio.com"
        assert settings.credentials_path == str(credentials)
        assert settings.request_timeout_seconds == 30.0

    def test_missing_credentials_file_warns(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FIREBASE_DATABASE_URL", "https://ledger.firebaseio.com")
        monkeypatch.setenv("FIREBASE_CREDENTIALS_PATH", str(tmp_path / "missing.json"))
        with pytest.warns(UserWarning):
            FirebaseSettings()

    def test_database_url_required(self, monkeypatch):
        monkeypatch.delenv("FIREBASE_DATABASE_URL", raising=False)
        monkeypatch.delenv("FIREBASE_CREDENTIALS_PATH", raising=False)
        with pytest.raises(ValidationError):
            FirebaseSettings()


class TestSyncSettings:
    """Tests for SyncSettings."""

    def test_defaults(self, monkeypatch):
        for name in (
            "LEDGER_QUIET_WINDOW_SECONDS",
            "LEDGER_DEFAULT_CATEGORIES",
            "LEDGER_DEFAULT_SOURCE_TYPES",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = SyncSettings()
        assert settings.quiet_window_seconds == 0.5
        assert settings.notification_duration_ms == 2000
        assert "Groceries" in settings.default_categories_list
        assert settings.default_source_types_list == [
            "Credit Card", "Debit Card", "Cash", "Bank Transfer"
        ]

    def test_csv_lists_are_trimmed(self, monkeypatch):
        monkeypatch.setenv("LEDGER_DEFAULT_SOURCE_TYPES", " Cash , ,Card ")
        assert SyncSettings().default_source_types_list == ["Cash", "Card"]

    def test_quiet_window_bounds(self, monkeypatch):
        monkeypatch.setenv("LEDGER_QUIET_WINDOW_SECONDS", "-1")
        with pytest.raises(ValidationError):
            SyncSettings()


class TestSettingsContainer:
    """Tests for the cached root settings."""

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_app_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", " debug ")
        assert AppSettings().log_level == "DEBUG"

    def test_unknown_log_level_rejected(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_validate_all_settings_reports_errors(self, monkeypatch):
        monkeypatch.delenv("FIREBASE_DATABASE_URL", raising=False)
        monkeypatch.delenv("FIREBASE_CREDENTIALS_PATH", raising=False)

        results = validate_all_settings()
        assert results["firebase"] is False
        assert "firebase_error" in results
        assert results["sync"] is True
        assert results["app"] is True
