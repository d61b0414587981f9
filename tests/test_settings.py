"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from budget_engine.config import BudgetSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestBudgetSettings:
    """Tests for the BUDGET_ settings group."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BUDGET_STORAGE_BACKEND", raising=False)
        settings = BudgetSettings()
        assert settings.storage_backend == "memory"
        assert settings.default_transaction_description == "Budget transaction"
        assert settings.seed_default_categories is True

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("BUDGET_STORAGE_BACKEND", "google_sheets")
        monkeypatch.setenv("BUDGET_SEED_DEFAULT_CATEGORIES", "false")
        settings = BudgetSettings()
        assert settings.storage_backend == "google_sheets"
        assert settings.seed_default_categories is False

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("BUDGET_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            BudgetSettings()


class TestValidateAllSettings:
    """Tests for the settings status report."""

    def test_missing_sheets_config_is_reported(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        monkeypatch.delenv("BUDGET_STORAGE_BACKEND", raising=False)

        status = validate_all_settings()

        assert status["budget"] is True
        assert status["app"] is True
        assert status["google_sheets"] is False
        assert "google_sheets_error" in status
