"""
Tests for configuration.
"""

import pytest
from pydantic import ValidationError

from pocket_ledger.config import get_settings
from pocket_ledger.config.settings import GoogleSheetsSettings, LedgerSettings
from pocket_ledger.models.ledger import WalletDeletionPolicy


class TestLedgerSettings:
    """Tests for LEDGER_* settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_WALLET_DELETION_POLICY", raising=False)
        settings = LedgerSettings(_env_file=None)
        assert settings.default_period_months == 6
        assert settings.recent_window_size == 7
        assert settings.intensity_min_weight == 15
        assert settings.wallet_deletion_policy == WalletDeletionPolicy.BLOCK

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LEDGER_WALLET_DELETION_POLICY", "cascade")
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
        settings = LedgerSettings(_env_file=None)
        assert settings.wallet_deletion_policy == WalletDeletionPolicy.CASCADE
        assert settings.storage_backend == "memory"

    def test_unknown_storage_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            LedgerSettings(_env_file=None)


class TestGoogleSheetsSettings:
    """Tests for GOOGLE_SHEETS_* settings."""

    def test_missing_credentials_file_warns(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(tmp_path / "missing.json"))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")
        with pytest.warns(UserWarning, match="credentials file not found"):
            settings = GoogleSheetsSettings()
        assert settings.transactions_sheet_name == "Transactions"

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
