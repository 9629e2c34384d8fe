"""Tests for src/config.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.config import ComplianceSettings, DatabaseSettings, Settings


class TestComplianceSettings:
    """Defaults and validation of the lifecycle policy."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GRACE_PERIOD_DAYS", raising=False)
        cfg = ComplianceSettings(_env_file=None)

        assert cfg.grace_period_days == 30
        assert cfg.audit_retention_years == 1
        assert cfg.audit_purge_years == 3
        assert cfg.metadata_pii_keys == ["email", "name", "phoneNumber", "address"]
        assert cfg.finalize_deletions_schedule == "30 4 * * *"
        assert cfg.scheduler_timezone == "UTC"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("GRACE_PERIOD_DAYS", "14")
        assert ComplianceSettings(_env_file=None).grace_period_days == 14

    @pytest.mark.parametrize("field", ["grace_period_days", "audit_retention_years", "audit_purge_years"])
    def test_intervals_must_be_positive(self, field):
        with pytest.raises(ValidationError, match="must be positive"):
            ComplianceSettings(_env_file=None, **{field: 0})


class TestSettings:
    """Root settings."""

    def test_log_level_is_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError, match="Invalid log level"):
            Settings(_env_file=None, log_level="chatty")

    def test_is_production(self):
        assert Settings(_env_file=None, environment="production").is_production is True
        assert Settings(_env_file=None, environment="development").is_production is False

    def test_sync_url_for_migrations(self):
        db = DatabaseSettings(_env_file=None, database_url="postgresql+asyncpg://u:p@h:5432/d")
        assert db.database_url_sync == "postgresql://u:p@h:5432/d"
