"""Tests for engine settings."""

import pytest
from pydantic import ValidationError

from recurring_billing.enums import ProrationMethod
from recurring_billing.settings import (
    BillingEngineSettings,
    LogLevel,
    get_settings,
    reset_settings,
    set_settings,
)


@pytest.mark.unit
class TestBillingEngineSettings:
    def test_defaults(self):
        settings = BillingEngineSettings(_env_file=None)
        assert settings.default_currency == "TWD"
        assert settings.grace_period_days == 3
        assert settings.max_grace_extensions == 1
        assert settings.gateway_timeout_seconds == 30.0
        assert settings.batch_concurrency == 10
        assert settings.proration_method is ProrationMethod.CADENCE_AVERAGE
        assert settings.retry_jitter.enabled is False
        assert settings.log_level is LogLevel.INFO
        assert settings.log_format == "json"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BILLING_ENGINE_GRACE_PERIOD_DAYS", "5")
        monkeypatch.setenv("BILLING_ENGINE_DEFAULT_CURRENCY", "usd")
        monkeypatch.setenv("BILLING_ENGINE_PRORATION_METHOD", "exact")
        monkeypatch.setenv("BILLING_ENGINE_RETRY_JITTER__ENABLED", "true")
        monkeypatch.setenv("BILLING_ENGINE_RETRY_JITTER__SEED", "99")

        settings = BillingEngineSettings(_env_file=None)

        assert settings.grace_period_days == 5
        assert settings.default_currency == "USD"
        assert settings.proration_method is ProrationMethod.EXACT
        assert settings.retry_jitter.enabled is True
        assert settings.retry_jitter.seed == 99

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("BILLING_ENGINE_BATCH_CONCURRENCY=4\n")
        assert BillingEngineSettings(_env_file=env_file).batch_concurrency == 4

    def test_log_format_validated(self):
        assert BillingEngineSettings(_env_file=None, log_format="CONSOLE").log_format == "console"
        with pytest.raises(ValidationError):
            BillingEngineSettings(_env_file=None, log_format="xml")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"grace_period_days": -1},
            {"gateway_timeout_seconds": 0},
            {"batch_concurrency": 0},
            {"retry_jitter": {"ratio": 1.0}},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            BillingEngineSettings(_env_file=None, **overrides)


@pytest.mark.unit
class TestSettingsSingleton:
    def test_set_and_get(self):
        custom = BillingEngineSettings(_env_file=None, grace_period_days=9)
        set_settings(custom)
        assert get_settings() is custom

    def test_reset_builds_fresh_instance(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("BILLING_ENGINE_GRACE_PERIOD_DAYS", "6")
        reset_settings()
        settings = get_settings()
        assert settings.grace_period_days == 6
        assert get_settings() is settings
