"""Engine configuration using pydantic-settings.

All values can be overridden via ``BILLING_ENGINE_*`` environment variables or
a ``.env`` file. For nested settings, use double underscore:
BILLING_ENGINE_RETRY_JITTER__ENABLED=true
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import ProrationMethod


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RetryJitterSettings(BaseModel):
    """Randomised spreading of retry times."""

    enabled: bool = Field(False, description="Apply jitter to retry delays")
    seed: int = Field(0, description="Seed for reproducible jitter")
    ratio: float = Field(0.25, ge=0, lt=1, description="Maximum relative spread")


class BillingEngineSettings(BaseSettings):
    """Billing engine settings."""

    model_config = SettingsConfigDict(
        env_prefix="BILLING_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Money
    default_currency: str = Field("TWD", description="Currency for new amounts")
    default_locale: str = Field("zh_TW", description="Locale for formatting amounts")

    # Delinquency
    grace_period_days: int = Field(3, ge=0, description="Days of grace after a failed charge")
    max_grace_extensions: int = Field(1, ge=0, description="Grace windows before expiry")

    # Orchestration
    gateway_timeout_seconds: float = Field(30.0, gt=0, description="Gateway call timeout")
    batch_concurrency: int = Field(10, ge=1, description="Concurrent runs in a batch")

    proration_method: ProrationMethod = Field(
        ProrationMethod.CADENCE_AVERAGE, description="Proration denominator"
    )
    retry_jitter: RetryJitterSettings = Field(default_factory=RetryJitterSettings)

    # Logging
    log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
    log_format: str = Field("json", description="Log format (json or console)")

    @field_validator("default_currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value


# Global settings instance
_settings: BillingEngineSettings | None = None


def get_settings() -> BillingEngineSettings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = BillingEngineSettings()
    return _settings


def set_settings(settings: BillingEngineSettings) -> None:
    """Replace the global settings (mainly for testing)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings
    _settings = None
