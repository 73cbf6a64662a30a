"""
IFTA Engine - Configuration Management

Centralized configuration for environment variables and engine tunables.
This module ensures:
- Engine thresholds live in one place with the documented defaults
- Inconsistent values are reported before a report runs
- Environment-specific observability settings (dev/staging/prod)
"""

from functools import lru_cache
from typing import List
import logging

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    # ==================== ENVIRONMENT ====================
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (auto-enabled in development)"
    )

    # ==================== OBSERVABILITY ====================
    SERVICE_NAME: str = Field(
        default="iftaway-engine",
        description="Service name attached to structured logs"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )
    LOG_JSON: bool = Field(
        default=True,
        description="Emit JSON logs (plain text when False)"
    )
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking"
    )

    # ==================== REPORT ENGINE ====================
    MIN_REPORT_ENTRIES: int = Field(
        default=2,
        description="Minimum qualifying entries needed to build a report"
    )
    INSIGHT_LIST_SIZE: int = Field(
        default=3,
        description="Length of top/bottom and cheapest/expensive lists"
    )
    ANOMALY_STDDEV_MULTIPLIER: float = Field(
        default=2.0,
        description="Cost outlier threshold in standard deviations above the mean"
    )
    OFF_HOURS_START: int = Field(
        default=0,
        description="First off-hours hour of day (inclusive)"
    )
    OFF_HOURS_END: int = Field(
        default=4,
        description="End of off-hours (exclusive)"
    )
    FORECAST_TRAILING_MONTHS: int = Field(
        default=6,
        description="Months of history used for the cost forecast"
    )
    FORECAST_HORIZON_MONTHS: int = Field(
        default=3,
        description="Months projected by the cost forecast"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    # ==================== COMPUTED PROPERTIES ====================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def debug_enabled(self) -> bool:
        """Enable debug in development or when explicitly set"""
        return self.DEBUG or self.is_development

    def validate_engine_config(self) -> List[str]:
        """
        Validate engine tunables.
        Returns list of validation errors.
        """
        errors = []

        if self.MIN_REPORT_ENTRIES < 2:
            errors.append("MIN_REPORT_ENTRIES must be at least 2 (mileage needs two readings)")

        if self.INSIGHT_LIST_SIZE < 1:
            errors.append("INSIGHT_LIST_SIZE must be at least 1")

        if self.ANOMALY_STDDEV_MULTIPLIER < 0:
            errors.append("ANOMALY_STDDEV_MULTIPLIER cannot be negative")

        if not (0 <= self.OFF_HOURS_START <= 23 and 1 <= self.OFF_HOURS_END <= 24):
            errors.append("OFF_HOURS_START/OFF_HOURS_END must be hours of day")
        elif self.OFF_HOURS_START >= self.OFF_HOURS_END:
            errors.append("OFF_HOURS_START must be before OFF_HOURS_END")

        if self.FORECAST_TRAILING_MONTHS < 1:
            errors.append("FORECAST_TRAILING_MONTHS must be at least 1")

        if self.FORECAST_HORIZON_MONTHS < 1:
            errors.append("FORECAST_HORIZON_MONTHS must be at least 1")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once and cached for the application lifetime.
    """
    settings = Settings()

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.debug_enabled}")

    errors = settings.validate_engine_config()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        raise ValueError(f"Engine configuration invalid: {', '.join(errors)}")

    return settings


# ==================== ENVIRONMENT VALIDATION ====================

def validate_environment(settings: Settings = None) -> dict:
    """
    Validate configuration without raising.

    Returns a status dict with validation results.
    """
    settings = settings or Settings()

    status = {
        "valid": True,
        "environment": settings.ENVIRONMENT,
        "errors": [],
        "warnings": [],
        "variables": {}
    }

    optional_vars = [
        ("SENTRY_DSN", settings.SENTRY_DSN, "Error tracking disabled"),
    ]

    for name, value, warning in optional_vars:
        if not value:
            status["warnings"].append(warning)
            status["variables"][name] = "Not set"
        else:
            status["variables"][name] = "Set"

    errors = settings.validate_engine_config()
    if errors:
        status["errors"].extend(errors)
        status["valid"] = False

    return status
