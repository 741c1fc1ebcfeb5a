# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
learner progress engine. Settings are loaded from environment variables
with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.analytics.report_freshness_minutes)
    30
"""

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Activity store database configuration.

    The database holds learner activity (lesson/topic progress, quiz
    attempts, study sessions), the shared catalogs, achievement unlocks
    and daily reports.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROGRESS_DB_",
        extra="ignore",
    )

    user: str = "progress"
    password: SecretStr = SecretStr("progress_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "learner_progress"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class AnalyticsSettings(BaseSettings):
    """Progress analytics, achievement and report configuration.

    The report timezone is the single calendar used project-wide for
    "today", "yesterday", weekdays, hour-of-day checks and report dates.

    Attributes:
        report_timezone: IANA timezone name for calendar computations.
        report_freshness_minutes: How long a daily report is reused.
        struggling_threshold: Mean quiz percentage below which a topic struggles.
        stale_progress_days: Days without progress before a topic is stale.
        needs_work_limit: Maximum number of needs-work items in a report.
        recent_quiz_window: Number of recent quizzes in the performance summary.
        max_not_started_in_recommendation: Not-started topics named per report.
        low_lesson_completion_rate: Lesson completion percentage flagged as incomplete.
        write_attempts: Attempts per achievement unlock write (first try plus retries).
    """

    model_config = SettingsConfigDict(
        env_prefix="ANALYTICS_",
        extra="ignore",
    )

    report_timezone: str = "UTC"
    report_freshness_minutes: int = Field(default=30, ge=1)
    struggling_threshold: float = Field(default=70.0, ge=0, le=100)
    stale_progress_days: int = Field(default=7, ge=1)
    needs_work_limit: int = Field(default=10, ge=1)
    recent_quiz_window: int = Field(default=10, ge=1)
    max_not_started_in_recommendation: int = Field(default=3, ge=1)
    low_lesson_completion_rate: float = Field(default=50.0, ge=0, le=100)
    write_attempts: int = Field(default=2, ge=1)

    @field_validator("report_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject timezone names unknown to the tz database."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @property
    def tz(self) -> ZoneInfo:
        """Get the report timezone as a tzinfo object."""
        return ZoneInfo(self.report_timezone)


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        db: Activity store database settings.
        analytics: Analytics and gamification settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
