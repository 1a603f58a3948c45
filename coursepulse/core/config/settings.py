# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for CoursePulse.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from coursepulse.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.reports.needs_attention_limit
    5
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Record store access configuration.

    Attributes:
        timeout_seconds: Upper bound for a single store read.
        max_concurrency: Maximum number of store reads in flight per report.
    """

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        extra="ignore",
    )

    timeout_seconds: float = Field(default=10.0, gt=0)
    max_concurrency: int = Field(default=8, ge=1)


class ReportSettings(BaseSettings):
    """Report computation configuration.

    Attributes:
        needs_attention_limit: Cap on the needs-attention list of a summary.
        recent_submissions_limit: Number of recent submissions per student.
        top_performers_limit: Number of top performers per course.
        struggling_students_limit: Number of struggling students per course.
        lesson_type: Assignment type tag that marks a lesson.
    """

    model_config = SettingsConfigDict(
        env_prefix="REPORT_",
        extra="ignore",
    )

    needs_attention_limit: int = Field(default=5, ge=1)
    recent_submissions_limit: int = Field(default=5, ge=1)
    top_performers_limit: int = Field(default=3, ge=1)
    struggling_students_limit: int = Field(default=2, ge=1)
    lesson_type: str = Field(default="lesson", min_length=1)


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        store: Record store access settings.
        reports: Report computation settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    store: StoreSettings = Field(default_factory=StoreSettings)
    reports: ReportSettings = Field(default_factory=ReportSettings)

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

    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
