# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for cache tiers, monitoring thresholds, report
windows and logging. Cross-field rules are checked in
``validate_config_consistency`` and reported as ConfigurationError.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Cache ===
    cache_backend: Literal["memory"] = "memory"
    cache_ttl_seconds: float = 300.0
    cache_short_ttl_seconds: float = 30.0
    cache_quick_ttl_seconds: float = 120.0

    # === Performance monitoring ===
    slow_query_threshold_ms: float = 1000.0
    critical_query_threshold_ms: float = 5000.0
    max_metrics_history: int = 1000
    analytics_window: int = 100
    recent_slow_queries: int = 5

    # === Reporting ===
    search_default_limit: int = 20
    search_max_limit: int = 100
    recent_registrations_limit: int = 10
    recent_activity_hours: int = 24
    dashboard_trend_months: int = 6
    analytics_trend_months: int = 12
    reports_trend_months: int = 12
    query_timeout_seconds: float | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "cache_ttl_seconds",
        "cache_short_ttl_seconds",
        "cache_quick_ttl_seconds",
        "slow_query_threshold_ms",
        "critical_query_threshold_ms",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator(
        "max_metrics_history",
        "analytics_window",
        "recent_slow_queries",
        "search_default_limit",
        "search_max_limit",
        "dashboard_trend_months",
        "analytics_trend_months",
        "reports_trend_months",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("query_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:  # noqa: N805
        if v is not None and v <= 0:
            raise ValueError("query_timeout_seconds must be > 0 when set")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_short_ttl_seconds > self.cache_ttl_seconds:
            errors.append(
                "CACHE_SHORT_TTL_SECONDS must not exceed CACHE_TTL_SECONDS"
            )

        if self.critical_query_threshold_ms <= self.slow_query_threshold_ms:
            errors.append(
                "CRITICAL_QUERY_THRESHOLD_MS must be greater than "
                "SLOW_QUERY_THRESHOLD_MS"
            )

        if self.analytics_window > self.max_metrics_history:
            errors.append("ANALYTICS_WINDOW must be <= MAX_METRICS_HISTORY")

        if self.search_default_limit > self.search_max_limit:
            errors.append("SEARCH_DEFAULT_LIMIT must be <= SEARCH_MAX_LIMIT")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-process config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
