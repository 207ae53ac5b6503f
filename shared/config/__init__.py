"""
Configuration Module
====================

Centralized configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.

Usage:
    from shared.config import settings

    print(settings.environment)
    print(settings.monitoring.min_relevance_score)
"""

from shared.config.settings import (
    Environment,
    LLMProvider,
    LLMSettings,
    LogLevel,
    MonitoringSettings,
    Settings,
    get_settings,
)


# Global settings instance (singleton)
settings = get_settings()

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "Environment",
    "LogLevel",
    "LLMProvider",
    "LLMSettings",
    "MonitoringSettings",
]
