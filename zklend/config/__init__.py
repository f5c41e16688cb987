"""
Configuration Module
====================

Centralized configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.

Usage:
    from zklend.config import settings

    print(settings.environment)
    print(settings.pool.max_ltv)
"""

from zklend.config.settings import (
    Environment,
    LogLevel,
    PoolSettings,
    ProverSettings,
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
    "PoolSettings",
    "ProverSettings",
]
