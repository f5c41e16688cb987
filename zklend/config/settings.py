"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProverSettings(BaseSettings):
    """Proof generation configuration."""

    model_config = SettingsConfigDict(env_prefix="PROVER_")

    build_dir: Path = Field(default_factory=lambda: Path.cwd() / "build" / "keys")
    setup_seed: int | None = None
    max_concurrent_proofs: int = Field(default=4, ge=1)


class PoolSettings(BaseSettings):
    """Lending pool policy configuration."""

    model_config = SettingsConfigDict(env_prefix="POOL_")

    # Percentages
    max_ltv: int = Field(default=75, gt=0, le=100)
    liquidation_threshold: int = Field(default=80, gt=0, le=100)

    # Interest rate curve (basis points)
    base_rate_bps: int = Field(default=500, ge=0)
    slope1_bps: int = Field(default=2000, ge=0)
    slope2_bps: int = Field(default=7500, ge=0)
    optimal_utilization: int = Field(default=80, gt=0, lt=100)

    # Settlement units per collateral unit, 8 decimals
    initial_price: int = Field(default=2000 * 10**8, gt=0)

    @model_validator(mode="after")
    def ltv_below_liquidation(self) -> "PoolSettings":
        """A position opened at max LTV must not be immediately liquidatable."""
        if self.max_ltv > self.liquidation_threshold:
            raise ValueError(
                f"max_ltv {self.max_ltv} exceeds liquidation_threshold "
                f"{self.liquidation_threshold}"
            )
        return self


class Settings(BaseSettings):
    """Root settings. Prover and pool sections read their own env prefixes."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Environment.DEVELOPMENT
    log_level: LogLevel = LogLevel.INFO
    json_logs: bool = False
    service_name: str = "zklend"

    prover: ProverSettings = Field(default_factory=ProverSettings)
    pool: PoolSettings = Field(default_factory=PoolSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_testing(self) -> bool:
        return self.environment is Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
