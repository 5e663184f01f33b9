"""
Configuration Management for Cost Manager

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: where the local database lives,
which schema version to open it at, and where exchange rates come from.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local cost database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="COSTS_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".cost_manager",
        description="Directory holding the local database files"
    )
    name: str = Field(
        default="costsdb",
        min_length=1,
        description="Logical database name"
    )
    version: int = Field(
        default=1,
        ge=1,
        description="Schema version to open the database at"
    )

    @field_validator('data_dir')
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Expand ``~`` so the path is usable as-is."""
        return v.expanduser()


class RatesSettings(BaseSettings):
    """Exchange rate provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="COSTS_RATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="",
        description="URL returning a JSON map of currency code to rate"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for the rate fetch"
    )

    @field_validator('url')
    @classmethod
    def strip_url(cls, v: str) -> str:
        return v.strip()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="COSTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for emitted log events"
    )
    json_logs: bool = Field(
        default=True,
        description="Render log events as JSON (False = console renderer)"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def rates(self) -> RatesSettings:
        return RatesSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
