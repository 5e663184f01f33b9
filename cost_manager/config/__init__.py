"""Configuration package."""

from cost_manager.config.settings import (
    AppSettings,
    RatesSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "RatesSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
