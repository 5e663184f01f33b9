"""Exchange rate services package."""

from cost_manager.services.rates.exchange_client import (
    REQUIRED_CURRENCIES,
    ExchangeRateClient,
    InvalidRateData,
    NoRateSource,
    RateFetchFailed,
    RateSourceError,
    validate_rate_table,
)

__all__ = [
    "REQUIRED_CURRENCIES",
    "ExchangeRateClient",
    "InvalidRateData",
    "NoRateSource",
    "RateFetchFailed",
    "RateSourceError",
    "validate_rate_table",
]
