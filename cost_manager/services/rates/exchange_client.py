"""
Exchange Rate Client

Fetches the rate table from a user-configured URL. The endpoint must
return a flat JSON object of currency code to positive number, e.g.
``{"USD": 1, "ILS": 3.4, "GBP": 0.6, "EURO": 0.7}``.

CRITICAL: A rate table is either fully valid or rejected. Every
supported currency must be present with a positive number. There is no
retry, no stale cache and no default table; a failed fetch fails the
report that asked for it.

This is independent of the report builder's fallback-to-1 policy, which
only covers currencies found in stored costs but not in the table.

fetch_rates() is a coroutine but the requests call inside it blocks the
event loop for the length of the request, bounded by timeout_seconds.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

import requests
import structlog

from cost_manager.config import RatesSettings, get_settings
from cost_manager.exceptions import CostManagerError
from cost_manager.models.cost import Currency
from cost_manager.models.rates import RateTable
from cost_manager.services.preferences import PreferencesStore


logger = structlog.get_logger(__name__)

REQUIRED_CURRENCIES: tuple[str, ...] = tuple(c.value for c in Currency)


class RateSourceError(CostManagerError):
    """Base exception for exchange rate problems."""
    pass


class NoRateSource(RateSourceError):
    """No exchange rate URL is configured."""
    pass


class RateFetchFailed(RateSourceError):
    """The rate endpoint could not be reached or returned an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidRateData(RateSourceError):
    """The rate endpoint returned data that is not a valid rate table."""
    pass


def _is_positive_number(value: Any) -> bool:
    # bool is an int subclass but JSON true/false is not a rate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def validate_rate_table(
    data: Any,
    fetched_at: Optional[datetime] = None,
) -> RateTable:
    """
    Validate decoded JSON into a RateTable.

    Raises:
        InvalidRateData: If data is not a flat mapping, a supported
            currency is missing, or any rate is not a positive number
    """
    if not isinstance(data, dict):
        raise InvalidRateData(
            f"Rate data must be a JSON object, got {type(data).__name__}"
        )

    for code in REQUIRED_CURRENCIES:
        if not _is_positive_number(data.get(code)):
            raise InvalidRateData(f"Missing/invalid rate: {code}")

    for code, value in data.items():
        if not isinstance(code, str) or not _is_positive_number(value):
            raise InvalidRateData(f"Missing/invalid rate: {code}")

    return RateTable.from_mapping(data, fetched_at=fetched_at)


class ExchangeRateClient:
    """
    Client for the exchange rate endpoint.

    The URL is resolved in this order: the url argument, the URL saved
    in the preferences store, then the COSTS_RATES_URL setting.
    """

    def __init__(
        self,
        preferences: Optional[PreferencesStore] = None,
        settings: Optional[RatesSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._preferences = preferences
        self._settings = settings or get_settings().rates
        self._session = session

    def resolve_url(self, url: Optional[str] = None) -> str:
        """Return the URL to fetch from, or raise NoRateSource."""
        candidates = [url]
        if self._preferences is not None:
            candidates.append(self._preferences.get_rates_url())
        candidates.append(self._settings.url)

        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate.strip()
        raise NoRateSource("No exchange rates URL set in Settings.")

    async def fetch_rates(self, url: Optional[str] = None) -> RateTable:
        """
        Fetch and validate the current rate table.

        Raises:
            NoRateSource: If no URL is configured (no request is made)
            RateFetchFailed: On transport error or non-2xx status
            InvalidRateData: If the body is not a valid rate table
        """
        target = self.resolve_url(url)
        http = self._session or requests

        try:
            response = http.get(
                target,
                headers={"Accept": "application/json"},
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error("rates_fetch_failed", url=target, error=str(e))
            raise RateFetchFailed(f"Failed fetching rates: {e}") from e

        if not response.ok:
            logger.error("rates_fetch_failed", url=target, status_code=response.status_code)
            raise RateFetchFailed(
                f"Failed fetching rates: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error("rates_invalid", url=target, error="body is not JSON")
            raise InvalidRateData(f"Rate response is not valid JSON: {e}") from e

        try:
            table = validate_rate_table(data, fetched_at=datetime.now(timezone.utc))
        except InvalidRateData as e:
            logger.error("rates_invalid", url=target, error=str(e))
            raise

        logger.info("rates_fetched", url=target, currencies=sorted(table.rates))
        return table
