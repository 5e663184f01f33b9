"""Tests for rate validation, the exchange rate client and preferences."""

import asyncio
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest
import requests

from cost_manager.config import RatesSettings
from cost_manager.services.preferences import PreferencesError, PreferencesStore
from cost_manager.services.rates import (
    ExchangeRateClient,
    InvalidRateData,
    NoRateSource,
    RateFetchFailed,
    validate_rate_table,
)


VALID = {"USD": 1, "ILS": 3.4, "GBP": 0.6, "EURO": 0.7}


def _response(status_code=200, body=None, json_error=None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = body
    return response


def _session(response=None, error=None) -> Mock:
    session = Mock(spec=requests.Session)
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return session


class TestValidateRateTable:
    """Tests for the all-or-nothing rate table check."""

    def test_valid_table(self):
        table = validate_rate_table(VALID)
        assert table.rates == {
            "USD": Decimal("1"),
            "ILS": Decimal("3.4"),
            "GBP": Decimal("0.6"),
            "EURO": Decimal("0.7"),
        }

    def test_extra_positive_rate_is_kept(self):
        table = validate_rate_table({**VALID, "JPY": 150})
        assert table.rates["JPY"] == Decimal("150")

    @pytest.mark.parametrize("missing", ["USD", "ILS", "GBP", "EURO"])
    def test_missing_currency(self, missing):
        data = {k: v for k, v in VALID.items() if k != missing}
        with pytest.raises(InvalidRateData, match=f"Missing/invalid rate: {missing}"):
            validate_rate_table(data)

    @pytest.mark.parametrize("bad", [0, -1, "3.4", None, True, float("nan"), float("inf")])
    def test_invalid_required_rate(self, bad):
        with pytest.raises(InvalidRateData, match="ILS"):
            validate_rate_table({**VALID, "ILS": bad})

    def test_invalid_extra_rate(self):
        with pytest.raises(InvalidRateData, match="JPY"):
            validate_rate_table({**VALID, "JPY": "150"})

    @pytest.mark.parametrize("data", [[1, 2], "USD", None, 42])
    def test_non_object_body(self, data):
        with pytest.raises(InvalidRateData):
            validate_rate_table(data)


class TestExchangeRateClient:
    """Tests for fetching rates over HTTP (mocked)."""

    def test_fetch_success(self):
        session = _session(_response(body=VALID))
        client = ExchangeRateClient(
            settings=RatesSettings(url="https://rates.test/latest", timeout_seconds=3),
            session=session,
        )

        table = asyncio.run(client.fetch_rates())

        assert table.rates["EURO"] == Decimal("0.7")
        assert table.fetched_at is not None
        session.get.assert_called_once_with(
            "https://rates.test/latest",
            headers={"Accept": "application/json"},
            timeout=3,
        )

    def test_error_status(self):
        client = ExchangeRateClient(
            settings=RatesSettings(url="https://rates.test"),
            session=_session(_response(status_code=500)),
        )
        with pytest.raises(RateFetchFailed, match="500") as excinfo:
            asyncio.run(client.fetch_rates())
        assert excinfo.value.status_code == 500

    def test_transport_error(self):
        client = ExchangeRateClient(
            settings=RatesSettings(url="https://rates.test"),
            session=_session(error=requests.ConnectionError("refused")),
        )
        with pytest.raises(RateFetchFailed) as excinfo:
            asyncio.run(client.fetch_rates())
        assert excinfo.value.status_code is None

    def test_body_not_json(self):
        client = ExchangeRateClient(
            settings=RatesSettings(url="https://rates.test"),
            session=_session(_response(json_error=ValueError("Expecting value"))),
        )
        with pytest.raises(InvalidRateData):
            asyncio.run(client.fetch_rates())

    def test_incomplete_table(self):
        client = ExchangeRateClient(
            settings=RatesSettings(url="https://rates.test"),
            session=_session(_response(body={"USD": 1})),
        )
        with pytest.raises(InvalidRateData, match="ILS"):
            asyncio.run(client.fetch_rates())

    def test_no_url_makes_no_request(self):
        session = _session(_response(body=VALID))
        client = ExchangeRateClient(settings=RatesSettings(url=""), session=session)

        with pytest.raises(NoRateSource, match="No exchange rates URL set"):
            asyncio.run(client.fetch_rates())
        session.get.assert_not_called()

    def test_blank_url_counts_as_missing(self):
        client = ExchangeRateClient(settings=RatesSettings(url=""), session=_session())
        with pytest.raises(NoRateSource):
            asyncio.run(client.fetch_rates("   "))

    def test_without_session_uses_requests(self):
        client = ExchangeRateClient(settings=RatesSettings(url="https://rates.test"))
        with patch("requests.get", return_value=_response(body=VALID)) as get:
            table = asyncio.run(client.fetch_rates())
        assert "USD" in table
        get.assert_called_once()


class TestUrlResolution:
    """Tests for argument, preferences and settings precedence."""

    def test_argument_wins(self, tmp_path):
        preferences = PreferencesStore(tmp_path / "preferences.json")
        preferences.set_rates_url("https://saved.test")
        client = ExchangeRateClient(
            preferences=preferences,
            settings=RatesSettings(url="https://env.test"),
        )
        assert client.resolve_url(" https://arg.test ") == "https://arg.test"

    def test_saved_preference_beats_setting(self, tmp_path):
        preferences = PreferencesStore(tmp_path / "preferences.json")
        preferences.set_rates_url("https://saved.test")
        client = ExchangeRateClient(
            preferences=preferences,
            settings=RatesSettings(url="https://env.test"),
        )
        assert client.resolve_url() == "https://saved.test"

    def test_setting_is_last_resort(self, tmp_path):
        client = ExchangeRateClient(
            preferences=PreferencesStore(tmp_path / "preferences.json"),
            settings=RatesSettings(url="https://env.test"),
        )
        assert client.resolve_url() == "https://env.test"


class TestPreferencesStore:
    """Tests for the JSON preferences file."""

    def test_missing_file_gives_empty_url(self, tmp_path):
        store = PreferencesStore(tmp_path / "preferences.json")
        assert store.get_rates_url() == ""
        assert not store.path.exists()

    def test_url_is_trimmed_and_persisted(self, tmp_path):
        path = tmp_path / "nested" / "preferences.json"
        PreferencesStore(path).set_rates_url("  https://rates.test/latest  ")

        assert PreferencesStore(path).get_rates_url() == "https://rates.test/latest"

    @pytest.mark.parametrize("url", ["", "   ", None])
    def test_empty_url_is_rejected(self, tmp_path, url):
        store = PreferencesStore(tmp_path / "preferences.json")
        with pytest.raises(ValueError, match="required"):
            store.set_rates_url(url)
        assert not store.path.exists()

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "preferences.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PreferencesError):
            PreferencesStore(path).get_rates_url()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
