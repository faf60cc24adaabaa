# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Alpha Vantage and Finnhub clients against a mocked requests session."""

from __future__ import annotations

from datetime import date
from typing import Any, List
from unittest.mock import MagicMock

import pytest
import requests

from divtrack.core.market.providers import AlphaVantageProvider, FinnhubProvider
from divtrack.core.market.providers.base import parse_float
from divtrack.core.market.rate_limiter import ProviderQuota, RateLimiter
from divtrack.core.models import ProviderName


def _response(payload: Any = None, status_code: int = 200, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


def _session(*responses: Any) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = list(responses)
    return session


def _limiter(limit: int = 100) -> RateLimiter:
    return RateLimiter({
        ProviderName.ALPHA_VANTAGE: ProviderQuota(limit, 86400),
        ProviderName.FINNHUB: ProviderQuota(limit, 60),
    })


def _av(session: MagicMock, limiter: RateLimiter = None, key: str = "demo") -> AlphaVantageProvider:
    return AlphaVantageProvider(key, limiter or _limiter(), session=session)


def _fh(session: MagicMock, limiter: RateLimiter = None, key: str = "demo") -> FinnhubProvider:
    return FinnhubProvider(key, limiter or _limiter(), session=session)


GLOBAL_QUOTE = {
    "Global Quote": {
        "01. symbol": "KO",
        "05. price": "62.5000",
        "09. change": "0.4000",
        "10. change percent": "0.6441%",
    }
}


# --------------------------------------------------------------------------- #
# Alpha Vantage
# --------------------------------------------------------------------------- #

def test_av_quote_parses_global_quote():
    session = _session(_response(GLOBAL_QUOTE))
    quote = _av(session).fetch_quote("KO")
    assert quote is not None
    assert quote.symbol == "KO"
    assert quote.price == pytest.approx(62.5)
    assert quote.change == pytest.approx(0.4)
    assert quote.change_percent == pytest.approx(0.6441)
    assert quote.source == ProviderName.ALPHA_VANTAGE
    assert quote.dividend_yield_pct is None

    _, kwargs = session.get.call_args
    assert kwargs["params"]["function"] == "GLOBAL_QUOTE"
    assert kwargs["params"]["apikey"] == "demo"
    assert kwargs["timeout"] == 10.0


@pytest.mark.parametrize(
    "payload",
    [
        {"Error Message": "Invalid API call."},
        {"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 25 per day."},
        {"Information": "The **demo** API key is for demo purposes only."},
        {"Global Quote": {}},
    ],
)
def test_av_error_payloads_return_none(payload):
    """HTTP 200 with an error key (or empty quote) is a failure, not data."""
    provider = _av(_session(_response(payload)))
    assert provider.fetch_quote("KO") is None
    assert provider.stats()["failures"] == 1


def test_av_http_error_returns_none():
    provider = _av(_session(_response(status_code=503, text="Service Unavailable")))
    assert provider.fetch_quote("KO") is None
    assert provider.stats()["failures"] == 1


def test_av_network_error_returns_none():
    provider = _av(_session(requests.ConnectionError("boom")))
    assert provider.fetch_quote("KO") is None


def test_av_invalid_json_returns_none():
    provider = _av(_session(_response(ValueError("Expecting value"))))
    assert provider.fetch_quote("KO") is None


def test_av_overview_yield_fraction_becomes_percent():
    """DividendYield 0.073 means 7.3%."""
    provider = _av(_session(_response({"Symbol": "T", "DividendYield": "0.073"})))
    assert provider.fetch_fundamentals("T") == pytest.approx(7.3)


@pytest.mark.parametrize("raw", ["0", "None", "-", None])
def test_av_overview_non_payer_has_no_yield(raw):
    provider = _av(_session(_response({"Symbol": "GOOGL", "DividendYield": raw})))
    assert provider.fetch_fundamentals("GOOGL") is None


def test_av_dividend_picks_latest_declaration():
    payload = {
        "symbol": "KO",
        "data": [
            {"ex_dividend_date": "2024-03-14", "amount": "0.485", "record_date": "2024-03-15", "payment_date": "2024-04-01"},
            {"ex_dividend_date": "2024-06-14", "amount": "0.485", "record_date": "2024-06-14", "payment_date": "2024-07-01"},
            {"ex_dividend_date": "2023-11-30", "amount": "0.46", "record_date": "2023-12-01", "payment_date": "2023-12-15"},
        ],
    }
    record = _av(_session(_response(payload))).fetch_dividend("KO")
    assert record is not None
    assert record.ex_date == "2024-06-14"
    assert record.payment_date == "2024-07-01"
    assert record.dividend_per_share == pytest.approx(0.485)


def test_av_dividend_history_filters_range_and_sorts_newest_first():
    payload = {
        "data": [
            {"ex_dividend_date": "2023-03-14", "amount": "0.46", "payment_date": "2023-04-01"},
            {"ex_dividend_date": "2024-03-14", "amount": "0.485", "payment_date": "2024-04-01"},
            {"ex_dividend_date": "2024-06-14", "amount": "0.485", "payment_date": "2024-07-01"},
            {"ex_dividend_date": "2024-09-13", "amount": "None", "payment_date": "None"},
        ]
    }
    events = _av(_session(_response(payload))).fetch_dividend_history(
        "KO", date(2024, 1, 1), date(2024, 12, 31)
    )
    assert [e.date for e in events] == ["2024-06-14", "2024-03-14"]
    assert events[0].payment_date == "2024-07-01"


def test_av_missing_key_makes_no_request():
    session = _session()
    provider = _av(session, key="")
    assert provider.fetch_quote("KO") is None
    session.get.assert_not_called()
    assert provider.stats()["skipped_no_key"] == 1


def test_rate_limited_provider_makes_no_network_call():
    limiter = _limiter(limit=1)
    limiter.record_request(ProviderName.ALPHA_VANTAGE)
    session = _session()
    provider = _av(session, limiter)
    assert provider.fetch_quote("KO") is None
    session.get.assert_not_called()
    assert provider.stats()["rate_limited"] == 1
    assert provider.stats()["failures"] == 0


def test_each_attempt_consumes_quota_even_when_it_fails():
    limiter = _limiter(limit=5)
    provider = _av(_session(_response(status_code=500, text="oops")), limiter)
    provider.fetch_quote("KO")
    assert limiter.status()["alpha_vantage"]["requests"] == 1


# --------------------------------------------------------------------------- #
# Finnhub
# --------------------------------------------------------------------------- #

def test_finnhub_quote_parses_payload():
    session = _session(_response({"c": 150.25, "d": -1.5, "dp": -0.99, "h": 152, "l": 149, "o": 151, "pc": 151.75}))
    quote = _fh(session).fetch_quote("aapl")
    assert quote is not None
    assert quote.symbol == "AAPL"
    assert quote.price == pytest.approx(150.25)
    assert quote.change == pytest.approx(-1.5)
    assert quote.change_percent == pytest.approx(-0.99)
    assert quote.source == ProviderName.FINNHUB
    _, kwargs = session.get.call_args
    assert kwargs["params"]["token"] == "demo"


def test_finnhub_zero_price_is_no_data():
    """Unknown symbols come back as c == 0."""
    provider = _fh(_session(_response({"c": 0, "d": None, "dp": None})))
    assert provider.fetch_quote("ZZZZ") is None


def test_finnhub_error_payload_is_failure():
    provider = _fh(_session(_response({"error": "You don't have access to this resource."})))
    assert provider.fetch_quote("AAPL") is None
    assert provider.stats()["failures"] == 1


def test_finnhub_metric_yield_is_already_percent():
    provider = _fh(_session(_response({"metric": {"dividendYieldIndicatedAnnual": 3.1}})))
    assert provider.fetch_fundamentals("KO") == pytest.approx(3.1)


def test_finnhub_metric_falls_back_to_ttm_yield():
    provider = _fh(_session(_response({"metric": {"dividendYieldIndicatedAnnual": None, "currentDividendYieldTTM": 2.8}})))
    assert provider.fetch_fundamentals("KO") == pytest.approx(2.8)


def test_finnhub_out_of_range_yield_is_dropped():
    provider = _fh(_session(_response({"metric": {"dividendYieldIndicatedAnnual": 250.0}})))
    assert provider.fetch_fundamentals("KO") is None


def test_finnhub_dividend_history():
    rows: List[dict] = [
        {"symbol": "KO", "date": "2024-06-14", "exDate": "2024-06-14", "amount": 0.485, "payDate": "2024-07-01", "recordDate": "2024-06-14"},
        {"symbol": "KO", "date": "2024-03-14", "exDate": "2024-03-14", "amount": 0.485, "payDate": "2024-04-01", "recordDate": "2024-03-15"},
    ]
    session = _session(_response(rows))
    events = _fh(session).fetch_dividend_history("KO", date(2024, 1, 1), date(2024, 12, 31))
    assert [e.amount for e in events] == [0.485, 0.485]
    assert events[0].ex_date == "2024-06-14"
    _, kwargs = session.get.call_args
    assert kwargs["params"]["from"] == "2024-01-01"
    assert kwargs["params"]["to"] == "2024-12-31"


def test_finnhub_latest_dividend():
    rows = [
        {"exDate": "2024-03-14", "amount": 0.485, "payDate": "2024-04-01", "recordDate": "2024-03-15"},
        {"exDate": "2024-06-14", "amount": 0.5, "payDate": "2024-07-01", "recordDate": "2024-06-14"},
    ]
    record = _fh(_session(_response(rows))).fetch_dividend("KO")
    assert record is not None
    assert record.dividend_per_share == pytest.approx(0.5)
    assert record.record_date == "2024-06-14"


# --------------------------------------------------------------------------- #
# Parsing helpers
# --------------------------------------------------------------------------- #

def test_parse_float_accepts_percent_strings():
    assert parse_float("1.25%") == pytest.approx(1.25)
    assert parse_float(" 3 ") == pytest.approx(3.0)


@pytest.mark.parametrize("raw", [None, "", "None", "-"])
def test_parse_float_rejects_placeholders(raw):
    with pytest.raises(ValueError):
        parse_float(raw)
