# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Alpha Vantage client: GLOBAL_QUOTE, OVERVIEW and DIVIDENDS functions.

Alpha Vantage reports soft errors with HTTP 200 and an ``Error Message``,
``Note`` (throttled) or ``Information`` key. Its ``DividendYield`` is a
decimal fraction (0.073 means 7.3%).
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from divtrack.core.market.providers.base import (
    StockDataProvider,
    dividend_events,
    parse_float,
    valid_yield,
)
from divtrack.core.models import DividendEvent, DividendRecord, ProviderName, Quote, utc_now

_ERROR_KEYS = ("Error Message", "Note", "Information")


class AlphaVantageProvider(StockDataProvider):
    """Primary provider: quote plus company overview for dividend yield."""

    name = ProviderName.ALPHA_VANTAGE
    base_url = "https://www.alphavantage.co"

    def _auth_params(self) -> Dict[str, str]:
        return {"apikey": self.api_key}

    def _error_message(self, payload: Any) -> Optional[str]:
        if not isinstance(payload, dict):
            return None
        for key in _ERROR_KEYS:
            if payload.get(key):
                return str(payload[key])
        return None

    def _query(self, function: str, symbol: str) -> Optional[Any]:
        return self._get_json("/query", {"function": function, "symbol": symbol})

    def fetch_quote(self, symbol: str) -> Optional[Quote]:
        try:
            payload = self._query("GLOBAL_QUOTE", symbol)
            if payload is None:
                return None
            quote = payload.get("Global Quote")
            if not isinstance(quote, dict) or not quote.get("05. price"):
                raise ValueError("No data available")
            return Quote(
                symbol=(quote.get("01. symbol") or symbol).upper(),
                price=parse_float(quote["05. price"]),
                change=parse_float(quote.get("09. change")),
                change_percent=parse_float(quote.get("10. change percent")),
                last_updated=utc_now(),
                source=self.name,
            )
        except Exception as e:
            self._fail("quote", symbol, e)
            return None

    def _overview(self, symbol: str) -> Optional[Dict[str, Any]]:
        payload = self._query("OVERVIEW", symbol)
        if payload is None:
            return None
        if not isinstance(payload, dict) or not payload.get("Symbol"):
            raise ValueError("empty company overview")
        return payload

    def fetch_fundamentals(self, symbol: str) -> Optional[float]:
        try:
            overview = self._overview(symbol)
            if overview is None:
                return None
            try:
                fraction = parse_float(overview.get("DividendYield"))
            except ValueError:
                return None
            if fraction <= 0:
                return None
            return valid_yield(fraction * 100)
        except Exception as e:
            self._fail("overview", symbol, e)
            return None

    def _dividend_rows(self, symbol: str) -> Optional[List[Dict[str, Any]]]:
        payload = self._query("DIVIDENDS", symbol)
        if payload is None:
            return None
        rows = payload.get("data")
        if not isinstance(rows, list):
            raise ValueError("unexpected DIVIDENDS payload")
        return rows

    def fetch_dividend(self, symbol: str) -> Optional[DividendRecord]:
        try:
            rows = self._dividend_rows(symbol)
            if rows is None:
                return None
            if rows:
                latest = max(rows, key=lambda r: str(r.get("ex_dividend_date") or ""))
                return DividendRecord(
                    symbol=symbol,
                    dividend_per_share=parse_float(latest.get("amount")),
                    ex_date=_date_text(latest.get("ex_dividend_date")),
                    record_date=_date_text(latest.get("record_date")),
                    payment_date=_date_text(latest.get("payment_date")),
                    source=self.name,
                )

            # No declared dividends listed: fall back to overview per-share figures
            overview = self._overview(symbol)
            if overview is None or not overview.get("DividendPerShare"):
                return None
            return DividendRecord(
                symbol=(overview.get("Symbol") or symbol).upper(),
                dividend_per_share=parse_float(overview.get("DividendPerShare")),
                ex_date=_date_text(overview.get("ExDividendDate")),
                record_date="",
                payment_date=_date_text(overview.get("DividendDate")),
                source=self.name,
            )
        except Exception as e:
            self._fail("dividend", symbol, e)
            return None

    def fetch_dividend_history(self, symbol: str, start: date, end: date) -> List[DividendEvent]:
        try:
            rows = self._dividend_rows(symbol)
            if not rows:
                return []
            return dividend_events(
                rows,
                date_key="ex_dividend_date",
                amount_key="amount",
                ex_key="ex_dividend_date",
                pay_key="payment_date",
                start=start,
                end=end,
            )
        except Exception as e:
            self._fail("dividend history", symbol, e)
            return []


def _date_text(value: Any) -> str:
    if value is None or str(value).strip() in ("", "None"):
        return ""
    return str(value).strip()


__all__ = ["AlphaVantageProvider"]
