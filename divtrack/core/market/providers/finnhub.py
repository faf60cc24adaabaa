# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Finnhub client: /quote, /stock/metric and /stock/dividend.

Unknown symbols come back from /quote as HTTP 200 with ``c == 0``; that is
treated as "no data", same as an ``error`` payload. Metric yields are
already percentages.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from divtrack.core.market.providers.base import (
    StockDataProvider,
    dividend_events,
    parse_float,
    valid_yield,
)
from divtrack.core.models import DividendEvent, DividendRecord, ProviderName, Quote, utc_now

_YIELD_METRICS = ("dividendYieldIndicatedAnnual", "currentDividendYieldTTM")
_LATEST_DIVIDEND_LOOKBACK_DAYS = 400


class FinnhubProvider(StockDataProvider):
    """Fallback provider with a generous per-minute quota."""

    name = ProviderName.FINNHUB
    base_url = "https://finnhub.io/api/v1"

    def _auth_params(self) -> Dict[str, str]:
        return {"token": self.api_key}

    def _error_message(self, payload: Any) -> Optional[str]:
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return None

    def fetch_quote(self, symbol: str) -> Optional[Quote]:
        try:
            payload = self._get_json("/quote", {"symbol": symbol})
            if payload is None:
                return None
            price = payload.get("c")
            if not price:
                raise ValueError("No data available")
            return Quote(
                symbol=symbol.upper(),
                price=parse_float(price),
                change=parse_float(payload.get("d")),
                change_percent=parse_float(payload.get("dp")),
                last_updated=utc_now(),
                source=self.name,
            )
        except Exception as e:
            self._fail("quote", symbol, e)
            return None

    def fetch_fundamentals(self, symbol: str) -> Optional[float]:
        try:
            payload = self._get_json("/stock/metric", {"symbol": symbol, "metric": "all"})
            if payload is None:
                return None
            metric = payload.get("metric")
            if not isinstance(metric, dict):
                raise ValueError("unexpected metric payload")
            for key in _YIELD_METRICS:
                value = metric.get(key)
                if value is None:
                    continue
                pct = parse_float(value)
                if pct > 0:
                    return valid_yield(pct)
            return None
        except Exception as e:
            self._fail("metric", symbol, e)
            return None

    def _dividend_rows(self, symbol: str, start: date, end: date) -> Optional[List[Dict[str, Any]]]:
        payload = self._get_json(
            "/stock/dividend",
            {"symbol": symbol, "from": start.isoformat(), "to": end.isoformat()},
        )
        if payload is None:
            return None
        if not isinstance(payload, list):
            raise ValueError("unexpected dividend payload")
        return payload

    def fetch_dividend(self, symbol: str) -> Optional[DividendRecord]:
        try:
            today = date.today()
            rows = self._dividend_rows(symbol, today - timedelta(days=_LATEST_DIVIDEND_LOOKBACK_DAYS), today)
            if not rows:
                return None
            latest = max(rows, key=lambda r: str(r.get("exDate") or r.get("date") or ""))
            return DividendRecord(
                symbol=symbol.upper(),
                dividend_per_share=parse_float(latest.get("amount")),
                ex_date=str(latest.get("exDate") or ""),
                record_date=str(latest.get("recordDate") or ""),
                payment_date=str(latest.get("payDate") or ""),
                source=self.name,
            )
        except Exception as e:
            self._fail("dividend", symbol, e)
            return None

    def fetch_dividend_history(self, symbol: str, start: date, end: date) -> List[DividendEvent]:
        try:
            rows = self._dividend_rows(symbol, start, end)
            if not rows:
                return []
            return dividend_events(
                rows,
                date_key="exDate",
                amount_key="amount",
                ex_key="exDate",
                pay_key="payDate",
                start=start,
                end=end,
            )
        except Exception as e:
            self._fail("dividend history", symbol, e)
            return []


__all__ = ["FinnhubProvider"]
