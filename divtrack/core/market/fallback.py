# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Priority-ordered fallback across stock-data providers.

Providers are tried one at a time in list order; the first usable result
wins. A winning quote without a dividend yield is completed from the
winner's own fundamentals endpoint, then from later providers. When every
provider fails the caller gets ``None`` ("no data"), never an exception.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from divtrack.core.market.providers.base import StockDataProvider
from divtrack.core.models import DividendEvent, DividendRecord, Quote, normalize_symbol

logger = logging.getLogger(__name__)


class FallbackQuoteService:
    """Resolve quotes and dividends from an ordered provider list."""

    def __init__(self, providers: Sequence[StockDataProvider]) -> None:
        if not providers:
            raise ValueError("at least one provider is required")
        self.providers: List[StockDataProvider] = list(providers)
        self._lock = threading.Lock()
        self._wins: Dict[str, int] = {p.name.value: 0 for p in self.providers}
        self._exhausted = 0

    def _record(self, winner: Optional[StockDataProvider], what: str, symbol: str) -> None:
        with self._lock:
            if winner is None:
                self._exhausted += 1
            else:
                self._wins[winner.name.value] = self._wins.get(winner.name.value, 0) + 1
        if winner is None:
            logger.warning("[QUOTES] all providers exhausted for %s %s", what, symbol)

    def get_quote(self, symbol: str) -> Optional[Quote]:
        symbol = normalize_symbol(symbol)
        for idx, provider in enumerate(self.providers):
            quote = provider.fetch_quote(symbol)
            if quote is None:
                logger.debug("[QUOTES] %s had no quote for %s, trying next", provider.name.value, symbol)
                continue
            self._record(provider, "quote", symbol)
            if quote.dividend_yield_pct is None:
                quote = self._merge_dividend_yield(quote, self.providers[idx:])
            return quote
        self._record(None, "quote", symbol)
        return None

    def _merge_dividend_yield(self, quote: Quote, candidates: Sequence[StockDataProvider]) -> Quote:
        for provider in candidates:
            pct = provider.fetch_fundamentals(quote.symbol)
            if pct is not None:
                logger.debug("[QUOTES] %s yield %.4f%% from %s", quote.symbol, pct, provider.name.value)
                return quote.with_dividend_yield(pct)
        return quote

    def get_dividend(self, symbol: str) -> Optional[DividendRecord]:
        symbol = normalize_symbol(symbol)
        for provider in self.providers:
            record = provider.fetch_dividend(symbol)
            if record is not None:
                self._record(provider, "dividend", symbol)
                return record
        self._record(None, "dividend", symbol)
        return None

    def get_dividend_history(self, symbol: str, start: date, end: date) -> List[DividendEvent]:
        symbol = normalize_symbol(symbol)
        if start > end:
            raise ValueError("start must be on or before end")
        for provider in self.providers:
            events = provider.fetch_dividend_history(symbol, start, end)
            if events:
                return events
        return []

    def stats(self) -> Dict[str, Any]:
        """Per-provider outcome counters, to tell 'no data' apart from 'everything down'."""
        with self._lock:
            wins = dict(self._wins)
            exhausted = self._exhausted
        return {
            "providers": {
                p.name.value: {**p.stats(), "wins": wins.get(p.name.value, 0), "enabled": p.enabled}
                for p in self.providers
            },
            "exhausted": exhausted,
        }


__all__ = ["FallbackQuoteService"]
