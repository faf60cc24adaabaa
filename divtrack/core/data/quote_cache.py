# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Database-backed quote and dividend cache in front of the provider fallback.

Freshness is binary: an entry younger than ``freshness_seconds`` is served
as-is with no network call; anything older triggers a fetch. When that fetch
yields nothing the caller gets ``None``; a stale row is never served as a
degraded fallback.

Two concurrent misses for the same symbol may both hit upstream and both
upsert; the last write wins.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from divtrack.core.market.fallback import FallbackQuoteService
from divtrack.core.models import (
    CachedDividend,
    CachedQuote,
    DividendRecord,
    ProviderName,
    Quote,
    normalize_symbol,
    utc_now,
)
from divtrack.db.cache_repository import CacheRepository, parse_ts

logger = logging.getLogger(__name__)

RECENT_UPDATES_WINDOW = timedelta(hours=24)


class QuoteCache:
    """Serve quotes/dividends from the database while fresh, else refetch and upsert."""

    def __init__(
        self,
        quotes: CacheRepository,
        dividends: CacheRepository,
        fetcher: FallbackQuoteService,
        freshness_seconds: int,
        clock: Callable[[], datetime] = utc_now,
        max_workers: int = 5,
    ) -> None:
        if freshness_seconds <= 0:
            raise ValueError("freshness_seconds must be positive")
        self.quotes = quotes
        self.dividends = dividends
        self.fetcher = fetcher
        self.freshness_seconds = freshness_seconds
        self._clock = clock
        self._max_workers = max(1, max_workers)
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _is_fresh(self, updated_at: datetime, now: datetime, window_seconds: Optional[int] = None) -> bool:
        window = self.freshness_seconds if window_seconds is None else window_seconds
        return (now - updated_at).total_seconds() < window

    def _record(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    # ------------------------------------------------------------------ #
    # Quotes
    # ------------------------------------------------------------------ #
    def get_quote(self, symbol: str) -> Optional[CachedQuote]:
        symbol = normalize_symbol(symbol)
        row = self.quotes.find_one(symbol)
        if row is not None and self._is_fresh(row["updated_at"], self._clock()):
            self._record(hit=True)
            return _row_to_cached_quote(row)

        self._record(hit=False)
        fresh = self.fetcher.get_quote(symbol)
        if fresh is None:
            logger.info("[CACHE] no data available for %s", symbol)
            return None
        saved = self.quotes.upsert(symbol, _quote_fields(fresh), self._clock())
        logger.debug("[CACHE] stored %s from %s", symbol, fresh.source.value)
        return _row_to_cached_quote(saved)

    def get_quotes(self, symbols: Sequence[str]) -> List[CachedQuote]:
        """Resolve several symbols concurrently. Missing symbols are omitted; input order kept."""
        unique: List[str] = []
        for s in symbols:
            sym = normalize_symbol(s)
            if sym not in unique:
                unique.append(sym)
        if not unique:
            return []

        found: Dict[str, CachedQuote] = {}
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(unique))) as executor:
            future_to_symbol = {executor.submit(self.get_quote, sym): sym for sym in unique}
            for future in as_completed(future_to_symbol):
                sym = future_to_symbol[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.exception("[CACHE] error resolving %s: %s", sym, e)
                    continue
                if result is not None:
                    found[sym] = result
        return [found[s] for s in unique if s in found]

    def force_refresh(self, symbol: str) -> Optional[CachedQuote]:
        """Drop the cached entry for ``symbol`` and fetch it again."""
        symbol = normalize_symbol(symbol)
        logger.info("[CACHE] force refreshing %s", symbol)
        self.quotes.delete_many(symbol=symbol)
        return self.get_quote(symbol)

    def get_all(self, freshness_seconds: Optional[int] = None) -> List[CachedQuote]:
        """Every cached quote updated within the window. No upstream calls."""
        window = self.freshness_seconds if freshness_seconds is None else freshness_seconds
        now = self._clock()
        rows = self.quotes.find_many(updated_since=now - timedelta(seconds=window))
        return [_row_to_cached_quote(r) for r in rows if self._is_fresh(r["updated_at"], now, window)]

    # ------------------------------------------------------------------ #
    # Dividends
    # ------------------------------------------------------------------ #
    def get_dividend(self, symbol: str) -> Optional[CachedDividend]:
        symbol = normalize_symbol(symbol)
        row = self.dividends.find_one(symbol)
        if row is not None and self._is_fresh(row["updated_at"], self._clock()):
            self._record(hit=True)
            return _row_to_cached_dividend(row)

        self._record(hit=False)
        fresh = self.fetcher.get_dividend(symbol)
        if fresh is None:
            return None
        saved = self.dividends.upsert(symbol, _dividend_fields(fresh), self._clock())
        return _row_to_cached_dividend(saved)

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #
    def cleanup_older_than(self, max_age_seconds: float) -> Dict[str, int]:
        """Delete quote and dividend entries not updated within ``max_age_seconds``."""
        if max_age_seconds < 0:
            raise ValueError("max_age_seconds must be non-negative")
        cutoff = self._clock() - timedelta(seconds=max_age_seconds)
        deleted_quotes = self.quotes.delete_many(updated_before=cutoff)
        deleted_dividends = self.dividends.delete_many(updated_before=cutoff)
        logger.info(
            "[CACHE] cleanup removed %s quotes, %s dividends older than %s",
            deleted_quotes, deleted_dividends, cutoff.isoformat(),
        )
        return {"deleted_quotes": deleted_quotes, "deleted_dividends": deleted_dividends}

    def stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            hits, misses = self._hits, self._misses
        total = hits + misses
        now = self._clock()
        recent = self.quotes.find_many(updated_since=now - RECENT_UPDATES_WINDOW)
        return {
            "total_quotes": self.quotes.count(),
            "total_dividends": self.dividends.count(),
            "freshness_seconds": self.freshness_seconds,
            "cache_hits": hits,
            "cache_misses": misses,
            "cache_hit_rate_pct": round(100.0 * hits / total, 1) if total > 0 else 0.0,
            "recent_updates": len(recent),
            "recent_symbols": [
                {"symbol": r["symbol"], "updated_at": r["updated_at"].isoformat(), "source": r["source"]}
                for r in recent
            ],
        }


def _quote_fields(quote: Quote) -> Dict[str, Any]:
    return {
        "price": quote.price,
        "change": quote.change,
        "change_percent": quote.change_percent,
        "dividend_yield_pct": quote.dividend_yield_pct,
        "last_updated": quote.last_updated.isoformat(),
        "source": quote.source.value,
    }


def _dividend_fields(record: DividendRecord) -> Dict[str, Any]:
    return {
        "dividend_per_share": record.dividend_per_share,
        "ex_date": record.ex_date,
        "record_date": record.record_date,
        "payment_date": record.payment_date,
        "source": record.source.value,
    }


def _row_to_cached_quote(row: Dict[str, Any]) -> CachedQuote:
    quote = Quote(
        symbol=row["symbol"],
        price=float(row["price"]),
        change=float(row["change"]),
        change_percent=float(row["change_percent"]),
        dividend_yield_pct=row.get("dividend_yield_pct"),
        last_updated=parse_ts(row["last_updated"]),
        source=ProviderName(row["source"]),
    )
    return CachedQuote(quote=quote, created_at=row["created_at"], updated_at=row["updated_at"])


def _row_to_cached_dividend(row: Dict[str, Any]) -> CachedDividend:
    record = DividendRecord(
        symbol=row["symbol"],
        dividend_per_share=float(row["dividend_per_share"]),
        ex_date=row.get("ex_date") or "",
        record_date=row.get("record_date") or "",
        payment_date=row.get("payment_date") or "",
        source=ProviderName(row["source"]),
    )
    return CachedDividend(dividend=record, created_at=row["created_at"], updated_at=row["updated_at"])


__all__ = ["QuoteCache"]
