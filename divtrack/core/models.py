# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Normalized stock-data records shared by providers, the fallback service and the cache."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ProviderName(str, Enum):
    """Upstream stock-data sources, in no particular order."""

    ALPHA_VANTAGE = "alpha_vantage"
    FINNHUB = "finnhub"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_symbol(symbol: str) -> str:
    """Strip and upper-case a ticker. Raises ValueError when blank."""
    if not symbol or not str(symbol).strip():
        raise ValueError("symbol must be a non-empty string")
    return str(symbol).strip().upper()


@dataclass(frozen=True)
class Quote:
    """Point-in-time price snapshot for one ticker.

    ``dividend_yield_pct`` is always a percentage (3.5 means 3.5%), whatever
    format the upstream provider used.
    """

    symbol: str
    price: float
    change: float
    change_percent: float
    last_updated: datetime
    source: ProviderName
    dividend_yield_pct: Optional[float] = None

    def __post_init__(self) -> None:
        if not (self.price > 0):
            raise ValueError(f"price must be positive, got {self.price!r}")
        if self.dividend_yield_pct is not None and not (0 <= self.dividend_yield_pct <= 100):
            raise ValueError(f"dividend_yield_pct out of range: {self.dividend_yield_pct!r}")

    def with_dividend_yield(self, dividend_yield_pct: float) -> "Quote":
        return replace(self, dividend_yield_pct=dividend_yield_pct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "dividend_yield_pct": self.dividend_yield_pct,
            "last_updated": self.last_updated.isoformat(),
            "source": self.source.value,
        }


@dataclass(frozen=True)
class DividendRecord:
    """Most recent dividend declaration for a ticker. Dates are ISO strings, '' when unknown."""

    symbol: str
    dividend_per_share: float
    ex_date: str
    record_date: str
    payment_date: str
    source: ProviderName

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "dividend_per_share": self.dividend_per_share,
            "ex_date": self.ex_date,
            "record_date": self.record_date,
            "payment_date": self.payment_date,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class DividendEvent:
    """One historical dividend payment (timeline charts)."""

    date: str
    amount: float
    ex_date: str
    payment_date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "amount": self.amount,
            "ex_date": self.ex_date,
            "payment_date": self.payment_date,
        }


@dataclass(frozen=True)
class CachedQuote:
    """Quote as persisted in the cache, with row timestamps."""

    quote: Quote
    created_at: datetime
    updated_at: datetime

    @property
    def symbol(self) -> str:
        return self.quote.symbol

    def to_dict(self) -> Dict[str, Any]:
        d = self.quote.to_dict()
        d["created_at"] = self.created_at.isoformat()
        d["updated_at"] = self.updated_at.isoformat()
        return d


@dataclass(frozen=True)
class CachedDividend:
    """DividendRecord as persisted in the cache."""

    dividend: DividendRecord
    created_at: datetime
    updated_at: datetime

    @property
    def symbol(self) -> str:
        return self.dividend.symbol

    def to_dict(self) -> Dict[str, Any]:
        d = self.dividend.to_dict()
        d["created_at"] = self.created_at.isoformat()
        d["updated_at"] = self.updated_at.isoformat()
        return d


__all__ = [
    "ProviderName",
    "Quote",
    "DividendRecord",
    "DividendEvent",
    "CachedQuote",
    "CachedDividend",
    "normalize_symbol",
    "utc_now",
]
