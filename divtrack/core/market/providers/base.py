# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Stock-data provider interface and shared HTTP request path.

Every provider call is gated by the shared RateLimiter and never raises to
callers: transport errors, non-2xx responses, unparseable bodies and
provider-reported error payloads are logged and turned into ``None``.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd
import requests

from divtrack.core.market.rate_limiter import RateLimiter
from divtrack.core.models import DividendEvent, DividendRecord, ProviderName, Quote

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ProviderUnavailableError(Exception):
    """Upstream call failed: network error, bad status, bad JSON or error payload."""

    def __init__(self, provider: ProviderName, reason: str) -> None:
        super().__init__(f"{provider.value}: {reason}")
        self.provider = provider
        self.reason = reason


class StockDataProvider(ABC):
    """One upstream HTTP JSON API. Subclasses only build URLs and parse payloads."""

    name: ProviderName
    base_url: str

    def __init__(
        self,
        api_key: str,
        rate_limiter: RateLimiter,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """
        Parameters
        ----------
        api_key:
            Provider API key, sent as a query parameter. Empty disables the provider.
        rate_limiter:
            Shared limiter; consulted before and recorded right before every request.
        session:
            Optional ``requests.Session`` for connection reuse/testing.
        """
        self.api_key = api_key or ""
        self.rate_limiter = rate_limiter
        self.session = session or requests.Session()
        self.timeout = timeout
        self._stats_lock = threading.Lock()
        self._stats = {"requests": 0, "failures": 0, "rate_limited": 0, "skipped_no_key": 0}

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @abstractmethod
    def fetch_quote(self, symbol: str) -> Optional[Quote]:
        """Latest quote, or None on any failure."""
        ...

    @abstractmethod
    def fetch_fundamentals(self, symbol: str) -> Optional[float]:
        """Dividend yield as a percentage, or None when unavailable."""
        ...

    @abstractmethod
    def fetch_dividend(self, symbol: str) -> Optional[DividendRecord]:
        """Most recent dividend, or None."""
        ...

    @abstractmethod
    def fetch_dividend_history(self, symbol: str, start: date, end: date) -> List[DividendEvent]:
        """Dividends paid between start and end (inclusive), newest first. Empty on failure."""
        ...

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return dict(self._stats)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _bump(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] = self._stats.get(key, 0) + 1

    def _get_json(self, path: str, params: Dict[str, Any]) -> Optional[Any]:
        """GET base_url + path and return decoded JSON.

        Returns None without touching the network when the key is missing or
        the rate limiter refuses. Raises ProviderUnavailableError on failure.
        """
        if not self.enabled:
            self._bump("skipped_no_key")
            return None
        if not self.rate_limiter.try_acquire(self.name):
            self._bump("rate_limited")
            logger.debug("[PROVIDER] %s rate limited, skipping %s", self.name.value, path)
            return None

        self._bump("requests")
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                params={**params, **self._auth_params()},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderUnavailableError(self.name, f"request failed: {exc}") from exc

        if response.status_code != 200:
            error_text = response.text[:200] if response.text else "Unknown error"
            raise ProviderUnavailableError(self.name, f"HTTP {response.status_code}: {error_text}")

        try:
            payload = response.json()
        except ValueError as exc:  # JSONDecodeError
            raise ProviderUnavailableError(self.name, "invalid JSON") from exc

        error = self._error_message(payload)
        if error:
            raise ProviderUnavailableError(self.name, error)
        return payload

    def _fail(self, what: str, symbol: str, exc: Exception) -> None:
        self._bump("failures")
        logger.warning("[PROVIDER] %s %s failed for %s: %s", self.name.value, what, symbol, exc)

    @abstractmethod
    def _auth_params(self) -> Dict[str, str]:
        ...

    @abstractmethod
    def _error_message(self, payload: Any) -> Optional[str]:
        """Provider-reported error text in a decoded payload, else None."""
        ...


def parse_float(value: Any) -> float:
    """float() that also accepts '1.23%' and rejects None/'None'/'-'."""
    if value is None:
        raise ValueError("missing numeric value")
    if isinstance(value, str):
        text = value.strip().rstrip("%").strip()
        if text in ("", "None", "-"):
            raise ValueError(f"not a number: {value!r}")
        return float(text)
    return float(value)


def valid_yield(pct: Optional[float]) -> Optional[float]:
    """Keep only yields inside [0, 100]."""
    if pct is None:
        return None
    if 0 <= pct <= 100:
        return pct
    logger.debug("[PROVIDER] discarding out-of-range dividend yield %s", pct)
    return None


def dividend_events(
    rows: List[Dict[str, Any]],
    *,
    date_key: str,
    amount_key: str,
    ex_key: str,
    pay_key: str,
    start: date,
    end: date,
) -> List[DividendEvent]:
    """Normalize raw dividend rows: drop non-positive amounts, keep [start, end], newest first."""
    if not rows:
        return []
    df = pd.DataFrame(rows)
    missing_cols = {date_key, amount_key} - set(df.columns)
    if missing_cols:
        raise ValueError(f"dividend rows missing expected fields: {sorted(missing_cols)}")

    df["_date"] = pd.to_datetime(df[date_key], errors="coerce")
    df["_amount"] = pd.to_numeric(df[amount_key], errors="coerce")
    df = df.dropna(subset=["_date", "_amount"])
    df = df[df["_amount"] > 0]
    df = df[(df["_date"] >= pd.Timestamp(start)) & (df["_date"] <= pd.Timestamp(end))]
    df = df.sort_values("_date", ascending=False)

    def _text(row: Any, key: str) -> str:
        value = row.get(key) if key in row else None
        if value is None or (isinstance(value, float) and pd.isna(value)) or str(value) == "None":
            return ""
        return str(value)

    return [
        DividendEvent(
            date=row["_date"].date().isoformat(),
            amount=float(row["_amount"]),
            ex_date=_text(row, ex_key),
            payment_date=_text(row, pay_key),
        )
        for _, row in df.iterrows()
    ]


__all__ = [
    "dividend_events",
    "ProviderUnavailableError",
    "StockDataProvider",
    "parse_float",
    "valid_yield",
]
