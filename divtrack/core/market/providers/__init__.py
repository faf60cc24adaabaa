# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Upstream stock-data providers (Alpha Vantage primary, Finnhub fallback)."""

from divtrack.core.market.providers.alpha_vantage import AlphaVantageProvider
from divtrack.core.market.providers.base import ProviderUnavailableError, StockDataProvider
from divtrack.core.market.providers.finnhub import FinnhubProvider

__all__ = [
    "AlphaVantageProvider",
    "FinnhubProvider",
    "ProviderUnavailableError",
    "StockDataProvider",
]
