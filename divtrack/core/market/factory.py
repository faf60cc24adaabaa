# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Build the configured rate limiter, providers and fallback service."""

from __future__ import annotations

import logging
from typing import List, Optional

import requests

from divtrack.core.market.fallback import FallbackQuoteService
from divtrack.core.market.providers import AlphaVantageProvider, FinnhubProvider, StockDataProvider
from divtrack.core.market.rate_limiter import ProviderQuota, RateLimiter
from divtrack.core.models import ProviderName
from divtrack.core.settings import DivTrackConfig, load_config

logger = logging.getLogger(__name__)


def build_rate_limiter(config: Optional[DivTrackConfig] = None) -> RateLimiter:
    cfg = config or load_config()
    return RateLimiter({
        ProviderName.ALPHA_VANTAGE: ProviderQuota(cfg.alpha_vantage.limit, cfg.alpha_vantage.window_seconds),
        ProviderName.FINNHUB: ProviderQuota(cfg.finnhub.limit, cfg.finnhub.window_seconds),
    })


def build_providers(
    rate_limiter: RateLimiter,
    config: Optional[DivTrackConfig] = None,
    session: Optional[requests.Session] = None,
) -> List[StockDataProvider]:
    """Providers in priority order: Alpha Vantage (has dividend data) then Finnhub."""
    cfg = config or load_config()
    session = session or requests.Session()
    providers: List[StockDataProvider] = [
        AlphaVantageProvider(cfg.alpha_vantage.api_key, rate_limiter, session=session, timeout=cfg.provider_timeout),
        FinnhubProvider(cfg.finnhub.api_key, rate_limiter, session=session, timeout=cfg.provider_timeout),
    ]
    for p in providers:
        if not p.enabled:
            logger.warning("[CONFIG] %s API key not set; provider disabled", p.name.value)
    return providers


def build_quote_service(
    rate_limiter: RateLimiter,
    config: Optional[DivTrackConfig] = None,
) -> FallbackQuoteService:
    return FallbackQuoteService(build_providers(rate_limiter, config))


__all__ = ["build_rate_limiter", "build_providers", "build_quote_service"]
