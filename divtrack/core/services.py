# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Process-wide service wiring: one rate limiter, one fallback service, one cache.

The rate limiter counts are in-process; every caller in this process must go
through the same instance for the quota to hold.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from divtrack.core.data.quote_cache import QuoteCache
from divtrack.core.market.factory import build_quote_service, build_rate_limiter
from divtrack.core.market.fallback import FallbackQuoteService
from divtrack.core.market.rate_limiter import RateLimiter
from divtrack.core.portfolio.store import PortfolioStore
from divtrack.core.settings import DivTrackConfig, load_config
from divtrack.db.cache_repository import DIVIDENDS_TABLE, QUOTES_TABLE, CacheRepository

logger = logging.getLogger(__name__)

_SERVICES: Optional["Services"] = None
_SERVICES_LOCK = threading.Lock()


@dataclass
class Services:
    config: DivTrackConfig
    rate_limiter: RateLimiter
    quote_service: FallbackQuoteService
    cache: QuoteCache
    portfolios: PortfolioStore


def build_services(config: Optional[DivTrackConfig] = None) -> Services:
    cfg = config or load_config()
    limiter = build_rate_limiter(cfg)
    quote_service = build_quote_service(limiter, cfg)
    cache = QuoteCache(
        quotes=CacheRepository(cfg.db_path, QUOTES_TABLE),
        dividends=CacheRepository(cfg.db_path, DIVIDENDS_TABLE),
        fetcher=quote_service,
        freshness_seconds=cfg.cache.freshness_seconds,
        max_workers=cfg.cache.max_workers,
    )
    logger.info(
        "[CONFIG] env=%s db=%s freshness=%ss",
        cfg.environment, cfg.db_path, cfg.cache.freshness_seconds,
    )
    return Services(
        config=cfg,
        rate_limiter=limiter,
        quote_service=quote_service,
        cache=cache,
        portfolios=PortfolioStore(cfg.db_path),
    )


def get_services(*, reload: bool = False) -> Services:
    """Return the shared services, building them on first use."""
    global _SERVICES
    with _SERVICES_LOCK:
        if _SERVICES is None or reload:
            _SERVICES = build_services(load_config(reload=reload))
        return _SERVICES


__all__ = ["Services", "build_services", "get_services"]
