# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Stock data API under /api/stocks: cached quotes, dividends, rate-limit and cache status."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query

from divtrack.core.models import normalize_symbol
from divtrack.core.services import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stocks", tags=["stocks"])

MAX_SYMBOLS_PER_REQUEST = 50
DEFAULT_HISTORY_DAYS = 365


def _symbol(raw: str) -> str:
    try:
        return normalize_symbol(raw)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _parse_date(raw: Optional[str], name: str) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be YYYY-MM-DD")


@router.get("/quote")
def api_stock_quote(symbol: str = Query(..., min_length=1)) -> Dict[str, Any]:
    """Cached quote; refetched through the provider fallback when stale or missing."""
    sym = _symbol(symbol)
    cached = get_services().cache.get_quote(sym)
    if cached is None:
        raise HTTPException(status_code=404, detail=f"No data available for {sym}")
    return cached.to_dict()


@router.get("/quotes")
def api_stock_quotes(symbols: str = Query(..., description="Comma-separated symbols")) -> Dict[str, Any]:
    """Resolve several symbols concurrently. Symbols with no data are listed under ``missing``."""
    requested: List[str] = []
    for part in symbols.split(","):
        if part.strip():
            sym = _symbol(part)
            if sym not in requested:
                requested.append(sym)
    if not requested:
        raise HTTPException(status_code=400, detail="symbols is required")
    if len(requested) > MAX_SYMBOLS_PER_REQUEST:
        raise HTTPException(status_code=400, detail=f"At most {MAX_SYMBOLS_PER_REQUEST} symbols per request")

    quotes = get_services().cache.get_quotes(requested)
    found = {q.symbol for q in quotes}
    return {
        "quotes": [q.to_dict() for q in quotes],
        "missing": [s for s in requested if s not in found],
    }


@router.get("/dividend")
def api_stock_dividend(symbol: str = Query(..., min_length=1)) -> Dict[str, Any]:
    sym = _symbol(symbol)
    cached = get_services().cache.get_dividend(sym)
    if cached is None:
        raise HTTPException(status_code=404, detail=f"No dividend data available for {sym}")
    return cached.to_dict()


@router.get("/dividend-history")
def api_stock_dividend_history(
    symbol: str = Query(..., min_length=1),
    start: Optional[str] = Query(None, description="YYYY-MM-DD; default one year before end"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD; default today"),
) -> Dict[str, Any]:
    """Dividend events in [start, end], newest first. Not cached."""
    sym = _symbol(symbol)
    end_d = _parse_date(end, "end") or date.today()
    start_d = _parse_date(start, "start") or end_d - timedelta(days=DEFAULT_HISTORY_DAYS)
    if start_d > end_d:
        raise HTTPException(status_code=400, detail="start must not be after end")
    events = get_services().quote_service.get_dividend_history(sym, start_d, end_d)
    return {
        "symbol": sym,
        "start": start_d.isoformat(),
        "end": end_d.isoformat(),
        "events": [e.to_dict() for e in events],
    }


@router.get("/cached")
def api_stock_cached(
    freshness_seconds: Optional[int] = Query(None, ge=1, description="Override the freshness window"),
) -> Dict[str, Any]:
    """Fresh cached quotes only. Never calls a provider."""
    quotes = get_services().cache.get_all(freshness_seconds)
    return {"count": len(quotes), "quotes": [q.to_dict() for q in quotes]}


@router.get("/rate-limits")
def api_stock_rate_limits() -> Dict[str, Any]:
    services = get_services()
    return {
        "limits": services.rate_limiter.status(),
        "providers": services.quote_service.stats(),
    }


@router.get("/cache-stats")
def api_stock_cache_stats() -> Dict[str, Any]:
    return get_services().cache.stats()


@router.post("/refresh")
def api_stock_refresh(symbol: str = Query(..., min_length=1)) -> Dict[str, Any]:
    """Drop the cached quote and refetch it."""
    sym = _symbol(symbol)
    cached = get_services().cache.force_refresh(sym)
    if cached is None:
        raise HTTPException(status_code=404, detail=f"No data available for {sym}")
    return cached.to_dict()


@router.post("/cleanup")
def api_stock_cleanup(
    max_age_days: Optional[float] = Query(None, ge=0, description="Default: configured retention"),
) -> Dict[str, Any]:
    services = get_services()
    days = services.config.cache.retention_days if max_age_days is None else max_age_days
    result = services.cache.cleanup_older_than(days * 24 * 60 * 60)
    return {"max_age_days": days, **result}
