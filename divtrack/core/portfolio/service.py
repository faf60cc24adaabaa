# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Portfolio service: price refresh, summary and suggestions.

Assumptions:
- Prices come from the quote cache, never straight from a provider.
- A ticker that cannot be resolved keeps its stored price.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict

from divtrack.core.data.quote_cache import QuoteCache
from divtrack.core.planning.goals import goal_status, suggest_stocks
from divtrack.core.portfolio.models import DividendBasis
from divtrack.core.portfolio.store import PortfolioStore
from divtrack.core.portfolio.valuation import (
    allocation,
    dividend_breakdown,
    top_performers,
    value_portfolio,
)

logger = logging.getLogger(__name__)


def refresh_portfolio_prices(store: PortfolioStore, cache: QuoteCache, portfolio_id: str) -> Dict[str, Any]:
    """
    Resolve every unique ticker in the portfolio through the cache and write
    the prices back to its positions.

    Returns counts: tickers, refreshed, failed, positions_updated; plus the
    list of failed symbols.
    """
    positions = store.list_positions(portfolio_id)
    tickers = sorted({p.ticker for p in positions})
    if not tickers:
        return {"tickers": 0, "refreshed": 0, "failed": 0, "positions_updated": 0, "failed_symbols": []}

    quotes = {c.symbol: c.quote for c in cache.get_quotes(tickers)}
    updated = 0
    failed = []
    for ticker in tickers:
        quote = quotes.get(ticker)
        if quote is None:
            failed.append(ticker)
            continue
        updated += store.update_ticker_prices(
            portfolio_id, ticker, quote.price, quote.dividend_yield_pct
        )

    logger.info(
        "[PORTFOLIO] refreshed %s/%s tickers for %s (%s positions)",
        len(tickers) - len(failed), len(tickers), portfolio_id, updated,
    )
    if failed:
        logger.warning("[PORTFOLIO] no price for %s", ", ".join(failed))
    return {
        "tickers": len(tickers),
        "refreshed": len(tickers) - len(failed),
        "failed": len(failed),
        "positions_updated": updated,
        "failed_symbols": failed,
    }


def portfolio_summary(
    store: PortfolioStore,
    portfolio_id: str,
    basis: DividendBasis = DividendBasis.COST,
) -> Dict[str, Any]:
    portfolio = store.get_portfolio(portfolio_id)
    positions = store.list_positions(portfolio_id)
    valuation = value_portfolio(positions, basis)
    return {
        "portfolio": portfolio.to_dict(),
        "valuation": valuation.to_dict(),
        "goal": goal_status(portfolio, valuation),
        "allocation": allocation(positions),
        "top_performers": [asdict(r) for r in top_performers(positions)],
        "dividend_breakdown": [asdict(r) for r in dividend_breakdown(positions, basis)],
    }


def portfolio_suggestions(store: PortfolioStore, cache: QuoteCache, portfolio_id: str) -> Dict[str, Any]:
    portfolio = store.get_portfolio(portfolio_id)
    held = [p.ticker for p in store.list_positions(portfolio_id)]
    suggestions = suggest_stocks(cache.get_all(), portfolio.monthly_dividend_goal, held)
    return {
        "portfolio_id": portfolio_id,
        "monthly_dividend_goal": portfolio.monthly_dividend_goal,
        "suggestions": [s.to_dict() for s in suggestions],
    }


__all__ = ["portfolio_suggestions", "portfolio_summary", "refresh_portfolio_prices"]
