# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Monthly dividend goal tracking and high-yield suggestions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from divtrack.core.models import CachedQuote
from divtrack.core.portfolio.models import Portfolio, PortfolioValuation

MIN_SUGGESTION_YIELD_PCT = 3.0
SUGGESTION_POOL_SIZE = 10
MAX_SUGGESTIONS = 5


def progress_percent(monthly_income: float, monthly_goal: Optional[float]) -> float:
    """Income as a percent of the goal. Unset or non-positive goal gives 0. Not capped."""
    if monthly_goal is None or monthly_goal <= 0:
        return 0.0
    return monthly_income / monthly_goal * 100


def progress_bar_percent(monthly_income: float, monthly_goal: Optional[float]) -> float:
    """``progress_percent`` clamped to [0, 100] for rendering."""
    return max(0.0, min(100.0, progress_percent(monthly_income, monthly_goal)))


def goal_status(portfolio: Portfolio, valuation: PortfolioValuation) -> Dict[str, Any]:
    monthly_income = valuation.monthly_dividend_income
    goal = portfolio.monthly_dividend_goal
    has_goal = goal is not None and goal > 0
    return {
        "monthly_dividend_goal": goal,
        "annual_dividend_goal": portfolio.annual_dividend_goal,
        "monthly_dividend_income": monthly_income,
        "annual_dividend_income": valuation.total_annual_dividends,
        "progress_pct": progress_percent(monthly_income, goal),
        "progress_bar_pct": progress_bar_percent(monthly_income, goal),
        "remaining_monthly": max(0.0, goal - monthly_income) if has_goal else None,
        "goal_met": has_goal and monthly_income >= goal,
    }


@dataclass(frozen=True)
class StockSuggestion:
    symbol: str
    price: float
    dividend_yield_pct: float
    shares_needed: int
    investment_needed: float
    monthly_income: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "dividend_yield_pct": self.dividend_yield_pct,
            "shares_needed": self.shares_needed,
            "investment_needed": self.investment_needed,
            "monthly_income": self.monthly_income,
        }


def suggest_stocks(
    cached_quotes: Iterable[CachedQuote],
    monthly_goal: Optional[float],
    held_tickers: Iterable[str] = (),
) -> List[StockSuggestion]:
    """Rank cached high-yield stocks by the capital needed to hit ``monthly_goal`` alone.

    Only cached quotes are considered; nothing is fetched. The ten highest
    yields (at least 3%) form the pool, held tickers are removed, and the five
    cheapest routes to the goal are returned.
    """
    if monthly_goal is None or monthly_goal <= 0:
        return []

    candidates = [
        c.quote for c in cached_quotes
        if c.quote.price > 0
        and c.quote.dividend_yield_pct is not None
        and c.quote.dividend_yield_pct >= MIN_SUGGESTION_YIELD_PCT
    ]
    candidates.sort(key=lambda q: q.dividend_yield_pct, reverse=True)
    pool = candidates[:SUGGESTION_POOL_SIZE]

    held = {t.strip().upper() for t in held_tickers}
    suggestions: List[StockSuggestion] = []
    for q in pool:
        if q.symbol in held:
            continue
        monthly_per_share = q.price * q.dividend_yield_pct / 100 / 12
        shares = math.ceil(monthly_goal / monthly_per_share)
        suggestions.append(
            StockSuggestion(
                symbol=q.symbol,
                price=q.price,
                dividend_yield_pct=q.dividend_yield_pct,
                shares_needed=shares,
                investment_needed=shares * q.price,
                monthly_income=shares * monthly_per_share,
            )
        )
    suggestions.sort(key=lambda s: s.investment_needed)
    return suggestions[:MAX_SUGGESTIONS]


__all__ = [
    "StockSuggestion",
    "goal_status",
    "progress_bar_percent",
    "progress_percent",
    "suggest_stocks",
]
