# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Portfolio valuation: cost basis, unrealized P&L, dividend income, yield.

Assumptions:
- effective price = current price when known, else purchase price.
- Annual dividend income defaults to yield-on-cost: shares × purchase price ×
  yield / 100. Pass ``DividendBasis.MARKET`` to value it at the effective
  price instead; the two give different totals whenever prices have moved.
- Percentages whose denominator is zero are reported as 0.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from divtrack.core.portfolio.models import (
    DividendBasis,
    PortfolioValuation,
    Position,
    PositionValuation,
)


def _pct(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


def value_position(position: Position, basis: DividendBasis = DividendBasis.COST) -> PositionValuation:
    price = position.effective_price
    market_value = position.shares * price
    cost_basis = position.shares * position.purchase_price
    pnl = market_value - cost_basis
    yield_pct = position.dividend_yield_pct or 0.0
    income_price = position.purchase_price if basis == DividendBasis.COST else price
    return PositionValuation(
        ticker=position.ticker,
        shares=position.shares,
        effective_price=price,
        market_value=market_value,
        cost_basis=cost_basis,
        unrealized_pnl=pnl,
        unrealized_pnl_pct=_pct(pnl, cost_basis),
        dividend_yield_pct=yield_pct,
        annual_dividend=position.shares * income_price * (yield_pct / 100),
    )


def value_portfolio(
    positions: Iterable[Position],
    basis: DividendBasis = DividendBasis.COST,
) -> PortfolioValuation:
    rows = [value_position(p, basis) for p in positions]
    total_invested = sum(r.cost_basis for r in rows)
    total_current = sum(r.market_value for r in rows)
    total_pnl = total_current - total_invested
    total_dividends = sum(r.annual_dividend for r in rows)
    return PortfolioValuation(
        total_invested=total_invested,
        total_current_value=total_current,
        total_unrealized_gain_loss=total_pnl,
        total_unrealized_gain_loss_pct=_pct(total_pnl, total_invested),
        total_annual_dividends=total_dividends,
        portfolio_dividend_yield=_pct(total_dividends, total_current),
        monthly_dividend_income=total_dividends / 12,
        position_count=len(rows),
        dividend_basis=basis,
        positions=rows,
    )


def allocation(positions: Iterable[Position]) -> List[Dict[str, Any]]:
    """Market value per ticker and its share of the portfolio, largest first."""
    by_ticker: Dict[str, float] = {}
    for p in positions:
        by_ticker[p.ticker] = by_ticker.get(p.ticker, 0.0) + p.shares * p.effective_price
    total = sum(by_ticker.values())
    result = [
        {"ticker": t, "market_value": v, "pct_of_portfolio": _pct(v, total)}
        for t, v in by_ticker.items()
    ]
    return sorted(result, key=lambda x: -x["market_value"])


def top_performers(positions: Iterable[Position], limit: int = 5) -> List[PositionValuation]:
    rows = [value_position(p) for p in positions]
    rows.sort(key=lambda r: r.unrealized_pnl_pct, reverse=True)
    return rows[:max(0, limit)]


def dividend_breakdown(
    positions: Iterable[Position],
    basis: DividendBasis = DividendBasis.COST,
) -> List[PositionValuation]:
    """Dividend payers only, highest yield first."""
    rows = [value_position(p, basis) for p in positions if (p.dividend_yield_pct or 0) > 0]
    rows.sort(key=lambda r: r.dividend_yield_pct, reverse=True)
    return rows


__all__ = [
    "allocation",
    "dividend_breakdown",
    "top_performers",
    "value_portfolio",
    "value_position",
]
