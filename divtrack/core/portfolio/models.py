# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Portfolio models: positions, portfolios and valuation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class DividendBasis(str, Enum):
    """Price used to turn a dividend yield into income.

    COST is yield-on-cost (shares × purchase price × yield) and is the default
    everywhere. MARKET uses the effective (current) price instead.
    """

    COST = "cost"
    MARKET = "market"


@dataclass
class Position:
    """A long equity holding inside a portfolio."""

    ticker: str
    shares: float
    purchase_price: float
    purchase_date: str  # YYYY-MM-DD
    current_price: Optional[float] = None
    dividend_yield_pct: Optional[float] = None
    id: Optional[str] = None
    portfolio_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.ticker = (self.ticker or "").strip().upper()
        if not self.ticker:
            raise ValueError("ticker is required")
        if not (self.shares > 0):
            raise ValueError("shares must be positive")
        if not (self.purchase_price > 0):
            raise ValueError("purchase_price must be positive")
        if self.current_price is not None and not (self.current_price > 0):
            raise ValueError("current_price must be positive when set")
        if self.dividend_yield_pct is not None and not (0 <= self.dividend_yield_pct <= 100):
            raise ValueError("dividend_yield_pct must be within [0, 100]")

    @property
    def effective_price(self) -> float:
        return self.current_price if self.current_price is not None else self.purchase_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "portfolio_id": self.portfolio_id,
            "ticker": self.ticker,
            "shares": self.shares,
            "purchase_price": self.purchase_price,
            "purchase_date": self.purchase_date,
            "current_price": self.current_price,
            "dividend_yield_pct": self.dividend_yield_pct,
        }


@dataclass
class Portfolio:
    """A user's named collection of positions."""

    id: str
    user_id: str
    name: str
    is_main: bool = False
    monthly_dividend_goal: Optional[float] = None
    created_at: Optional[str] = None

    @property
    def annual_dividend_goal(self) -> Optional[float]:
        if self.monthly_dividend_goal is None:
            return None
        return self.monthly_dividend_goal * 12

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "is_main": self.is_main,
            "monthly_dividend_goal": self.monthly_dividend_goal,
            "annual_dividend_goal": self.annual_dividend_goal,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class PositionValuation:
    """Per-position figures."""

    ticker: str
    shares: float
    effective_price: float
    market_value: float
    cost_basis: float
    unrealized_pnl: float
    unrealized_pnl_pct: float
    dividend_yield_pct: float
    annual_dividend: float


@dataclass
class PortfolioValuation:
    """Aggregate figures for a list of positions."""

    total_invested: float
    total_current_value: float
    total_unrealized_gain_loss: float
    total_unrealized_gain_loss_pct: float
    total_annual_dividends: float
    portfolio_dividend_yield: float
    monthly_dividend_income: float
    position_count: int
    dividend_basis: DividendBasis = DividendBasis.COST
    positions: List[PositionValuation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_invested": self.total_invested,
            "total_current_value": self.total_current_value,
            "total_unrealized_gain_loss": self.total_unrealized_gain_loss,
            "total_unrealized_gain_loss_pct": self.total_unrealized_gain_loss_pct,
            "total_annual_dividends": self.total_annual_dividends,
            "portfolio_dividend_yield": self.portfolio_dividend_yield,
            "monthly_dividend_income": self.monthly_dividend_income,
            "position_count": self.position_count,
            "dividend_basis": self.dividend_basis.value,
        }
