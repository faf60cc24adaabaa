# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Compound-growth projection with recurring deposits.

The annual return is converted to a geometric monthly rate
``(1 + r) ** (1 / 12) - 1``. Weekly deposits are folded into a monthly
equivalent using WEEKS_PER_MONTH; there is no true weekly compounding.
Deposits are made at the end of each month (ordinary annuity).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

WEEKS_PER_MONTH = 4.33


class DepositFrequency(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class ProjectionPoint:
    month: int
    value: float
    invested: float
    gains: float

    def to_dict(self) -> Dict[str, Any]:
        return {"month": self.month, "value": self.value, "invested": self.invested, "gains": self.gains}


@dataclass
class ProjectionResult:
    future_value: float
    total_invested: float
    total_gains: float
    monthly_rate: float
    total_months: int
    monthly_deposit: float
    breakdown: List[ProjectionPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "future_value": self.future_value,
            "total_invested": self.total_invested,
            "total_gains": self.total_gains,
            "monthly_rate": self.monthly_rate,
            "total_months": self.total_months,
            "monthly_deposit": self.monthly_deposit,
            "breakdown": [p.to_dict() for p in self.breakdown],
        }


def monthly_rate_from_annual(annual_return_pct: float) -> float:
    return (1 + annual_return_pct / 100) ** (1 / 12) - 1


def monthly_deposit_equivalent(deposit: float, frequency: DepositFrequency) -> float:
    if DepositFrequency(frequency) == DepositFrequency.WEEKLY:
        return deposit * WEEKS_PER_MONTH
    return deposit


def project_growth(
    present_value: float,
    annual_return_pct: float,
    horizon_years: float,
    recurring_deposit: float = 0.0,
    frequency: DepositFrequency = DepositFrequency.MONTHLY,
) -> ProjectionResult:
    """Project a portfolio's value forward.

    Parameters
    ----------
    present_value:
        Starting value, >= 0.
    annual_return_pct:
        Expected annual return in percent (8 means 8%). Must be > -100.
    horizon_years:
        Horizon in years, > 0. Converted to ``round(horizon_years * 12)`` months.
    recurring_deposit:
        Amount deposited each period, >= 0.
    frequency:
        ``monthly`` or ``weekly``.

    Returns
    -------
    ProjectionResult
        Closed-form totals plus a month-by-month breakdown whose final value
        matches ``future_value``.
    """
    if not (present_value >= 0):
        raise ValueError("present_value must be non-negative")
    if not (horizon_years > 0):
        raise ValueError("horizon_years must be positive")
    if not (recurring_deposit >= 0):
        raise ValueError("recurring_deposit must be non-negative")
    if not (annual_return_pct > -100):
        raise ValueError("annual_return_pct must be greater than -100")

    rate = monthly_rate_from_annual(annual_return_pct)
    deposit = monthly_deposit_equivalent(recurring_deposit, frequency)
    months = int(round(horizon_years * 12))
    if months < 1:
        raise ValueError("horizon_years must cover at least one month")

    growth = (1 + rate) ** months
    if rate == 0:
        annuity = deposit * months
    else:
        annuity = deposit * ((growth - 1) / rate)
    future_value = present_value * growth + annuity
    total_invested = present_value + deposit * months

    breakdown: List[ProjectionPoint] = []
    running = float(present_value)
    invested = float(present_value)
    for month in range(1, months + 1):
        running = running * (1 + rate) + deposit
        invested += deposit
        breakdown.append(ProjectionPoint(month=month, value=running, invested=invested, gains=running - invested))

    return ProjectionResult(
        future_value=future_value,
        total_invested=total_invested,
        total_gains=future_value - total_invested,
        monthly_rate=rate,
        total_months=months,
        monthly_deposit=deposit,
        breakdown=breakdown,
    )


def projected_monthly_income(value: float, dividend_yield_pct: float) -> float:
    """Monthly dividend income a portfolio of ``value`` would throw off at ``dividend_yield_pct``."""
    if not math.isfinite(value) or value <= 0 or dividend_yield_pct <= 0:
        return 0.0
    return value * dividend_yield_pct / 100 / 12


__all__ = [
    "DepositFrequency",
    "ProjectionPoint",
    "ProjectionResult",
    "WEEKS_PER_MONTH",
    "monthly_deposit_equivalent",
    "monthly_rate_from_annual",
    "project_growth",
    "projected_monthly_income",
]
