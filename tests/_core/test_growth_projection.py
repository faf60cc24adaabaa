# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Compound-growth projection."""

from __future__ import annotations

import pytest

from divtrack.core.planning.projection import (
    WEEKS_PER_MONTH,
    DepositFrequency,
    project_growth,
    projected_monthly_income,
)


def test_closed_form_matches_breakdown_no_deposit():
    """10000 at 8% for 10 years."""
    result = project_growth(10000, 8, 10)
    monthly_rate = 1.08 ** (1 / 12) - 1
    assert result.total_months == 120
    assert result.monthly_rate == pytest.approx(monthly_rate)
    assert result.future_value == pytest.approx(10000 * (1 + monthly_rate) ** 120)
    assert result.breakdown[-1].value == pytest.approx(result.future_value)
    # Geometric monthly rate compounds back to exactly 8% a year
    assert result.future_value == pytest.approx(10000 * 1.08 ** 10)


def test_closed_form_matches_breakdown_with_deposits():
    result = project_growth(5000, 7, 20, recurring_deposit=250)
    assert result.breakdown[-1].value == pytest.approx(result.future_value, rel=1e-9)
    assert result.breakdown[-1].invested == pytest.approx(result.total_invested)
    assert result.total_invested == pytest.approx(5000 + 250 * 240)


def test_zero_rate_does_not_divide_by_zero():
    result = project_growth(1000, 0, 1, recurring_deposit=100)
    assert result.future_value == pytest.approx(2200.0)
    assert result.total_invested == pytest.approx(2200.0)
    assert result.total_gains == pytest.approx(0.0)
    assert result.breakdown[-1].value == pytest.approx(2200.0)


def test_weekly_deposit_uses_weeks_per_month_factor():
    result = project_growth(0, 0, 1, recurring_deposit=50, frequency=DepositFrequency.WEEKLY)
    assert result.monthly_deposit == pytest.approx(50 * WEEKS_PER_MONTH)
    assert result.total_invested == pytest.approx(50 * 4.33 * 12)


def test_frequency_accepts_plain_string():
    result = project_growth(0, 0, 1, recurring_deposit=10, frequency="weekly")
    assert result.monthly_deposit == pytest.approx(43.3)


def test_breakdown_is_monthly_and_tracks_gains():
    result = project_growth(1000, 12, 2, recurring_deposit=10)
    assert [p.month for p in result.breakdown] == list(range(1, 25))
    for p in result.breakdown:
        assert p.gains == pytest.approx(p.value - p.invested)
    values = [p.value for p in result.breakdown]
    assert values == sorted(values)


def test_fractional_horizon_rounds_to_months():
    assert project_growth(1000, 5, 1.5).total_months == 18


def test_negative_return_shrinks_value():
    result = project_growth(1000, -10, 1)
    assert result.future_value == pytest.approx(900.0)
    assert result.total_gains == pytest.approx(-100.0)


@pytest.mark.parametrize(
    "args",
    [
        (-1, 8, 10, 0),
        (1000, 8, 0, 0),
        (1000, 8, -2, 0),
        (1000, 8, 10, -5),
        (1000, -100, 10, 0),
    ],
)
def test_invalid_inputs_rejected(args):
    with pytest.raises(ValueError):
        project_growth(*args)


def test_to_dict_shape():
    d = project_growth(100, 5, 1).to_dict()
    assert set(d) >= {"future_value", "total_invested", "total_gains", "breakdown"}
    assert set(d["breakdown"][0]) == {"month", "value", "invested", "gains"}


def test_projected_monthly_income():
    assert projected_monthly_income(120000, 4.0) == pytest.approx(400.0)
    assert projected_monthly_income(0, 4.0) == 0.0
    assert projected_monthly_income(1000, 0) == 0.0
