# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""Portfolio API under /api/portfolios: portfolio and position CRUD, summary, price refresh and suggestions."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Path, Query, Request

from divtrack.core.portfolio.models import DividendBasis, Position
from divtrack.core.portfolio.service import (
    portfolio_suggestions,
    portfolio_summary,
    refresh_portfolio_prices,
)
from divtrack.core.portfolio.store import PortfolioNotFoundError, PortfolioStore, PositionNotFoundError
from divtrack.core.services import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolios", tags=["portfolios"])

MAX_TICKER_LENGTH = 10
_REQUIRED_NUMBERS = ("shares", "purchase_price")
_OPTIONAL_NUMBERS = ("current_price", "dividend_yield_pct")


async def _json_object(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")
    return body


def _as_float(value: Any, key: str) -> float:
    if value is None or isinstance(value, bool):
        raise HTTPException(status_code=400, detail=f"{key} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{key} must be a number")


def _position_fields(body: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    """Coerce position fields from a JSON body. ``partial`` only takes the keys present."""
    fields: Dict[str, Any] = {}
    if not partial or "ticker" in body:
        ticker = str(body.get("ticker") or "").strip().upper()
        if not ticker or len(ticker) > MAX_TICKER_LENGTH:
            raise HTTPException(status_code=400, detail=f"ticker must be 1-{MAX_TICKER_LENGTH} characters")
        fields["ticker"] = ticker
    if not partial or "purchase_date" in body:
        try:
            fields["purchase_date"] = date.fromisoformat(str(body.get("purchase_date") or "").strip()).isoformat()
        except ValueError:
            raise HTTPException(status_code=400, detail="purchase_date must be YYYY-MM-DD")
    for key in _REQUIRED_NUMBERS:
        if key in body:
            fields[key] = _as_float(body[key], key)
        elif not partial:
            raise HTTPException(status_code=400, detail=f"{key} is required")
    for key in _OPTIONAL_NUMBERS:
        if key in body:
            fields[key] = None if body[key] is None else _as_float(body[key], key)
    return fields


def _owned_position(store: PortfolioStore, portfolio_id: str, position_id: str) -> Position:
    store.get_portfolio(portfolio_id)
    position = store.get_position(position_id)
    if position.portfolio_id != portfolio_id:
        raise PositionNotFoundError(f"Position not found: {position_id}")
    return position


# --------------------------------------------------------------------------- #
# Portfolios
# --------------------------------------------------------------------------- #
@router.post("", status_code=201)
async def api_portfolio_create(request: Request) -> Dict[str, Any]:
    """Body: user_id, name. A user's first portfolio becomes the main one."""
    body = await _json_object(request)
    user_id = str(body.get("user_id") or "").strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id is required")
    try:
        portfolio = get_services().portfolios.create_portfolio(user_id, str(body.get("name") or ""))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return portfolio.to_dict()


@router.get("")
def api_portfolio_list(user_id: str = Query(..., min_length=1)) -> Dict[str, Any]:
    """User's portfolios, main first."""
    portfolios = get_services().portfolios.list_portfolios(user_id)
    return {"portfolios": [p.to_dict() for p in portfolios]}


@router.get("/{portfolio_id}")
def api_portfolio_get(portfolio_id: str = Path(...)) -> Dict[str, Any]:
    store = get_services().portfolios
    try:
        portfolio = store.get_portfolio(portfolio_id)
        positions = store.list_positions(portfolio_id)
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"portfolio": portfolio.to_dict(), "positions": [p.to_dict() for p in positions]}


@router.delete("/{portfolio_id}")
def api_portfolio_delete(portfolio_id: str = Path(...)) -> Dict[str, Any]:
    """Delete a portfolio and its positions."""
    try:
        get_services().portfolios.delete_portfolio(portfolio_id)
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info("[PORTFOLIO] deleted %s", portfolio_id)
    return {"deleted": portfolio_id}


@router.post("/{portfolio_id}/main")
def api_portfolio_set_main(portfolio_id: str = Path(...)) -> Dict[str, Any]:
    try:
        return get_services().portfolios.set_main(portfolio_id).to_dict()
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{portfolio_id}/goal")
async def api_portfolio_set_goal(request: Request, portfolio_id: str = Path(...)) -> Dict[str, Any]:
    """Body: monthly_dividend_goal (number, or null to clear)."""
    body = await _json_object(request)
    if "monthly_dividend_goal" not in body:
        raise HTTPException(status_code=400, detail="monthly_dividend_goal is required")
    raw = body["monthly_dividend_goal"]
    goal = None if raw is None else _as_float(raw, "monthly_dividend_goal")
    try:
        return get_services().portfolios.set_monthly_dividend_goal(portfolio_id, goal).to_dict()
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --------------------------------------------------------------------------- #
# Positions
# --------------------------------------------------------------------------- #
@router.get("/{portfolio_id}/positions")
def api_position_list(portfolio_id: str = Path(...)) -> Dict[str, Any]:
    try:
        positions = get_services().portfolios.list_positions(portfolio_id)
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"positions": [p.to_dict() for p in positions]}


@router.post("/{portfolio_id}/positions", status_code=201)
async def api_position_create(request: Request, portfolio_id: str = Path(...)) -> Dict[str, Any]:
    """
    Body: ticker, shares, purchase_price, purchase_date (YYYY-MM-DD),
    optional current_price and dividend_yield_pct.
    """
    fields = _position_fields(await _json_object(request), partial=False)
    try:
        position = get_services().portfolios.add_position(portfolio_id, Position(**fields))
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return position.to_dict()


@router.patch("/{portfolio_id}/positions/{position_id}")
async def api_position_update(
    request: Request,
    portfolio_id: str = Path(...),
    position_id: str = Path(...),
) -> Dict[str, Any]:
    """Partial update; only the keys present in the body change."""
    fields = _position_fields(await _json_object(request), partial=True)
    store = get_services().portfolios
    try:
        _owned_position(store, portfolio_id, position_id)
        return store.update_position(position_id, fields).to_dict()
    except (PortfolioNotFoundError, PositionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{portfolio_id}/positions/{position_id}")
def api_position_delete(portfolio_id: str = Path(...), position_id: str = Path(...)) -> Dict[str, Any]:
    store = get_services().portfolios
    try:
        _owned_position(store, portfolio_id, position_id)
        store.delete_position(position_id)
    except (PortfolioNotFoundError, PositionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deleted": position_id}


# --------------------------------------------------------------------------- #
# Analytics
# --------------------------------------------------------------------------- #
@router.get("/{portfolio_id}/summary")
def api_portfolio_summary(
    portfolio_id: str = Path(...),
    basis: DividendBasis = Query(DividendBasis.COST, description="cost (yield-on-cost) or market"),
) -> Dict[str, Any]:
    """Valuation, goal progress, allocation and top performers from stored prices."""
    try:
        return portfolio_summary(get_services().portfolios, portfolio_id, basis)
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{portfolio_id}/refresh-prices")
def api_portfolio_refresh_prices(portfolio_id: str = Path(...)) -> Dict[str, Any]:
    services = get_services()
    try:
        return refresh_portfolio_prices(services.portfolios, services.cache, portfolio_id)
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{portfolio_id}/suggestions")
def api_portfolio_suggestions(portfolio_id: str = Path(...)) -> Dict[str, Any]:
    """High-yield cached stocks that could cover the monthly goal on their own."""
    services = get_services()
    try:
        return portfolio_suggestions(services.portfolios, services.cache, portfolio_id)
    except PortfolioNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
