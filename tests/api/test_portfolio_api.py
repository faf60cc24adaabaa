# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""API tests for /api/portfolios/* against a temporary SQLite store."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from divtrack.core.models import CachedQuote, ProviderName, Quote
from divtrack.core.portfolio.models import Position
from divtrack.core.portfolio.store import PortfolioStore

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _cached(symbol: str, price: float, yld: float) -> CachedQuote:
    quote = Quote(symbol, price, 0.0, 0.0, NOW, ProviderName.FINNHUB, yld)
    return CachedQuote(quote=quote, created_at=NOW, updated_at=NOW)


@pytest.fixture
def store(tmp_path):
    return PortfolioStore(tmp_path / "portfolios.db")


@pytest.fixture
def client(store, monkeypatch):
    pytest.importorskip("fastapi")
    from fastapi.testclient import TestClient
    from divtrack.api.server import app

    monkeypatch.delenv("DIVTRACK_API_KEY", raising=False)
    cache = MagicMock()
    svc = SimpleNamespace(portfolios=store, cache=cache)
    with patch("divtrack.api.portfolio_routes.get_services", return_value=svc):
        yield TestClient(app), cache


def test_summary(client, store):
    http, _ = client
    p = store.create_portfolio("u1", "Income")
    store.set_monthly_dividend_goal(p.id, 5.0)
    store.add_position(p.id, Position("KO", 10, 100.0, "2024-01-02", current_price=110.0, dividend_yield_pct=3.0))

    r = http.get(f"/api/portfolios/{p.id}/summary")
    assert r.status_code == 200
    data = r.json()
    assert data["valuation"]["total_current_value"] == pytest.approx(1100.0)
    assert data["valuation"]["dividend_basis"] == "cost"
    assert data["goal"]["progress_pct"] == pytest.approx(50.0)

    r = http.get(f"/api/portfolios/{p.id}/summary", params={"basis": "market"})
    assert r.json()["valuation"]["total_annual_dividends"] == pytest.approx(33.0)


def test_unknown_portfolio_is_404(client):
    http, _ = client
    assert http.get("/api/portfolios/nope/summary").status_code == 404
    assert http.post("/api/portfolios/nope/refresh-prices").status_code == 404
    assert http.get("/api/portfolios/nope/suggestions").status_code == 404


def test_refresh_prices(client, store):
    http, cache = client
    p = store.create_portfolio("u1", "Income")
    store.add_position(p.id, Position("KO", 10, 55.0, "2024-01-02"))
    cache.get_quotes.return_value = [_cached("KO", 62.0, 3.0)]

    r = http.post(f"/api/portfolios/{p.id}/refresh-prices")
    assert r.status_code == 200
    assert r.json()["refreshed"] == 1
    assert store.list_positions(p.id)[0].current_price == pytest.approx(62.0)


def test_suggestions(client, store):
    http, cache = client
    p = store.create_portfolio("u1", "Income")
    store.set_monthly_dividend_goal(p.id, 100.0)
    cache.get_all.return_value = [_cached("B", 100.0, 12.0), _cached("A", 200.0, 6.0)]

    r = http.get(f"/api/portfolios/{p.id}/suggestions")
    assert r.status_code == 200
    suggestions = r.json()["suggestions"]
    assert [s["symbol"] for s in suggestions] == ["B", "A"]
    assert suggestions[0]["shares_needed"] == 100


# --------------------------------------------------------------------------- #
# Portfolio and position writes
# --------------------------------------------------------------------------- #
def _position_body(**overrides):
    body = {"ticker": "ko", "shares": 10, "purchase_price": 100.0, "purchase_date": "2024-01-02"}
    body.update(overrides)
    return body


def test_create_portfolio_then_add_position_feeds_summary(client):
    http, _ = client
    r = http.post("/api/portfolios", json={"user_id": "u1", "name": "Main"})
    assert r.status_code == 201
    portfolio = r.json()
    assert portfolio["is_main"] is True

    r = http.post(
        f"/api/portfolios/{portfolio['id']}/positions",
        json=_position_body(current_price=110.0, dividend_yield_pct=3.0),
    )
    assert r.status_code == 201
    assert r.json()["ticker"] == "KO"

    r = http.get(f"/api/portfolios/{portfolio['id']}/summary")
    assert r.status_code == 200
    assert r.json()["valuation"]["total_current_value"] == pytest.approx(1100.0)


def test_create_portfolio_validation(client):
    http, _ = client
    assert http.post("/api/portfolios", json={"name": "Main"}).status_code == 400
    assert http.post("/api/portfolios", json={"user_id": "u1", "name": ""}).status_code == 400
    assert http.post("/api/portfolios", json={"user_id": "u1", "name": "x" * 101}).status_code == 400
    assert http.post("/api/portfolios", json=["not", "an", "object"]).status_code == 400


def test_list_and_set_main(client, store):
    http, _ = client
    first = http.post("/api/portfolios", json={"user_id": "u1", "name": "First"}).json()
    second = http.post("/api/portfolios", json={"user_id": "u1", "name": "Second"}).json()
    assert second["is_main"] is False

    r = http.post(f"/api/portfolios/{second['id']}/main")
    assert r.status_code == 200
    assert r.json()["is_main"] is True
    assert store.get_portfolio(first["id"]).is_main is False

    listed = http.get("/api/portfolios", params={"user_id": "u1"}).json()["portfolios"]
    assert [p["id"] for p in listed][0] == second["id"]
    assert http.post("/api/portfolios/nope/main").status_code == 404


def test_set_and_clear_goal(client):
    http, _ = client
    p = http.post("/api/portfolios", json={"user_id": "u1", "name": "Income"}).json()

    r = http.put(f"/api/portfolios/{p['id']}/goal", json={"monthly_dividend_goal": 250})
    assert r.status_code == 200
    assert r.json()["annual_dividend_goal"] == pytest.approx(3000.0)

    r = http.put(f"/api/portfolios/{p['id']}/goal", json={"monthly_dividend_goal": None})
    assert r.json()["monthly_dividend_goal"] is None

    assert http.put(f"/api/portfolios/{p['id']}/goal", json={"monthly_dividend_goal": -1}).status_code == 400
    assert http.put(f"/api/portfolios/{p['id']}/goal", json={}).status_code == 400
    assert http.put("/api/portfolios/nope/goal", json={"monthly_dividend_goal": 5}).status_code == 404


def test_add_position_validation(client, store):
    http, _ = client
    p = store.create_portfolio("u1", "Income")
    url = f"/api/portfolios/{p.id}/positions"
    assert http.post(url, json=_position_body(shares=0)).status_code == 400
    assert http.post(url, json=_position_body(shares="ten")).status_code == 400
    assert http.post(url, json=_position_body(ticker="TOOLONGTICKER")).status_code == 400
    assert http.post(url, json=_position_body(purchase_date="02/01/2024")).status_code == 400
    assert http.post(url, json=_position_body(dividend_yield_pct=120)).status_code == 400
    body = _position_body()
    del body["purchase_price"]
    assert http.post(url, json=body).status_code == 400
    assert http.post("/api/portfolios/nope/positions", json=_position_body()).status_code == 404
    assert store.list_positions(p.id) == []


def test_update_and_delete_position(client, store):
    http, _ = client
    p = store.create_portfolio("u1", "Income")
    pos = store.add_position(p.id, Position("KO", 10, 55.0, "2024-01-02"))
    url = f"/api/portfolios/{p.id}/positions/{pos.id}"

    r = http.patch(url, json={"shares": 15, "dividend_yield_pct": 3.1})
    assert r.status_code == 200
    assert r.json()["shares"] == pytest.approx(15.0)
    assert r.json()["purchase_price"] == pytest.approx(55.0)
    assert http.patch(url, json={"shares": -1}).status_code == 400
    assert store.get_position(pos.id).shares == pytest.approx(15.0)

    assert http.delete(url).status_code == 200
    assert http.get(f"/api/portfolios/{p.id}/positions").json()["positions"] == []
    assert http.delete(url).status_code == 404


def test_position_routes_check_the_owning_portfolio(client, store):
    http, _ = client
    a = store.create_portfolio("u1", "A")
    b = store.create_portfolio("u1", "B")
    pos = store.add_position(a.id, Position("KO", 10, 55.0, "2024-01-02"))

    assert http.patch(f"/api/portfolios/{b.id}/positions/{pos.id}", json={"shares": 1}).status_code == 404
    assert http.delete(f"/api/portfolios/{b.id}/positions/{pos.id}").status_code == 404
    assert store.get_position(pos.id).shares == pytest.approx(10.0)


def test_delete_portfolio(client, store):
    http, _ = client
    p = store.create_portfolio("u1", "Income")
    store.add_position(p.id, Position("KO", 10, 55.0, "2024-01-02"))

    r = http.get(f"/api/portfolios/{p.id}")
    assert r.status_code == 200
    assert len(r.json()["positions"]) == 1

    assert http.delete(f"/api/portfolios/{p.id}").status_code == 200
    assert http.get(f"/api/portfolios/{p.id}").status_code == 404
    assert http.delete(f"/api/portfolios/{p.id}").status_code == 404
