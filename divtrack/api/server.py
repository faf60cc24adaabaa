# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""FastAPI server: stock quotes, cache maintenance, portfolio analytics, projection."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv


# Load .env first so ALPHAVANTAGE_KEY / FINNHUB_KEY are set before settings are read
def _load_env() -> None:
    _repo_root = Path(__file__).resolve().parent.parent.parent
    _env_file = _repo_root / ".env"
    if _env_file.exists():
        load_dotenv(_env_file, override=True)
    load_dotenv()


_load_env()

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from divtrack import __version__
from divtrack.api.portfolio_routes import router as portfolio_router
from divtrack.api.stock_routes import router as stock_router
from divtrack.core.planning.projection import DepositFrequency, project_growth

logger = logging.getLogger(__name__)

app = FastAPI(title="DivTrack API", version=__version__)

_PUBLIC_PATHS = frozenset({"/health"})


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    """Require X-API-Key for all non-health routes when DIVTRACK_API_KEY is set."""
    path = request.url.path.rstrip("/") or request.url.path
    if path in _PUBLIC_PATHS:
        return await call_next(request)
    expected = (os.getenv("DIVTRACK_API_KEY") or "").strip()
    if not expected:
        return await call_next(request)
    key = request.headers.get("X-API-Key")
    if key != expected:
        return JSONResponse(
            status_code=401,
            content={"detail": "Missing or invalid X-API-Key"},
            headers={"WWW-Authenticate": "ApiKey"},
        )
    return await call_next(request)


_CORS_ORIGINS_RAW = (os.getenv("DIVTRACK_CORS_ORIGINS") or "http://localhost:3000").strip().split(",")
_CORS_ORIGINS = [o.strip() for o in _CORS_ORIGINS_RAW if o.strip()] or ["http://localhost:3000"]

app.include_router(stock_router)
app.include_router(portfolio_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> Dict[str, Any]:
    """Health check. No auth required."""
    return {"ok": True, "status": "healthy", "version": __version__}


def _number(body: Dict[str, Any], key: str, default: Any = None) -> float:
    value = body.get(key, default)
    if value is None:
        raise HTTPException(status_code=400, detail=f"{key} is required")
    if isinstance(value, bool):
        raise HTTPException(status_code=400, detail=f"{key} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{key} must be a number")


@app.post("/api/projection")
async def api_projection(request: Request) -> Dict[str, Any]:
    """
    Compound-growth projection.

    Body: present_value, annual_return_pct, horizon_years, recurring_deposit
    (default 0), frequency ("monthly" or "weekly", default monthly).
    """
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")

    raw_freq = str(body.get("frequency") or DepositFrequency.MONTHLY.value).strip().lower()
    try:
        frequency = DepositFrequency(raw_freq)
    except ValueError:
        raise HTTPException(status_code=400, detail="frequency must be 'monthly' or 'weekly'")

    try:
        result = project_growth(
            present_value=_number(body, "present_value"),
            annual_return_pct=_number(body, "annual_return_pct"),
            horizon_years=_number(body, "horizon_years"),
            recurring_deposit=_number(body, "recurring_deposit", 0),
            frequency=frequency,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()
