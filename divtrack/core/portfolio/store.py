# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""SQLite persistence for portfolios and positions.

A user's first portfolio becomes the main one; at most one portfolio per
user is main at any time.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from divtrack.core.portfolio.models import Portfolio, Position

logger = logging.getLogger(__name__)

_UPDATABLE_POSITION_FIELDS = (
    "ticker",
    "shares",
    "purchase_price",
    "purchase_date",
    "current_price",
    "dividend_yield_pct",
)


class PortfolioNotFoundError(LookupError):
    pass


class PositionNotFoundError(LookupError):
    pass


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PortfolioStore:
    """Persistence layer for :class:`Portfolio` and :class:`Position` objects."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_db()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self) -> None:
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS portfolios (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    is_main INTEGER NOT NULL DEFAULT 0,
                    monthly_dividend_goal REAL,
                    created_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS positions (
                    id TEXT PRIMARY KEY,
                    portfolio_id TEXT NOT NULL REFERENCES portfolios(id) ON DELETE CASCADE,
                    ticker TEXT NOT NULL,
                    shares REAL NOT NULL,
                    purchase_price REAL NOT NULL,
                    purchase_date TEXT NOT NULL,
                    current_price REAL,
                    dividend_yield_pct REAL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_portfolios_user ON portfolios(user_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_positions_portfolio ON positions(portfolio_id)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_portfolio(row: sqlite3.Row) -> Portfolio:
        return Portfolio(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            is_main=bool(row["is_main"]),
            monthly_dividend_goal=row["monthly_dividend_goal"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_position(row: sqlite3.Row) -> Position:
        return Position(
            id=row["id"],
            portfolio_id=row["portfolio_id"],
            ticker=row["ticker"],
            shares=row["shares"],
            purchase_price=row["purchase_price"],
            purchase_date=row["purchase_date"],
            current_price=row["current_price"],
            dividend_yield_pct=row["dividend_yield_pct"],
        )

    # ------------------------------------------------------------------ #
    # Portfolios
    # ------------------------------------------------------------------ #
    def create_portfolio(self, user_id: str, name: str) -> Portfolio:
        name = (name or "").strip()
        if not name or len(name) > 100:
            raise ValueError("name must be 1-100 characters")
        with self._lock:
            conn = self._get_connection()
            try:
                existing = conn.execute(
                    "SELECT COUNT(*) FROM portfolios WHERE user_id = ?", (user_id,)
                ).fetchone()[0]
                portfolio = Portfolio(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    name=name,
                    is_main=existing == 0,
                    created_at=_now_iso(),
                )
                conn.execute(
                    """
                    INSERT INTO portfolios (id, user_id, name, is_main, monthly_dividend_goal, created_at)
                    VALUES (?, ?, ?, ?, NULL, ?)
                    """,
                    (portfolio.id, user_id, name, int(portfolio.is_main), portfolio.created_at),
                )
                conn.commit()
            finally:
                conn.close()
        logger.info("[PORTFOLIO] created %s for user %s (main=%s)", portfolio.id, user_id, portfolio.is_main)
        return portfolio

    def get_portfolio(self, portfolio_id: str) -> Portfolio:
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT * FROM portfolios WHERE id = ?", (portfolio_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise PortfolioNotFoundError(f"Portfolio not found: {portfolio_id}")
        return self._row_to_portfolio(row)

    def list_portfolios(self, user_id: str) -> List[Portfolio]:
        """User's portfolios, main first, then newest first."""
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM portfolios WHERE user_id = ? ORDER BY is_main DESC, created_at DESC",
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_portfolio(r) for r in rows]

    def set_main(self, portfolio_id: str) -> Portfolio:
        portfolio = self.get_portfolio(portfolio_id)
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute("UPDATE portfolios SET is_main = 0 WHERE user_id = ?", (portfolio.user_id,))
                conn.execute("UPDATE portfolios SET is_main = 1 WHERE id = ?", (portfolio_id,))
                conn.commit()
            finally:
                conn.close()
        return self.get_portfolio(portfolio_id)

    def set_monthly_dividend_goal(self, portfolio_id: str, monthly_goal: Optional[float]) -> Portfolio:
        """Set or clear (None) the monthly goal; the annual goal is derived."""
        if monthly_goal is not None and monthly_goal < 0:
            raise ValueError("monthly_dividend_goal must be non-negative")
        self.get_portfolio(portfolio_id)
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    "UPDATE portfolios SET monthly_dividend_goal = ? WHERE id = ?",
                    (monthly_goal, portfolio_id),
                )
                conn.commit()
            finally:
                conn.close()
        return self.get_portfolio(portfolio_id)

    def delete_portfolio(self, portfolio_id: str) -> None:
        self.get_portfolio(portfolio_id)
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute("DELETE FROM portfolios WHERE id = ?", (portfolio_id,))
                conn.commit()
            finally:
                conn.close()

    # ------------------------------------------------------------------ #
    # Positions
    # ------------------------------------------------------------------ #
    def add_position(self, portfolio_id: str, position: Position) -> Position:
        self.get_portfolio(portfolio_id)
        position.id = position.id or str(uuid.uuid4())
        position.portfolio_id = portfolio_id
        now = _now_iso()
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    """
                    INSERT INTO positions (
                        id, portfolio_id, ticker, shares, purchase_price, purchase_date,
                        current_price, dividend_yield_pct, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        position.id, portfolio_id, position.ticker, position.shares,
                        position.purchase_price, position.purchase_date, position.current_price,
                        position.dividend_yield_pct, now, now,
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        return position

    def get_position(self, position_id: str) -> Position:
        conn = self._get_connection()
        try:
            row = conn.execute("SELECT * FROM positions WHERE id = ?", (position_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise PositionNotFoundError(f"Position not found: {position_id}")
        return self._row_to_position(row)

    def list_positions(self, portfolio_id: str) -> List[Position]:
        self.get_portfolio(portfolio_id)
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM positions WHERE portfolio_id = ? ORDER BY created_at DESC",
                (portfolio_id,),
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_position(r) for r in rows]

    def update_position(self, position_id: str, updates: Dict[str, Any]) -> Position:
        """Partial update; the merged position is re-validated before writing."""
        current = self.get_position(position_id)
        d = current.to_dict()
        for k, v in updates.items():
            if k in _UPDATABLE_POSITION_FIELDS:
                d[k] = v
        merged = Position(**d)
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    """
                    UPDATE positions
                    SET ticker = ?, shares = ?, purchase_price = ?, purchase_date = ?,
                        current_price = ?, dividend_yield_pct = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        merged.ticker, merged.shares, merged.purchase_price, merged.purchase_date,
                        merged.current_price, merged.dividend_yield_pct, _now_iso(), position_id,
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        return merged

    def delete_position(self, position_id: str) -> None:
        self.get_position(position_id)
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute("DELETE FROM positions WHERE id = ?", (position_id,))
                conn.commit()
            finally:
                conn.close()

    def update_ticker_prices(
        self,
        portfolio_id: str,
        ticker: str,
        current_price: float,
        dividend_yield_pct: Optional[float] = None,
    ) -> int:
        """Write a fresh price (and yield, when known) to every position of ``ticker``. Returns rows updated."""
        with self._lock:
            conn = self._get_connection()
            try:
                if dividend_yield_pct is None:
                    cursor = conn.execute(
                        """
                        UPDATE positions SET current_price = ?, updated_at = ?
                        WHERE portfolio_id = ? AND ticker = ?
                        """,
                        (current_price, _now_iso(), portfolio_id, ticker.upper()),
                    )
                else:
                    cursor = conn.execute(
                        """
                        UPDATE positions SET current_price = ?, dividend_yield_pct = ?, updated_at = ?
                        WHERE portfolio_id = ? AND ticker = ?
                        """,
                        (current_price, dividend_yield_pct, _now_iso(), portfolio_id, ticker.upper()),
                    )
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()


__all__ = [
    "PortfolioNotFoundError",
    "PositionNotFoundError",
    "PortfolioStore",
]
